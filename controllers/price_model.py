"""
Cálculo de preço base por porte e duração
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

from models import SurgeryComplexity
from models.inputs import EngineSettings
from utils import require_non_negative


class PriceModel:
    """
    Converte (porte, duração estimada) em preço base.

    O valor base do porte é multiplicado por max(1, minutos / 60): abaixo de
    uma hora nunca há desconto, acima disso o preço cresce por hora.
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        settings = settings or EngineSettings()
        self.base_rates: Dict[SurgeryComplexity, float] = dict(settings.price_base_rates)
        self._quantum = Decimal(1).scaleb(-settings.price_precision)

    def base_rate(self, complexity: Any) -> float:
        return self.base_rates[SurgeryComplexity.parse(complexity)]

    def price(self, complexity: Any, estimated_duration_minutes: Any) -> float:
        """
        Calcula o preço base.

        Args:
            complexity: Porte (membro ou token)
            estimated_duration_minutes: Duração estimada em minutos (>= 0)

        Returns:
            Preço arredondado para centavos
        """
        rate = self.base_rate(complexity)
        minutes = require_non_negative(estimated_duration_minutes, "estimated_duration")

        multiplier = max(Decimal(1), Decimal(str(minutes)) / Decimal(60))
        amount = Decimal(str(rate)) * multiplier
        return float(amount.quantize(self._quantum, rounding=ROUND_HALF_UP))
