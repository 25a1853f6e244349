"""
Controller para validação de porte contra regras institucionais
"""
import logging
from typing import Any, Optional, Protocol

from config import VALIDATION_CONFIG
from models import PortValidationRule, PortVerdict, SurgeryComplexity, ValidationSeverity
from utils import InvalidInput, parse_port

logger = logging.getLogger(__name__)


class RuleRepository(Protocol):
    def get_active_rule(self, procedure_code: str) -> Optional[PortValidationRule]: ...


class PortValidator:
    """Compara o porte informado com a regra ativa do procedimento."""

    def __init__(self, rules: RuleRepository, config: Optional[dict] = None):
        """
        Inicializa o validador.

        Args:
            rules: Qualquer objeto com get_active_rule (repositório ou storage)
            config: Limiares de severidade (usa VALIDATION_CONFIG se None)
        """
        self.rules = rules
        self.config = config or VALIDATION_CONFIG

    def validate(self, procedure_code: Any, reported_port: Any) -> PortVerdict:
        """
        Valida um porte informado.

        Sem regra ativa o porte é aceito (severidade INFO): procedimentos
        desconhecidos nunca são rejeitados automaticamente.

        Args:
            procedure_code: Código do procedimento
            reported_port: Porte informado (inteiro, string numérica ou SurgeryComplexity)

        Returns:
            PortVerdict
        """
        code = str(procedure_code).strip() if procedure_code is not None else ""
        if not code:
            raise InvalidInput("procedureCode and reportedPorte are required", field="procedure_code")

        if isinstance(reported_port, SurgeryComplexity):
            port = reported_port.level
        else:
            port = parse_port(reported_port)

        logger.info(f"Validando porte: {code} -> {port}")

        rule = self.rules.get_active_rule(code)
        if rule is None:
            return PortVerdict(
                procedure_code=code,
                reported_port=port,
                expected_port=port,
                is_valid=True,
                severity=ValidationSeverity.INFO,
                message="No validation rule found for this procedure",
                has_rule=False,
            )

        is_valid = rule.accepts(port)
        expected = rule.recommended_port
        severity = self._severity(is_valid, abs(port - expected))

        if is_valid:
            message = "Porte is within acceptable range"
        else:
            message = f"Porte divergence detected. Expected: {expected}, Reported: {port}"

        verdict = PortVerdict(
            procedure_code=code,
            reported_port=port,
            expected_port=expected,
            is_valid=is_valid,
            severity=severity,
            message=message,
            minimum_port=rule.minimum_port,
            maximum_port=rule.maximum_port,
        )

        if not is_valid:
            logger.warning(
                f"Divergência de porte em {code}: informado {port}, "
                f"esperado {expected} ({severity.value})"
            )
        return verdict

    def _severity(self, is_valid: bool, diff: int) -> ValidationSeverity:
        if is_valid:
            return ValidationSeverity.INFO
        if diff >= self.config.get('high_severity_diff', 2):
            return ValidationSeverity.HIGH
        if diff >= self.config.get('medium_severity_diff', 1):
            return ValidationSeverity.MEDIUM
        # Fora da faixa mas igual ao recomendado: regra inconsistente
        return ValidationSeverity.LOW
