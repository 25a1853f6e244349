"""
Controller de analytics de procedimentos cirúrgicos

Todas as consultas são somente leitura: resolvem a janela do período,
consultam o Storage e agregam com pandas/numpy.
"""
import logging
from datetime import datetime
from typing import Any, Callable, List, Optional, Tuple

import numpy as np

from models import (
    AnalyticsPeriod,
    ProcedureCategory,
    SurgeryStatus,
    Procedure,
    ProcedureFilter,
    TopProcedure,
    BreakdownEntry,
    ProcedureStatistics,
    EfficiencyMetrics,
    CategoryAnalysis,
    EngineSettings,
    Storage,
)
from utils import InvalidInput, resolve_period_window, window_days, hours_between

logger = logging.getLogger(__name__)


def _average(total: float, count: int) -> float:
    return total / count if count else 0.0


def _percent(part: int, whole: int) -> float:
    return part / whole * 100 if whole else 0.0


class AnalyticsAggregator:
    """Métricas de volume, eficiência e categoria sobre procedimentos realizados."""

    def __init__(
        self,
        storage: Storage,
        settings: Optional[EngineSettings] = None,
        hospital: Optional[str] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Inicializa o agregador.

        Args:
            storage: Colaborador de armazenamento
            settings: Parâmetros (tolerância de pontualidade, porte complexo)
            hospital: Restringe todas as consultas a um hospital (None = todos)
            clock: Fonte da data de referência padrão
        """
        self.storage = storage
        self.settings = settings or EngineSettings()
        self.hospital = hospital
        self.clock = clock

    def window(self, period: str = "month", date: Any = None) -> Tuple[datetime, datetime]:
        """Resolve a janela [início, fim] do período."""
        token = AnalyticsPeriod.parse(period).value
        return resolve_period_window(token, date if date is not None else self.clock())

    def top_procedures(self, period: str = "month", date: Any = None, limit: int = 10) -> List[TopProcedure]:
        """
        Procedimentos mais realizados na janela.

        Args:
            period: day, week, month, quarter ou year
            date: Data de referência (hoje se None)
            limit: Máximo de itens

        Returns:
            Lista ordenada por quantidade (decrescente)
        """
        start, end = self.window(period, date)
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidInput(f"Invalid limit: {limit!r}", field="limit")

        groups = self.storage.aggregate_procedures(
            ['code', 'name', 'category'],
            self._performed_filter(start, end),
        )

        top = [
            TopProcedure(
                code=g['code'],
                name=g['name'],
                category=g['category'],
                count=g['count'],
                total_price=g['total_price'],
                total_duration=g['total_duration'],
                average_price=_average(g['total_price'], g['count']),
                average_duration=_average(g['total_duration'], g['count']),
            )
            for g in groups
        ]
        top.sort(key=lambda t: (-t.count, t.code))

        logger.info(f"Top procedimentos ({period}): {len(top)} grupos, retornando {min(limit, len(top))}")
        return top[:limit]

    def statistics(self, period: str = "month", date: Any = None) -> ProcedureStatistics:
        """
        Estatísticas gerais da janela.

        Criados e cancelados contam pela data de criação; agendados pela data
        agendada; médias e totais consideram apenas procedimentos realizados.
        """
        start, end = self.window(period, date)

        total_created = self.storage.count_procedures(ProcedureFilter(
            hospital=self.hospital, created_from=start, created_to=end,
        ))
        total_scheduled = self.storage.count_procedures(ProcedureFilter(
            hospital=self.hospital, status=SurgeryStatus.SCHEDULED,
            scheduled_from=start, scheduled_to=end,
        ))
        total_cancelled = self.storage.count_procedures(ProcedureFilter(
            hospital=self.hospital, status=SurgeryStatus.CANCELLED,
            created_from=start, created_to=end,
        ))

        performed = self._performed(start, end)
        total_performed = len(performed)
        prices = np.array([p.base_price or 0.0 for p in performed], dtype=float)
        durations = np.array([p.effective_duration for p in performed], dtype=float)

        return ProcedureStatistics(
            start_date=start,
            end_date=end,
            total_created=total_created,
            total_performed=total_performed,
            total_scheduled=total_scheduled,
            total_cancelled=total_cancelled,
            completion_rate=_percent(total_performed, total_created),
            average_duration=float(durations.mean()) if total_performed else 0.0,
            average_price=float(prices.mean()) if total_performed else 0.0,
            total_price=float(prices.sum()),
            by_category=self._breakdown('category', start, end, total_performed),
            by_complexity=self._breakdown('complexity', start, end, total_performed),
        )

    def efficiency_metrics(self, period: str = "month", date: Any = None) -> EfficiencyMetrics:
        """
        Pontualidade e utilização de sala.

        Um procedimento é pontual quando realizado até a tolerância (1h por
        padrão) após o horário agendado. Procedimentos sem data agendada não
        entram em nenhuma das duas contagens, mas contam no total.
        """
        start, end = self.window(period, date)
        days = window_days(start, end)

        performed = self._performed(start, end)
        total = len(performed)

        delays = np.array([
            hours_between(p.scheduled_date, p.performed_date)
            for p in performed
            if p.scheduled_date is not None and p.performed_date is not None
        ], dtype=float)
        on_time_mask = delays <= self.settings.on_time_tolerance_hours
        late_delays = delays[~on_time_mask]

        total_minutes = float(sum(p.effective_duration for p in performed))

        metrics = EfficiencyMetrics(
            start_date=start,
            end_date=end,
            window_days=days,
            total_performed=total,
            on_time=int(np.count_nonzero(on_time_mask)),
            late=int(late_delays.size),
            punctuality_rate=_percent(int(np.count_nonzero(on_time_mask)), total),
            average_delay_hours=float(late_delays.mean()) if late_delays.size else 0.0,
            room_utilization=total_minutes / (days * 24 * 60) * 100,
            procedures_per_day=total / days,
        )
        logger.info(
            f"Eficiência ({period}): {metrics.on_time} pontuais, {metrics.late} atrasados, "
            f"{days} dias"
        )
        return metrics

    def category_analysis(self, category: Any, period: str = "month", date: Any = None) -> CategoryAnalysis:
        """
        Análise dos procedimentos realizados de uma categoria.

        Args:
            category: Categoria (membro ou token)
            period: Período
            date: Data de referência

        Returns:
            CategoryAnalysis
        """
        start, end = self.window(period, date)
        category = ProcedureCategory.parse(category)

        performed = self._performed(start, end, category=category)
        total = len(performed)
        total_price = float(sum(p.base_price or 0.0 for p in performed))
        total_duration = float(sum(p.effective_duration for p in performed))

        min_level = self.settings.complex_min_complexity.level
        complex_count = sum(1 for p in performed if p.complexity.level >= min_level)
        with_complications = sum(1 for p in performed if p.complications and p.complications.strip())

        return CategoryAnalysis(
            category=category.value,
            total_performed=total,
            total_price=total_price,
            total_duration=total_duration,
            average_duration=_average(total_duration, total),
            complex_count=complex_count,
            complication_rate=_percent(with_complications, total),
        )

    def procedures_by_period(self, period: str = "day", date: Any = None, status: Any = None) -> List[Procedure]:
        """Procedimentos realizados na janela, do mais recente ao mais antigo."""
        start, end = self.window(period, date)
        status = SurgeryStatus.parse(status) if status is not None else None
        return self._performed(start, end, status=status)

    def procedures_history(self) -> List[Procedure]:
        """Todos os procedimentos já realizados, do mais recente ao mais antigo."""
        return self.storage.query_procedures(
            ProcedureFilter(hospital=self.hospital, performed_only=True),
            order_by='performed_date',
            descending=True,
        )

    # Auxiliares

    def _performed_filter(self, start: datetime, end: datetime, **criteria) -> ProcedureFilter:
        return ProcedureFilter(
            hospital=self.hospital,
            performed_from=start,
            performed_to=end,
            performed_only=True,
            **criteria,
        )

    def _performed(self, start: datetime, end: datetime, **criteria) -> List[Procedure]:
        return self.storage.query_procedures(
            self._performed_filter(start, end, **criteria),
            order_by='performed_date',
            descending=True,
        )

    def _breakdown(self, key: str, start: datetime, end: datetime, total_performed: int) -> List[BreakdownEntry]:
        groups = self.storage.aggregate_procedures([key], self._performed_filter(start, end))
        entries = [
            BreakdownEntry(
                label=g[key],
                count=g['count'],
                percent_of_performed=_percent(g['count'], total_performed),
            )
            for g in groups
        ]
        entries.sort(key=lambda e: (-e.count, e.label))
        return entries
