"""
Model para resultados de validação de porte e de analytics
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any

from .enums import ValidationSeverity
from .procedure import Procedure


@dataclass(frozen=True)
class PortVerdict:
    """Veredito de validação de porte."""
    procedure_code: str
    reported_port: int
    expected_port: int
    is_valid: bool
    severity: ValidationSeverity
    message: str
    minimum_port: Optional[int] = None
    maximum_port: Optional[int] = None
    has_rule: bool = True

    @property
    def discrepancy(self) -> int:
        """|reportado - esperado|"""
        return abs(self.reported_port - self.expected_port)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'procedure_code': self.procedure_code,
            'reported_port': self.reported_port,
            'expected_port': self.expected_port,
            'minimum_port': self.minimum_port,
            'maximum_port': self.maximum_port,
            'is_valid': self.is_valid,
            'discrepancy': self.discrepancy,
            'severity': self.severity.value,
            'message': self.message,
            'has_rule': self.has_rule,
        }


@dataclass
class TopProcedure:
    code: str
    name: str
    category: str
    count: int
    total_price: float
    total_duration: float
    average_price: float
    average_duration: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'name': self.name,
            'category': self.category,
            'count': self.count,
            'total_price': self.total_price,
            'total_duration': self.total_duration,
            'average_price': self.average_price,
            'average_duration': self.average_duration,
        }


@dataclass
class BreakdownEntry:
    label: str
    count: int
    percent_of_performed: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'label': self.label,
            'count': self.count,
            'percent_of_performed': self.percent_of_performed,
        }


@dataclass
class ProcedureStatistics:
    """Estatísticas gerais de uma janela."""
    start_date: datetime
    end_date: datetime
    total_created: int = 0
    total_performed: int = 0
    total_scheduled: int = 0
    total_cancelled: int = 0
    completion_rate: float = 0.0
    average_duration: float = 0.0
    average_price: float = 0.0
    total_price: float = 0.0
    by_category: List[BreakdownEntry] = field(default_factory=list)
    by_complexity: List[BreakdownEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
            'total_created': self.total_created,
            'total_performed': self.total_performed,
            'total_scheduled': self.total_scheduled,
            'total_cancelled': self.total_cancelled,
            'completion_rate': self.completion_rate,
            'average_duration': self.average_duration,
            'average_price': self.average_price,
            'total_price': self.total_price,
            'by_category': [e.to_dict() for e in self.by_category],
            'by_complexity': [e.to_dict() for e in self.by_complexity],
        }


@dataclass
class EfficiencyMetrics:
    """Pontualidade e utilização de sala."""
    start_date: datetime
    end_date: datetime
    window_days: int
    total_performed: int = 0
    on_time: int = 0
    late: int = 0
    punctuality_rate: float = 0.0
    average_delay_hours: float = 0.0
    room_utilization: float = 0.0
    procedures_per_day: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
            'window_days': self.window_days,
            'total_performed': self.total_performed,
            'on_time': self.on_time,
            'late': self.late,
            'punctuality_rate': self.punctuality_rate,
            'average_delay_hours': self.average_delay_hours,
            'room_utilization': self.room_utilization,
            'procedures_per_day': self.procedures_per_day,
        }


@dataclass
class CategoryAnalysis:
    category: str
    total_performed: int = 0
    total_price: float = 0.0
    total_duration: float = 0.0
    average_duration: float = 0.0
    complex_count: int = 0
    complication_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'category': self.category,
            'total_performed': self.total_performed,
            'total_price': self.total_price,
            'total_duration': self.total_duration,
            'average_duration': self.average_duration,
            'complex_count': self.complex_count,
            'complication_rate': self.complication_rate,
        }


@dataclass
class PendingSummary:
    """Resumo operacional de procedimentos pendentes."""
    total_pending: int = 0
    pending_authorization: int = 0
    pending_audit: int = 0
    scheduled_today: int = 0
    scheduled_this_week: int = 0
    recent_activity: List[Procedure] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_pending': self.total_pending,
            'pending_authorization': self.pending_authorization,
            'pending_audit': self.pending_audit,
            'scheduled_today': self.scheduled_today,
            'scheduled_this_week': self.scheduled_this_week,
            'recent_activity': [p.to_dict() for p in self.recent_activity],
        }


@dataclass
class Page:
    """Página de resultados de busca."""
    items: List[Procedure]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'items': [p.to_dict() for p in self.items],
            'pagination': {
                'page': self.page,
                'limit': self.limit,
                'total': self.total,
                'total_pages': self.total_pages,
                'has_next': self.has_next,
                'has_prev': self.has_prev,
            },
        }
