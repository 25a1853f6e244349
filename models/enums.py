"""
Enumerações fechadas do domínio cirúrgico

Valores desconhecidos são rejeitados na fronteira com InvalidInput,
nunca propagados como strings soltas pelo motor.
"""
from enum import Enum
from typing import Any, Type, TypeVar

from utils.exceptions import InvalidInput

E = TypeVar("E", bound=Enum)


def coerce_enum(enum_cls: Type[E], value: Any, field: str) -> E:
    """
    Converte valor bruto para membro do enum.

    Args:
        enum_cls: Classe do enum
        value: Membro, nome ou valor (case-insensitive)
        field: Nome do campo (para a mensagem de erro)

    Returns:
        Membro do enum
    """
    if isinstance(value, enum_cls):
        return value
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidInput(f"{field} is required", field=field)

    token = str(value).strip().upper()
    for member in enum_cls:
        if token == member.name or token == str(member.value).upper():
            return member

    allowed = ", ".join(m.name for m in enum_cls)
    raise InvalidInput(
        f"Invalid {field}: {value!r} (expected one of: {allowed})",
        field=field,
    )


class ProcedureCategory(str, Enum):
    """Domínios cirúrgicos."""
    GENERAL_SURGERY = "GENERAL_SURGERY"
    CARDIAC_SURGERY = "CARDIAC_SURGERY"
    ORTHOPEDIC_SURGERY = "ORTHOPEDIC_SURGERY"
    NEUROSURGERY = "NEUROSURGERY"
    PLASTIC_SURGERY = "PLASTIC_SURGERY"
    GYNECOLOGICAL_SURGERY = "GYNECOLOGICAL_SURGERY"
    UROLOGICAL_SURGERY = "UROLOGICAL_SURGERY"
    OPHTHALMOLOGICAL_SURGERY = "OPHTHALMOLOGICAL_SURGERY"
    OTOLARYNGOLOGICAL_SURGERY = "OTOLARYNGOLOGICAL_SURGERY"
    VASCULAR_SURGERY = "VASCULAR_SURGERY"
    THORACIC_SURGERY = "THORACIC_SURGERY"
    PEDIATRIC_SURGERY = "PEDIATRIC_SURGERY"
    EMERGENCY_SURGERY = "EMERGENCY_SURGERY"
    DIAGNOSTIC_PROCEDURE = "DIAGNOSTIC_PROCEDURE"
    THERAPEUTIC_PROCEDURE = "THERAPEUTIC_PROCEDURE"

    @classmethod
    def parse(cls, value: Any) -> "ProcedureCategory":
        return coerce_enum(cls, value, "category")


class SurgeryComplexity(str, Enum):
    """Porte cirúrgico, do menor para o maior."""
    PORTE_1 = "PORTE_1"  # Pequeno porte
    PORTE_2 = "PORTE_2"  # Médio porte
    PORTE_3 = "PORTE_3"  # Grande porte
    PORTE_4 = "PORTE_4"
    PORTE_ESPECIAL = "PORTE_ESPECIAL"

    @property
    def level(self) -> int:
        """Nível ordinal do porte (1..5)."""
        return list(SurgeryComplexity).index(self) + 1

    @classmethod
    def parse(cls, value: Any) -> "SurgeryComplexity":
        return coerce_enum(cls, value, "complexity")


class SurgeryStatus(str, Enum):
    """Status do ciclo de vida do procedimento."""
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    POSTPONED = "POSTPONED"

    @property
    def is_terminal(self) -> bool:
        return self in (SurgeryStatus.COMPLETED, SurgeryStatus.CANCELLED)

    @property
    def is_pending(self) -> bool:
        return self in (SurgeryStatus.SCHEDULED, SurgeryStatus.CONFIRMED)

    @classmethod
    def parse(cls, value: Any) -> "SurgeryStatus":
        return coerce_enum(cls, value, "status")


class AuthorizationStatus(str, Enum):
    NOT_REQUIRED = "NOT_REQUIRED"
    PENDING = "PENDING"
    AUTHORIZED = "AUTHORIZED"
    DENIED = "DENIED"
    EXPIRED = "EXPIRED"

    @classmethod
    def parse(cls, value: Any) -> "AuthorizationStatus":
        return coerce_enum(cls, value, "authorization_status")


class AuditStatus(str, Enum):
    NOT_REQUIRED = "NOT_REQUIRED"
    PENDING_AUDIT = "PENDING_AUDIT"
    IN_AUDIT = "IN_AUDIT"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REQUIRES_REVIEW = "REQUIRES_REVIEW"

    @classmethod
    def parse(cls, value: Any) -> "AuditStatus":
        return coerce_enum(cls, value, "audit_status")


class ValidationSeverity(str, Enum):
    """Severidade de divergência de porte."""
    INFO = "INFO"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class AuditPriority(str, Enum):
    HIGH = "HIGH"
    URGENT = "URGENT"


class AnalyticsPeriod(str, Enum):
    """Períodos aceitos pelos relatórios de analytics."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"

    @classmethod
    def parse(cls, value: Any) -> "AnalyticsPeriod":
        return coerce_enum(cls, value, "period")
