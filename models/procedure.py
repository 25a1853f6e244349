"""
Model para procedimentos cirúrgicos, pacientes e trilha de auditoria
"""
from dataclasses import dataclass, field
from datetime import datetime, date
from typing import Optional, List, Dict, Any

from .enums import (
    ProcedureCategory,
    SurgeryComplexity,
    SurgeryStatus,
    AuthorizationStatus,
    AuditStatus,
)


def _iso(value: Optional[Any]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Patient:
    """Paciente dono dos procedimentos."""
    id: str
    full_name: str = "Paciente Importado"
    birth_date: Optional[date] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'full_name': self.full_name,
            'birth_date': _iso(self.birth_date),
            'created_at': _iso(self.created_at),
        }


@dataclass
class Procedure:
    """Registro de um procedimento cirúrgico."""

    # Identidade
    id: str
    code: str
    name: str
    patient_id: str
    category: ProcedureCategory
    complexity: SurgeryComplexity
    description: Optional[str] = None
    subcategory: Optional[str] = None

    # Classificação de porte
    estimated_duration: int = 0  # minutos
    base_price: float = 0.0
    suggested_port: Optional[int] = None
    actual_port: Optional[int] = None

    # Ciclo de vida
    status: SurgeryStatus = SurgeryStatus.SCHEDULED
    scheduled_date: Optional[datetime] = None
    performed_date: Optional[datetime] = None
    duration: Optional[int] = None  # duração real em minutos
    complications: Optional[str] = None
    notes: Optional[str] = None

    # Equipe e local
    surgeon_id: Optional[str] = None
    surgeon_name: Optional[str] = None
    assistants: List[str] = field(default_factory=list)
    anesthesiologist: Optional[str] = None
    operating_room: Optional[str] = None
    hospital: Optional[str] = None

    # Autorização e auditoria
    requires_authorization: bool = False
    authorization_status: AuthorizationStatus = AuthorizationStatus.NOT_REQUIRED
    audit_status: AuditStatus = AuditStatus.PENDING_AUDIT

    # Metadados
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: str = "system"
    updated_by: Optional[str] = None

    @property
    def effective_duration(self) -> int:
        """Duração real quando informada, senão a estimada."""
        if self.duration is not None:
            return self.duration
        return self.estimated_duration or 0

    @property
    def is_performed(self) -> bool:
        return self.performed_date is not None

    def classification_snapshot(self) -> Dict[str, Any]:
        """Campos de classificação usados na trilha de auditoria."""
        return {
            'complexity': self.complexity.value,
            'estimated_duration': self.estimated_duration,
            'base_price': self.base_price,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Converte para dicionário."""
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'description': self.description,
            'category': self.category.value,
            'subcategory': self.subcategory,
            'complexity': self.complexity.value,
            'estimated_duration': self.estimated_duration,
            'base_price': self.base_price,
            'suggested_port': self.suggested_port,
            'actual_port': self.actual_port,
            'status': self.status.value,
            'scheduled_date': _iso(self.scheduled_date),
            'performed_date': _iso(self.performed_date),
            'duration': self.duration,
            'complications': self.complications,
            'notes': self.notes,
            'surgeon_id': self.surgeon_id,
            'surgeon_name': self.surgeon_name,
            'assistants': list(self.assistants),
            'anesthesiologist': self.anesthesiologist,
            'operating_room': self.operating_room,
            'hospital': self.hospital,
            'patient_id': self.patient_id,
            'requires_authorization': self.requires_authorization,
            'authorization_status': self.authorization_status.value,
            'audit_status': self.audit_status.value,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
            'created_by': self.created_by,
            'updated_by': self.updated_by,
        }


@dataclass(frozen=True)
class PortValidation:
    """Registro imutável de um evento de validação de porte."""
    id: str
    procedure_id: str
    suggested_port: int
    actual_port: int
    is_valid: bool
    discrepancy: int
    reason: Optional[str] = None
    validated_by: Optional[str] = None
    validated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'procedure_id': self.procedure_id,
            'suggested_port': self.suggested_port,
            'actual_port': self.actual_port,
            'is_valid': self.is_valid,
            'discrepancy': self.discrepancy,
            'reason': self.reason,
            'validated_by': self.validated_by,
            'validated_at': _iso(self.validated_at),
        }


@dataclass(frozen=True)
class AuditLogEntry:
    """Entrada append-only da trilha de auditoria."""
    action: str
    entity: str
    entity_id: str
    user_id: str
    user_role: str = "SYSTEM"
    old_values: Dict[str, Any] = field(default_factory=dict)
    new_values: Dict[str, Any] = field(default_factory=dict)
    patient_id: Optional[str] = None
    procedure_id: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'action': self.action,
            'entity': self.entity,
            'entity_id': self.entity_id,
            'user_id': self.user_id,
            'user_role': self.user_role,
            'old_values': dict(self.old_values),
            'new_values': dict(self.new_values),
            'patient_id': self.patient_id,
            'procedure_id': self.procedure_id,
            'created_at': _iso(self.created_at),
        }
