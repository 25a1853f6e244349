"""
Política de disparo de auditoria por porte
"""
from models import SurgeryComplexity, AuditPriority

AUDITED_COMPLEXITIES = frozenset({
    SurgeryComplexity.PORTE_3,
    SurgeryComplexity.PORTE_4,
    SurgeryComplexity.PORTE_ESPECIAL,
})


class AuditPolicy:
    """Decide se um porte exige auditoria independente."""

    def requires_audit(self, complexity: SurgeryComplexity) -> bool:
        return complexity in AUDITED_COMPLEXITIES

    def audit_priority(self, complexity: SurgeryComplexity) -> AuditPriority:
        if complexity == SurgeryComplexity.PORTE_ESPECIAL:
            return AuditPriority.URGENT
        return AuditPriority.HIGH
