"""
Pacote de modelos de dados
"""
from .enums import (
    ProcedureCategory,
    SurgeryComplexity,
    SurgeryStatus,
    AuthorizationStatus,
    AuditStatus,
    ValidationSeverity,
    AuditPriority,
    AnalyticsPeriod,
)

from .procedure import (
    Patient,
    Procedure,
    PortValidation,
    AuditLogEntry,
)

from .port_rules import (
    PortValidationRule,
    PortRulesRepository,
)

from .inputs import (
    parse_request,
    CreateProcedureRequest,
    ConfirmPorteRequest,
    UpdateProcedureRequest,
    ImportProcedureRequest,
    ProcedureFilter,
    Pagination,
    EngineSettings,
)

from .analytics import (
    PortVerdict,
    TopProcedure,
    BreakdownEntry,
    ProcedureStatistics,
    EfficiencyMetrics,
    CategoryAnalysis,
    PendingSummary,
    Page,
)

from .events import (
    DomainEvent,
    CommandResult,
    EventPublisher,
    InMemoryEventPublisher,
    LoggingEventPublisher,
)

from .storage import (
    Storage,
    InMemoryStorage,
)

__all__ = [
    'ProcedureCategory',
    'SurgeryComplexity',
    'SurgeryStatus',
    'AuthorizationStatus',
    'AuditStatus',
    'ValidationSeverity',
    'AuditPriority',
    'AnalyticsPeriod',
    'Patient',
    'Procedure',
    'PortValidation',
    'AuditLogEntry',
    'PortValidationRule',
    'PortRulesRepository',
    'parse_request',
    'CreateProcedureRequest',
    'ConfirmPorteRequest',
    'UpdateProcedureRequest',
    'ImportProcedureRequest',
    'ProcedureFilter',
    'Pagination',
    'EngineSettings',
    'PortVerdict',
    'TopProcedure',
    'BreakdownEntry',
    'ProcedureStatistics',
    'EfficiencyMetrics',
    'CategoryAnalysis',
    'PendingSummary',
    'Page',
    'DomainEvent',
    'CommandResult',
    'EventPublisher',
    'InMemoryEventPublisher',
    'LoggingEventPublisher',
    'Storage',
    'InMemoryStorage',
]
