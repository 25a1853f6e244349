"""
Pacote de controllers
"""
from .price_model import PriceModel
from .audit_policy import AuditPolicy, AUDITED_COMPLEXITIES
from .port_validator import PortValidator
from .classification_engine import ClassificationEngine, ALLOWED_TRANSITIONS
from .analytics_aggregator import AnalyticsAggregator
from .report_generator import ReportGenerator

__all__ = [
    'PriceModel',
    'AuditPolicy',
    'AUDITED_COMPLEXITIES',
    'PortValidator',
    'ClassificationEngine',
    'ALLOWED_TRANSITIONS',
    'AnalyticsAggregator',
    'ReportGenerator',
]
