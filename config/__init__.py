"""
Pacote de configurações
"""
from .settings import (
    BASE_DIR,
    DATA_DIR,
    INPUT_DIR,
    OUTPUT_DIR,
    LOGS_DIR,
    ensure_directories,
    PRICE_BASE_RATES,
    ENGINE_CONFIG,
    ANALYTICS_CONFIG,
    VALIDATION_CONFIG,
    EVENT_TOPICS,
    PROCEDURE_COLUMNS,
    RULE_COLUMNS,
    LOGGING_CONFIG,
    SYSTEM_VERSION,
    SYSTEM_NAME,
)

__all__ = [
    'BASE_DIR',
    'DATA_DIR',
    'INPUT_DIR',
    'OUTPUT_DIR',
    'LOGS_DIR',
    'ensure_directories',
    'PRICE_BASE_RATES',
    'ENGINE_CONFIG',
    'ANALYTICS_CONFIG',
    'VALIDATION_CONFIG',
    'EVENT_TOPICS',
    'PROCEDURE_COLUMNS',
    'RULE_COLUMNS',
    'LOGGING_CONFIG',
    'SYSTEM_VERSION',
    'SYSTEM_NAME',
]
