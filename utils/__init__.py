"""
Pacote de utilitários
"""
from .exceptions import (
    PorteEngineError,
    InvalidInput,
    NotFound,
    StorageFailure,
    PublishFailure,
)

from .text_utils import (
    normalize_text,
    matches_search,
    format_severity_reason,
)

from .validation import (
    validate_table_structure,
    validate_rules_structure,
    require_non_negative,
    parse_port,
    normalize_yes_no,
)

from .date_utils import (
    to_local_naive,
    to_datetime,
    start_of_day,
    end_of_day,
    resolve_period_window,
    window_days,
    hours_between,
)

__all__ = [
    'PorteEngineError',
    'InvalidInput',
    'NotFound',
    'StorageFailure',
    'PublishFailure',
    'normalize_text',
    'matches_search',
    'format_severity_reason',
    'validate_table_structure',
    'validate_rules_structure',
    'require_non_negative',
    'parse_port',
    'normalize_yes_no',
    'to_local_naive',
    'to_datetime',
    'start_of_day',
    'end_of_day',
    'resolve_period_window',
    'window_days',
    'hours_between',
]
