"""
Utilitários de datas e janelas de período para analytics
"""
import math
from datetime import datetime, date, time, timedelta
from typing import Any, Tuple, Union

import pandas as pd

from .exceptions import InvalidInput

# Deslocamento do início da janela por período
_PERIOD_OFFSETS = {
    "day": None,
    "week": pd.DateOffset(days=7),
    "month": pd.DateOffset(months=1),
    "quarter": pd.DateOffset(months=3),
    "year": pd.DateOffset(years=1),
}


def to_local_naive(value: datetime) -> datetime:
    """Converte datetime com fuso para horário local ingênuo; ingênuo passa direto."""
    if value.tzinfo is None or value.utcoffset() is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def to_datetime(value: Any, field: str = "date") -> datetime:
    """
    Converte data de referência para datetime ingênuo (horário local).

    Args:
        value: date, datetime, pandas.Timestamp ou string ISO

    Returns:
        datetime
    """
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            raise InvalidInput(f"{field} is required", field=field)
        return to_local_naive(value.to_pydatetime())
    if isinstance(value, datetime):
        return to_local_naive(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str) and value.strip():
        try:
            return to_local_naive(pd.Timestamp(value.strip()).to_pydatetime())
        except ValueError:
            raise InvalidInput(f"Invalid {field}: {value!r}", field=field)
    raise InvalidInput(f"{field} is required", field=field)


def start_of_day(value: Union[date, datetime]) -> datetime:
    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day, time.min)


def end_of_day(value: Union[date, datetime]) -> datetime:
    """Último milissegundo do dia (23:59:59.999)."""
    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day, time(23, 59, 59, 999000))


def resolve_period_window(period: str, reference: Any) -> Tuple[datetime, datetime]:
    """
    Resolve a janela [início, fim] de um período.

    O fim é sempre o final do dia de referência; o início é o começo do dia
    de referência recuado pelo período (meses de calendário para month,
    quarter e year; fim de mês é ajustado para o último dia válido).

    Args:
        period: day, week, month, quarter ou year
        reference: Data de referência

    Returns:
        Tupla (start_date, end_date)
    """
    token = str(period).strip().lower() if period is not None else ""
    if token not in _PERIOD_OFFSETS:
        raise InvalidInput(f"Período inválido: {period}", field="period")

    ref = to_datetime(reference)
    end_date = end_of_day(ref)
    start_date = start_of_day(ref)

    offset = _PERIOD_OFFSETS[token]
    if offset is not None:
        start_date = (pd.Timestamp(start_date) - offset).to_pydatetime()

    return start_date, end_date


def window_days(start_date: datetime, end_date: datetime) -> int:
    """
    Número de dias da janela, arredondado para cima e nunca menor que 1.
    """
    seconds = (end_date - start_date).total_seconds()
    days = math.ceil(seconds / 86400)
    return max(1, days)


def hours_between(start: datetime, end: datetime) -> float:
    """Diferença end - start em horas."""
    return (end - start) / timedelta(hours=1)
