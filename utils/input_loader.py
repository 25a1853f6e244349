import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd
import yaml  # type: ignore

from config import PROCEDURE_COLUMNS, RULE_COLUMNS
from models.inputs import EngineSettings, parse_request
from models.port_rules import PortRulesRepository
from utils.date_utils import to_local_naive
from utils.validation import validate_table_structure

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_DATE_FIELDS = {'scheduled_date', 'performed_date', 'created_at'}
_INT_FIELDS = {'estimated_duration', 'duration', 'reported_port'}
_DATE_FORMATS = ('%Y-%m-%d %H:%M', '%d/%m/%Y %H:%M', '%Y-%m-%d', '%d/%m/%Y', '%d/%m/%y', '%d-%m-%Y')


def load_yaml(path: PathLike) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_json(path: PathLike) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_engine_settings(path: Optional[PathLike]) -> EngineSettings:
    """
    Carrega parâmetros do motor de um YAML. Sem arquivo, usa os padrões.
    """
    if path is None:
        return EngineSettings()
    data = load_yaml(path)
    return parse_request(EngineSettings, data)


def read_table(path: PathLike, sheet_name: Optional[str] = None) -> pd.DataFrame:
    """Lê planilha Excel ou CSV conforme a extensão."""
    path = Path(path)
    if path.suffix.lower() == '.csv':
        return pd.read_csv(path)
    return pd.read_excel(path, sheet_name=sheet_name or 0)


def parse_cell_datetime(value: Any) -> Optional[datetime]:
    """
    Converte célula de planilha em datetime.

    Aceita texto em formatos comuns, datetime/Timestamp e número serial do Excel.
    """
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else to_local_naive(value.to_pydatetime())
    if isinstance(value, datetime):
        return to_local_naive(value)
    if isinstance(value, str):
        text = value.strip()
        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
        return None
    if isinstance(value, (int, float, np.number)):
        if pd.isna(value):
            return None
        # Excel pode fornecer data como número (serial)
        return pd.to_datetime(value, unit='D', origin='1899-12-30').to_pydatetime()
    return None


def _cell(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if not isinstance(value, (list, dict)) and pd.isna(value):
        return None
    if isinstance(value, np.generic):
        return value.item()
    return value


def _to_int(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def parse_procedure_row(row: pd.Series, columns: Dict[str, str]) -> Optional[Dict[str, Any]]:
    """
    Converte linha da planilha em payload de importação.

    Args:
        row: Linha do DataFrame
        columns: Mapeamento {campo: nome_coluna}

    Returns:
        Dicionário aceito por ImportProcedureRequest, ou None se a linha não tem paciente
    """
    payload: Dict[str, Any] = {}
    for field, column in columns.items():
        value = _cell(row.get(column))
        if value is None:
            continue
        if field in _DATE_FIELDS:
            value = parse_cell_datetime(value)
            if value is None:
                continue
        elif field in _INT_FIELDS:
            value = _to_int(value)
        elif field in ('patient_id', 'code', 'id'):
            value = str(_to_int(value))
        payload[field] = value

    if 'id' in payload:
        payload['guia_id'] = payload.pop('id')

    if not payload.get('patient_id'):
        return None
    return payload


def load_procedure_rows(
    path: PathLike,
    sheet_name: Optional[str] = None,
    columns: Optional[Dict[str, str]] = None,
) -> List[Dict[str, Any]]:
    """
    Carrega procedimentos de planilha como payloads de importação.

    Args:
        path: Caminho da planilha (xlsx ou csv)
        sheet_name: Nome da aba (None = primeira aba)
        columns: Mapeamento de colunas (usa PROCEDURE_COLUMNS se None)

    Returns:
        Lista de payloads
    """
    columns = columns or PROCEDURE_COLUMNS
    logger.info(f"Carregando procedimentos de: {path}")

    df = read_table(path, sheet_name)

    is_valid, missing = validate_table_structure(df, columns)
    if not is_valid:
        logger.warning(f"Colunas faltantes na planilha: {missing}")

    rows = []
    for idx, row in df.iterrows():
        payload = parse_procedure_row(row, columns)
        if payload is None:
            logger.warning(f"Linha {idx} ignorada: paciente não informado")
            continue
        rows.append(payload)

    logger.info(f"Carregadas {len(rows)} linhas de procedimentos")
    return rows


def load_rules(path: PathLike, sheet_name: Optional[str] = None) -> PortRulesRepository:
    """
    Carrega regras de porte de JSON ou de planilha.
    """
    path = Path(path)
    repository = PortRulesRepository()
    if path.suffix.lower() == '.json':
        repository.load_from_json(path)
    else:
        repository.load_from_dataframe(read_table(path, sheet_name), RULE_COLUMNS)
    return repository
