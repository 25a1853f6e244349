"""
Utilitários para validação de dados
"""
from typing import Dict, List, Any, Tuple
import math

import pandas as pd

from .exceptions import InvalidInput


def validate_table_structure(df: pd.DataFrame, required_columns: Dict[str, str]) -> Tuple[bool, List[str]]:
    """
    Valida se o DataFrame da planilha possui as colunas necessárias.

    Args:
        df: DataFrame a validar
        required_columns: Dicionário {key: nome_coluna_esperado}

    Returns:
        Tupla (is_valid, missing_columns)
    """
    missing = []

    for key, col_name in required_columns.items():
        if col_name not in df.columns:
            missing.append(f"{key} ({col_name})")

    return len(missing) == 0, missing


def validate_rules_structure(rules: List[Dict[str, Any]]) -> Tuple[bool, List[str]]:
    """
    Valida estrutura das regras de porte.

    Args:
        rules: Lista de regras (dicionários)

    Returns:
        Tupla (is_valid, errors)
    """
    errors = []

    if not rules:
        errors.append("Nenhuma regra fornecida")
        return False, errors

    required_fields = [
        ('procedure_code', 'procedureCode'),
        ('minimum_port', 'minimumPort'),
        ('maximum_port', 'maximumPort'),
        ('recommended_port', 'recommendedPort'),
    ]

    seen_codes = set()
    for i, rule in enumerate(rules):
        if not isinstance(rule, dict):
            errors.append(f"Regra {i}: formato inválido")
            continue

        values = {}
        for snake, camel in required_fields:
            if snake not in rule and camel not in rule:
                errors.append(f"Regra {i}: campo '{snake}' ausente")
            else:
                values[snake] = rule.get(snake, rule.get(camel))

        if len(values) < len(required_fields):
            continue

        try:
            low = int(values['minimum_port'])
            high = int(values['maximum_port'])
            recommended = int(values['recommended_port'])
        except (TypeError, ValueError):
            errors.append(f"Regra {i}: portes devem ser inteiros")
            continue

        if not low <= recommended <= high:
            errors.append(f"Regra {i}: esperado minimo <= recomendado <= maximo")

        code = str(values['procedure_code']).strip().upper()
        if code in seen_codes:
            errors.append(f"Regra {i}: código duplicado '{code}'")
        seen_codes.add(code)

    return len(errors) == 0, errors


def require_non_negative(value: Any, field: str) -> float:
    """
    Valida número não negativo.

    Args:
        value: Valor a validar
        field: Nome do campo

    Returns:
        Valor como float
    """
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"{field} is required", field=field)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{field} must be numeric", field=field)
    if math.isnan(number):
        raise InvalidInput(f"{field} must be numeric", field=field)
    if number < 0:
        raise InvalidInput(f"{field} must be >= 0", field=field)
    return number


def parse_port(value: Any, field: str = "reported_port") -> int:
    """
    Converte porte informado para inteiro.

    Aceita inteiros e strings numéricas ("3", " 4 ").
    """
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"{field} is required", field=field)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise InvalidInput(f"{field} must be an integer", field=field)
    text = str(value).strip()
    if not text:
        raise InvalidInput(f"{field} is required", field=field)
    try:
        return int(text)
    except ValueError:
        raise InvalidInput(f"{field} must be numeric", field=field)


def normalize_yes_no(value: Any) -> str:
    """
    Normaliza valor sim/não.

    Args:
        value: Valor a normalizar

    Returns:
        'SIM' ou 'NAO'
    """
    if isinstance(value, bool):
        return 'SIM' if value else 'NAO'
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return 'NAO'

    value_str = str(value).strip().upper()

    if value_str in ['SIM', 'S', 'YES', 'Y', 'TRUE', '1']:
        return 'SIM'
    else:
        return 'NAO'

