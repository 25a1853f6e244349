"""
Utilitários para normalização e busca textual de procedimentos
"""
import re
import unicodedata
from typing import Iterable, Optional
from rapidfuzz import fuzz


def normalize_text(text: str) -> str:
    """
    Normaliza texto para comparação.

    Args:
        text: Texto a ser normalizado

    Returns:
        Texto normalizado (sem acentos, minúsculo, sem espaços extras)
    """
    if not isinstance(text, str):
        return ""

    # Remove acentos
    text = unicodedata.normalize('NFKD', text)
    text = text.encode('ASCII', 'ignore').decode('ASCII')

    text = text.lower()

    # Remove caracteres especiais, mantém espaços e números
    text = re.sub(r'[^a-z0-9\s]', ' ', text)

    text = ' '.join(text.split())

    return text


def matches_search(term: str, fields: Iterable[Optional[str]], threshold: Optional[float] = None) -> bool:
    """
    Verifica se o termo de busca aparece em algum dos campos.

    Busca por substring sem acentos e sem distinção de maiúsculas; quando
    threshold é informado, aceita também match aproximado (erros de digitação).

    Args:
        term: Termo de busca
        fields: Campos do registro (nome, código, descrição)
        threshold: Score mínimo do match aproximado (None desativa)

    Returns:
        True se houver match
    """
    needle = normalize_text(term)
    if not needle:
        return True

    candidates = [normalize_text(f) for f in fields if f]
    if any(needle in candidate for candidate in candidates):
        return True

    if threshold is None:
        return False

    for candidate in candidates:
        score = fuzz.partial_ratio(needle, candidate) / 100.0
        if score >= threshold:
            return True
    return False


def format_severity_reason(severity: str) -> str:
    """
    Formata severidade de divergência em texto legível.

    Args:
        severity: Código da severidade

    Returns:
        Descrição legível
    """
    reasons = {
        "INFO": "Porte dentro da faixa aceitável",
        "LOW": "Fora da faixa com porte igual ao recomendado (regra inconsistente)",
        "MEDIUM": "Porte um nível distante do recomendado",
        "HIGH": "Porte dois ou mais níveis distante do recomendado",
        "SEM_REGRA": "Nenhuma regra ativa para o procedimento",
    }

    return reasons.get(severity, severity)
