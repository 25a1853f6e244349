"""
Model para regras institucionais de validação de porte
"""
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional
from pathlib import Path
from datetime import datetime
import hashlib
import json
import logging

import pandas as pd

from .enums import ProcedureCategory, SurgeryComplexity
from utils.exceptions import InvalidInput
from utils.validation import validate_rules_structure, normalize_yes_no

logger = logging.getLogger(__name__)


def normalize_code(code: Any) -> str:
    """Normaliza código de procedimento para indexação."""
    if code is None:
        return ""
    return str(code).strip().upper()


def _pick(data: Dict[str, Any], snake: str, camel: str, default: Any = None) -> Any:
    # Aceita tanto snake_case quanto o camelCase exportado do banco
    if snake in data:
        return data[snake]
    return data.get(camel, default)


@dataclass
class PortValidationRule:
    """Faixa de porte aceitável para um código de procedimento."""
    procedure_code: str
    minimum_port: int
    maximum_port: int
    recommended_port: int
    procedure_name: str = ""
    category: Optional[ProcedureCategory] = None
    complexity: Optional[SurgeryComplexity] = None
    factors: Dict[str, Any] = field(default_factory=dict)
    is_active: bool = True

    def __post_init__(self):
        if not (self.minimum_port <= self.recommended_port <= self.maximum_port):
            raise InvalidInput(
                f"Regra {self.procedure_code}: esperado minimo <= recomendado <= maximo "
                f"({self.minimum_port}, {self.recommended_port}, {self.maximum_port})",
                field="recommended_port",
            )

    def accepts(self, port: int) -> bool:
        """Verifica se o porte está dentro da faixa da regra."""
        return self.minimum_port <= port <= self.maximum_port

    def to_dict(self) -> Dict[str, Any]:
        return {
            'procedure_code': self.procedure_code,
            'procedure_name': self.procedure_name,
            'category': self.category.value if self.category else None,
            'complexity': self.complexity.value if self.complexity else None,
            'minimum_port': self.minimum_port,
            'maximum_port': self.maximum_port,
            'recommended_port': self.recommended_port,
            'factors': self.factors,
            'is_active': self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PortValidationRule':
        category = data.get('category')
        complexity = data.get('complexity')
        return cls(
            procedure_code=normalize_code(_pick(data, 'procedure_code', 'procedureCode', '')),
            procedure_name=_pick(data, 'procedure_name', 'procedureName', '') or '',
            category=ProcedureCategory.parse(category) if category else None,
            complexity=SurgeryComplexity.parse(complexity) if complexity else None,
            minimum_port=int(_pick(data, 'minimum_port', 'minimumPort')),
            maximum_port=int(_pick(data, 'maximum_port', 'maximumPort')),
            recommended_port=int(_pick(data, 'recommended_port', 'recommendedPort')),
            factors=data.get('factors') or {},
            is_active=bool(_pick(data, 'is_active', 'isActive', True)),
        )


class PortRulesRepository:
    """Repositório em memória das regras de porte, indexado por código."""

    def __init__(self, rules: Optional[List[PortValidationRule]] = None):
        self.rules: List[PortValidationRule] = list(rules or [])
        self._index: Dict[str, PortValidationRule] = {}
        self._metadata: Dict[str, Any] = {}
        self._build_index()

    def add_rule(self, rule: PortValidationRule) -> None:
        """Adiciona (ou substitui) a regra de um código."""
        code = normalize_code(rule.procedure_code)
        self.rules = [r for r in self.rules if normalize_code(r.procedure_code) != code]
        self.rules.append(rule)
        self._build_index()

    def load_from_json(self, filepath: Path) -> None:
        """
        Carrega regras de um arquivo JSON.

        Args:
            filepath: Caminho para o arquivo port_rules.json
        """
        with open(filepath, 'r', encoding='utf-8') as f:
            rules_data = json.load(f)

        is_valid, errors = validate_rules_structure(rules_data)
        if not is_valid:
            raise InvalidInput(
                f"Arquivo de regras inválido: {filepath}",
                details={'errors': errors},
            )

        self.rules = [PortValidationRule.from_dict(r) for r in rules_data]
        self._build_index()
        self._load_metadata(Path(filepath))
        logger.info(f"{len(self.rules)} regras de porte carregadas de {filepath}")

    def load_from_dataframe(self, df: pd.DataFrame, columns: Dict[str, str]) -> int:
        """
        Carrega regras de uma planilha já lida.

        Args:
            df: DataFrame com as regras
            columns: Mapeamento {campo: nome_coluna}

        Returns:
            Número de regras carregadas
        """
        rules = []
        for idx, row in df.iterrows():
            code = row.get(columns['procedure_code'])
            if pd.isna(code) or not str(code).strip():
                logger.warning(f"Linha {idx} sem código de procedimento, ignorada")
                continue
            data = {
                key: (None if pd.isna(row.get(col)) else row.get(col))
                for key, col in columns.items()
                if col in df.columns
            }
            if 'is_active' in data and data['is_active'] is not None:
                data['is_active'] = normalize_yes_no(data['is_active']) == 'SIM'
            try:
                rules.append(PortValidationRule.from_dict(data))
            except (InvalidInput, TypeError, ValueError) as e:
                logger.warning(f"Regra inválida na linha {idx}: {e}")

        self.rules = rules
        self._build_index()
        return len(self.rules)

    def save_to_json(self, filepath: Path) -> None:
        """
        Salva regras em arquivo JSON, com metadados ao lado.

        Args:
            filepath: Caminho para salvar port_rules.json
        """
        filepath = Path(filepath)
        rules_data = [r.to_dict() for r in self.rules]

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(rules_data, f, ensure_ascii=False, indent=2)

        self._save_metadata(filepath.parent / 'rules.meta.json', filepath)

    def _build_index(self) -> None:
        """Constrói índice código -> regra."""
        self._index = {}
        for rule in self.rules:
            key = normalize_code(rule.procedure_code)
            if key:
                self._index[key] = rule

    def _load_metadata(self, rules_filepath: Path) -> None:
        meta_path = rules_filepath.parent / 'rules.meta.json'
        if meta_path.exists():
            with open(meta_path, 'r', encoding='utf-8') as f:
                self._metadata = json.load(f)

    def _save_metadata(self, filepath: Path, rules_filepath: Path) -> None:
        with open(rules_filepath, 'rb') as f:
            sha256_hash = hashlib.sha256(f.read()).hexdigest()

        metadata = {
            'sha256': sha256_hash,
            'rules_count': len(self.rules),
            'active_rules': sum(1 for r in self.rules if r.is_active),
            'generated_at': datetime.now().isoformat(),
        }

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(metadata, f, ensure_ascii=False, indent=2)

        self._metadata = metadata

    def get_by_code(self, procedure_code: str) -> Optional[PortValidationRule]:
        """Busca regra pelo código, ativa ou não."""
        return self._index.get(normalize_code(procedure_code))

    def get_active_rule(self, procedure_code: str) -> Optional[PortValidationRule]:
        """
        Busca a regra ativa de um código de procedimento.

        Returns:
            Regra ativa ou None
        """
        rule = self.get_by_code(procedure_code)
        if rule and rule.is_active:
            return rule
        return None

    def get_all_codes(self) -> List[str]:
        return list(self._index.keys())

    def get_statistics(self) -> Dict[str, Any]:
        """
        Retorna estatísticas das regras.

        Returns:
            Dicionário com estatísticas
        """
        total = len(self.rules)
        active = sum(1 for r in self.rules if r.is_active)

        categories: Dict[str, int] = {}
        for rule in self.rules:
            key = rule.category.value if rule.category else 'SEM_CATEGORIA'
            categories[key] = categories.get(key, 0) + 1

        return {
            'total_rules': total,
            'active_rules': active,
            'inactive_rules': total - active,
            'categories': categories,
            'metadata': self._metadata,
        }
