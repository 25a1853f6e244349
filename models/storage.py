"""
Contrato de armazenamento e implementação em memória

O motor só conversa com o armazenamento por este contrato. A implementação
em memória serve aos testes e aos scripts de linha de comando; bancos reais
ficam fora deste pacote.
"""
from dataclasses import replace
from datetime import datetime, date
from typing import Any, Callable, Dict, List, Optional, Protocol
import copy
import logging
import threading
import uuid

import pandas as pd

from utils.exceptions import StorageFailure
from .inputs import ProcedureFilter, Pagination
from .port_rules import PortRulesRepository, PortValidationRule, normalize_code
from .procedure import Patient, Procedure, PortValidation, AuditLogEntry

logger = logging.getLogger(__name__)

AGGREGATE_KEYS = {'code', 'name', 'category', 'complexity', 'status', 'hospital', 'operating_room'}


class Storage(Protocol):
    def find_patient(self, patient_id: str) -> Optional[Patient]: ...

    def create_patient(self, patient_id: str, full_name: str = ..., birth_date: Optional[date] = None) -> Patient: ...

    def create_procedure(self, data: Dict[str, Any]) -> Procedure: ...

    def get_procedure(self, procedure_id: str) -> Optional[Procedure]: ...

    def update_procedure(self, procedure_id: str, patch: Dict[str, Any]) -> Procedure: ...

    def query_procedures(
        self,
        filter: ProcedureFilter,
        pagination: Optional[Pagination] = None,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> List[Procedure]: ...

    def count_procedures(self, filter: ProcedureFilter) -> int: ...

    def aggregate_procedures(self, group_keys: List[str], filter: ProcedureFilter) -> List[Dict[str, Any]]: ...

    def append_audit_log(self, entry: AuditLogEntry) -> None: ...

    def get_active_rule(self, procedure_code: str) -> Optional[PortValidationRule]: ...

    def create_port_validation(self, record: Dict[str, Any]) -> PortValidation: ...


def _sort_key(attribute: str, descending: bool) -> Callable[[Procedure], Any]:
    # Valores ausentes sempre ao final
    def key(procedure: Procedure):
        value = getattr(procedure, attribute)
        if descending:
            return (value is not None, value)
        return (value is None, value)
    return key


class InMemoryStorage:
    """Armazenamento em memória, protegido por lock reentrante."""

    def __init__(
        self,
        rules_repository: Optional[PortRulesRepository] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.rules_repository = rules_repository or PortRulesRepository()
        self.clock = clock
        self._patients: Dict[str, Patient] = {}
        self._procedures: Dict[str, Procedure] = {}
        self._codes: Dict[str, str] = {}  # código normalizado -> id
        self._audit_logs: List[AuditLogEntry] = []
        self._port_validations: List[PortValidation] = []
        self._lock = threading.RLock()

    # Pacientes

    def find_patient(self, patient_id: str) -> Optional[Patient]:
        with self._lock:
            patient = self._patients.get(patient_id)
            return copy.deepcopy(patient) if patient else None

    def create_patient(
        self,
        patient_id: str,
        full_name: str = "Paciente Importado",
        birth_date: Optional[date] = None,
    ) -> Patient:
        with self._lock:
            if patient_id in self._patients:
                raise StorageFailure(f"Patient {patient_id} already exists", operation="create_patient")
            patient = Patient(
                id=patient_id,
                full_name=full_name,
                birth_date=birth_date,
                created_at=self.clock(),
            )
            self._patients[patient_id] = patient
            return copy.deepcopy(patient)

    # Procedimentos

    def create_procedure(self, data: Dict[str, Any]) -> Procedure:
        with self._lock:
            code = normalize_code(data.get('code'))
            if code in self._codes:
                raise StorageFailure(
                    "Procedure code already exists",
                    operation="create_procedure",
                    details={'code': data.get('code')},
                )
            now = self.clock()
            fields = dict(data)
            fields.setdefault('id', uuid.uuid4().hex)
            fields.setdefault('created_at', now)
            fields.setdefault('updated_at', now)
            try:
                procedure = Procedure(**fields)
            except TypeError as e:
                raise StorageFailure(str(e), operation="create_procedure") from e

            if procedure.id in self._procedures:
                raise StorageFailure(f"Procedure {procedure.id} already exists", operation="create_procedure")

            self._procedures[procedure.id] = procedure
            self._codes[code] = procedure.id
            return copy.deepcopy(procedure)

    def get_procedure(self, procedure_id: str) -> Optional[Procedure]:
        with self._lock:
            procedure = self._procedures.get(procedure_id)
            return copy.deepcopy(procedure) if procedure else None

    def update_procedure(self, procedure_id: str, patch: Dict[str, Any]) -> Procedure:
        with self._lock:
            current = self._procedures.get(procedure_id)
            if current is None:
                raise StorageFailure(
                    f"Procedure {procedure_id} does not exist",
                    operation="update_procedure",
                )
            if 'id' in patch or 'code' in patch:
                raise StorageFailure("id and code are immutable", operation="update_procedure")
            fields = dict(patch)
            fields.setdefault('updated_at', self.clock())
            try:
                updated = replace(current, **fields)
            except TypeError as e:
                raise StorageFailure(str(e), operation="update_procedure") from e
            self._procedures[procedure_id] = updated
            return copy.deepcopy(updated)

    def query_procedures(
        self,
        filter: ProcedureFilter,
        pagination: Optional[Pagination] = None,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> List[Procedure]:
        if order_by not in Procedure.__dataclass_fields__:
            raise StorageFailure(f"Unknown order field: {order_by}", operation="query_procedures")
        with self._lock:
            matches = [
                p for p in self._procedures.values()
                if filter.matches(p)
            ]
            matches.sort(key=_sort_key(order_by, descending), reverse=descending)
            if pagination is not None:
                matches = matches[pagination.offset:pagination.offset + pagination.limit]
            return [copy.deepcopy(p) for p in matches]

    def count_procedures(self, filter: ProcedureFilter) -> int:
        with self._lock:
            return sum(
                1 for p in self._procedures.values()
                if filter.matches(p)
            )

    def aggregate_procedures(self, group_keys: List[str], filter: ProcedureFilter) -> List[Dict[str, Any]]:
        """
        Agrupa procedimentos e soma preço e duração.

        Args:
            group_keys: Campos de agrupamento (code, name, category, ...)
            filter: Filtro aplicado antes do agrupamento

        Returns:
            Lista de dicionários {chaves..., count, total_price, total_duration}
        """
        unknown = set(group_keys) - AGGREGATE_KEYS
        if not group_keys or unknown:
            raise StorageFailure(
                f"Invalid group keys: {sorted(unknown) or group_keys}",
                operation="aggregate_procedures",
            )

        procedures = self.query_procedures(filter)
        if not procedures:
            return []

        rows = []
        for p in procedures:
            row = p.to_dict()
            row['effective_duration'] = p.effective_duration
            rows.append(row)
        df = pd.DataFrame(rows)

        grouped = (
            df.groupby(group_keys, dropna=False, sort=False)
            .agg(
                count=('id', 'size'),
                total_price=('base_price', 'sum'),
                total_duration=('effective_duration', 'sum'),
            )
            .reset_index()
        )

        result = []
        for record in grouped.to_dict(orient='records'):
            item = {key: (None if pd.isna(record[key]) else record[key]) for key in group_keys}
            item['count'] = int(record['count'])
            item['total_price'] = float(record['total_price'])
            item['total_duration'] = float(record['total_duration'])
            result.append(item)
        return result

    # Auditoria e validações

    def append_audit_log(self, entry: AuditLogEntry) -> None:
        with self._lock:
            if entry.created_at is None:
                entry = replace(entry, created_at=self.clock())
            self._audit_logs.append(entry)

    def list_audit_logs(self, entity_id: Optional[str] = None) -> List[AuditLogEntry]:
        with self._lock:
            return [e for e in self._audit_logs if entity_id is None or e.entity_id == entity_id]

    def get_active_rule(self, procedure_code: str) -> Optional[PortValidationRule]:
        return self.rules_repository.get_active_rule(procedure_code)

    def create_port_validation(self, record: Dict[str, Any]) -> PortValidation:
        with self._lock:
            fields = dict(record)
            fields.setdefault('id', uuid.uuid4().hex)
            fields.setdefault('validated_at', self.clock())
            try:
                validation = PortValidation(**fields)
            except TypeError as e:
                raise StorageFailure(str(e), operation="create_port_validation") from e
            self._port_validations.append(validation)
            return validation

    def list_port_validations(self, procedure_id: Optional[str] = None) -> List[PortValidation]:
        with self._lock:
            return [
                v for v in self._port_validations
                if procedure_id is None or v.procedure_id == procedure_id
            ]
