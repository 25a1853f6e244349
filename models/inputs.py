from __future__ import annotations

from datetime import datetime
from typing import Optional, Dict, List, Any, Type, TypeVar

from pydantic import BaseModel, Field, ConfigDict, ValidationError, field_validator, model_validator

from config import PRICE_BASE_RATES, ENGINE_CONFIG, ANALYTICS_CONFIG, VALIDATION_CONFIG
from utils.date_utils import to_local_naive
from utils.exceptions import InvalidInput
from utils.text_utils import matches_search
from .enums import (
    ProcedureCategory,
    SurgeryComplexity,
    SurgeryStatus,
    AuthorizationStatus,
    AuditStatus,
)
from .procedure import Procedure

M = TypeVar("M", bound=BaseModel)


def parse_request(model_cls: Type[M], data: Any) -> M:
    """
    Valida payload de entrada, convertendo erros do pydantic em InvalidInput.
    """
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        errors = e.errors(include_url=False)
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ())) or None
        raise InvalidInput(
            f"Invalid {model_cls.__name__}: {first.get('msg', 'invalid payload')}",
            field=field,
            details={"errors": [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in errors]},
        ) from e


def _non_empty(v: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError("campo obrigatório vazio")
    return v


def _local_datetime(v: Optional[datetime]) -> Optional[datetime]:
    # Janelas de analytics são em horário local ingênuo
    return to_local_naive(v) if v is not None else None


class CreateProcedureRequest(BaseModel):
    """
    Solicitação de criação de procedimento cirúrgico.
    """
    model_config = ConfigDict(extra="forbid")

    patient_id: str
    procedure_code: str
    procedure_name: str
    description: Optional[str] = None
    category: ProcedureCategory
    subcategory: Optional[str] = None
    complexity: SurgeryComplexity
    estimated_duration: int = Field(ge=0)
    scheduled_date: Optional[datetime] = None

    surgeon_id: Optional[str] = None
    surgeon_name: Optional[str] = None
    assistants: List[str] = Field(default_factory=list)
    anesthesiologist: Optional[str] = None
    operating_room: Optional[str] = None
    hospital: Optional[str] = None

    requires_authorization: bool = False
    created_by: str = "system"

    @field_validator("patient_id", "procedure_code", "procedure_name", "created_by")
    @classmethod
    def _required_text(cls, v: str) -> str:
        return _non_empty(v)

    @field_validator("scheduled_date", mode="after")
    @classmethod
    def _local_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _local_datetime(v)

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v: Any) -> ProcedureCategory:
        return ProcedureCategory.parse(v)

    @field_validator("complexity", mode="before")
    @classmethod
    def _complexity(cls, v: Any) -> SurgeryComplexity:
        return SurgeryComplexity.parse(v)


class ConfirmPorteRequest(BaseModel):
    """
    Confirmação de porte pelo operador. O valor informado é autoritativo.
    """
    model_config = ConfigDict(extra="forbid")

    complexity: SurgeryComplexity
    estimated_duration: int = Field(ge=0)
    base_price: float = Field(ge=0)
    confirmed_by: str
    notes: Optional[str] = None

    @field_validator("confirmed_by")
    @classmethod
    def _required_text(cls, v: str) -> str:
        return _non_empty(v)

    @field_validator("complexity", mode="before")
    @classmethod
    def _complexity(cls, v: Any) -> SurgeryComplexity:
        return SurgeryComplexity.parse(v)


class UpdateProcedureRequest(BaseModel):
    """
    Atualização de campos não classificatórios.

    Porte e status não são aceitos aqui: usam confirmação de porte e
    atualização de status, que registram auditoria própria.
    """
    model_config = ConfigDict(extra="forbid")

    updated_by: str
    procedure_name: Optional[str] = None
    description: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    surgeon_id: Optional[str] = None
    surgeon_name: Optional[str] = None
    assistants: Optional[List[str]] = None
    anesthesiologist: Optional[str] = None
    operating_room: Optional[str] = None
    hospital: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)
    complications: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("updated_by")
    @classmethod
    def _required_text(cls, v: str) -> str:
        return _non_empty(v)

    @field_validator("scheduled_date", mode="after")
    @classmethod
    def _local_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _local_datetime(v)

    def changes(self) -> Dict[str, Any]:
        """Campos informados, já com o nome do atributo do procedimento."""
        data = self.model_dump(exclude_unset=True, exclude={"updated_by"})
        if "procedure_name" in data:
            data["name"] = data.pop("procedure_name")
        return data


class ImportProcedureRequest(BaseModel):
    """
    Procedimento vindo de importação de guias (XML/planilha).
    """
    model_config = ConfigDict(extra="forbid")

    patient_id: str
    patient_name: Optional[str] = None
    code: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    category: ProcedureCategory = ProcedureCategory.GENERAL_SURGERY
    subcategory: Optional[str] = None
    complexity: SurgeryComplexity = SurgeryComplexity.PORTE_2
    status: SurgeryStatus = SurgeryStatus.SCHEDULED
    scheduled_date: Optional[datetime] = None
    performed_date: Optional[datetime] = None
    execution_date: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=0)
    estimated_duration: Optional[int] = Field(default=None, ge=0)
    base_price: Optional[float] = Field(default=None, ge=0)
    reported_port: Optional[int] = None
    complications: Optional[str] = None
    notes: Optional[str] = None
    guia_id: Optional[str] = None
    requires_authorization: bool = False
    hospital: Optional[str] = None
    operating_room: Optional[str] = None
    created_at: Optional[datetime] = None  # data original de cadastro, quando a guia informa
    created_by: str = "system"

    @field_validator("patient_id")
    @classmethod
    def _required_text(cls, v: str) -> str:
        return _non_empty(v)

    @field_validator("scheduled_date", "performed_date", "execution_date", "created_at", mode="after")
    @classmethod
    def _local_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _local_datetime(v)

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v: Any) -> ProcedureCategory:
        return ProcedureCategory.parse(v) if v is not None else ProcedureCategory.GENERAL_SURGERY

    @field_validator("complexity", mode="before")
    @classmethod
    def _complexity(cls, v: Any) -> SurgeryComplexity:
        return SurgeryComplexity.parse(v) if v is not None else SurgeryComplexity.PORTE_2

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v: Any) -> SurgeryStatus:
        return SurgeryStatus.parse(v) if v is not None else SurgeryStatus.SCHEDULED


class ProcedureFilter(BaseModel):
    """
    Filtro de consulta de procedimentos.
    """
    model_config = ConfigDict(extra="forbid")

    patient_id: Optional[str] = None
    surgeon_id: Optional[str] = None
    status: Optional[SurgeryStatus] = None
    statuses: Optional[List[SurgeryStatus]] = None
    complexity: Optional[SurgeryComplexity] = None
    category: Optional[ProcedureCategory] = None
    authorization_status: Optional[AuthorizationStatus] = None
    audit_status: Optional[AuditStatus] = None
    hospital: Optional[str] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None
    scheduled_from: Optional[datetime] = None
    scheduled_to: Optional[datetime] = None
    performed_from: Optional[datetime] = None
    performed_to: Optional[datetime] = None
    performed_only: bool = False
    search: Optional[str] = None
    fuzzy_threshold: Optional[float] = Field(default=None, ge=0, le=1)  # None: apenas substring

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v: Any) -> Optional[SurgeryStatus]:
        return SurgeryStatus.parse(v) if v is not None else None

    @field_validator("statuses", mode="before")
    @classmethod
    def _statuses(cls, v: Any) -> Optional[List[SurgeryStatus]]:
        return [SurgeryStatus.parse(s) for s in v] if v is not None else None

    @field_validator("complexity", mode="before")
    @classmethod
    def _complexity(cls, v: Any) -> Optional[SurgeryComplexity]:
        return SurgeryComplexity.parse(v) if v is not None else None

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v: Any) -> Optional[ProcedureCategory]:
        return ProcedureCategory.parse(v) if v is not None else None

    @field_validator("authorization_status", mode="before")
    @classmethod
    def _authorization(cls, v: Any) -> Optional[AuthorizationStatus]:
        return AuthorizationStatus.parse(v) if v is not None else None

    @field_validator("audit_status", mode="before")
    @classmethod
    def _audit(cls, v: Any) -> Optional[AuditStatus]:
        return AuditStatus.parse(v) if v is not None else None

    @field_validator(
        "created_from", "created_to", "scheduled_from", "scheduled_to", "performed_from", "performed_to",
        mode="after",
    )
    @classmethod
    def _local_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _local_datetime(v)

    def matches(self, procedure: Procedure) -> bool:
        """Verifica se o procedimento atende a todos os critérios informados."""
        if self.patient_id and procedure.patient_id != self.patient_id:
            return False
        if self.surgeon_id and procedure.surgeon_id != self.surgeon_id:
            return False
        if self.status and procedure.status != self.status:
            return False
        if self.statuses is not None and procedure.status not in self.statuses:
            return False
        if self.complexity and procedure.complexity != self.complexity:
            return False
        if self.category and procedure.category != self.category:
            return False
        if self.authorization_status and procedure.authorization_status != self.authorization_status:
            return False
        if self.audit_status and procedure.audit_status != self.audit_status:
            return False
        if self.hospital and procedure.hospital != self.hospital:
            return False
        if not _in_range(procedure.created_at, self.created_from, self.created_to):
            return False
        if not _in_range(procedure.scheduled_date, self.scheduled_from, self.scheduled_to):
            return False
        if not _in_range(procedure.performed_date, self.performed_from, self.performed_to):
            return False
        if self.performed_only and not procedure.is_performed:
            return False
        if self.search and not matches_search(
            self.search,
            [procedure.name, procedure.code, procedure.description],
            threshold=self.fuzzy_threshold,
        ):
            return False
        return True


def _in_range(value: Optional[datetime], start: Optional[datetime], end: Optional[datetime]) -> bool:
    if start is None and end is None:
        return True
    if value is None:
        return False
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True


class Pagination(BaseModel):
    model_config = ConfigDict(extra="forbid")

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class EngineSettings(BaseModel):
    """
    Parâmetros do motor, com padrões vindos de config e sobrescrita via YAML.
    """
    model_config = ConfigDict(extra="forbid")

    price_base_rates: Dict[SurgeryComplexity, float] = Field(
        default_factory=lambda: {SurgeryComplexity(k): float(v) for k, v in PRICE_BASE_RATES.items()}
    )
    price_precision: int = Field(default=ENGINE_CONFIG["price_precision"], ge=0, le=4)
    strict_transitions: bool = ENGINE_CONFIG["strict_transitions"]
    pending_recent_limit: int = Field(default=ENGINE_CONFIG["pending_recent_limit"], ge=1)
    scheduled_window_days: int = Field(default=ENGINE_CONFIG["scheduled_window_days"], ge=1)
    on_time_tolerance_hours: float = Field(default=ANALYTICS_CONFIG["on_time_tolerance_hours"], ge=0)
    complex_min_complexity: SurgeryComplexity = SurgeryComplexity(ANALYTICS_CONFIG["complex_min_complexity"])
    search_fuzzy_threshold: Optional[float] = Field(
        default=VALIDATION_CONFIG["search_fuzzy_threshold"], ge=0, le=1
    )

    @field_validator("price_base_rates", mode="before")
    @classmethod
    def _rates_keys(cls, v: Any) -> Any:
        # Sobrescrita parcial: portes não informados mantêm o valor padrão
        if isinstance(v, dict):
            merged: Dict[SurgeryComplexity, Any] = {
                SurgeryComplexity(k): float(val) for k, val in PRICE_BASE_RATES.items()
            }
            merged.update({SurgeryComplexity.parse(k): val for k, val in v.items()})
            return merged
        return v

    @field_validator("complex_min_complexity", mode="before")
    @classmethod
    def _complexity(cls, v: Any) -> SurgeryComplexity:
        return SurgeryComplexity.parse(v)

    @model_validator(mode="after")
    def _rates_monotonic(self) -> "EngineSettings":
        rates = [self.price_base_rates[c] for c in SurgeryComplexity]
        if any(r < 0 for r in rates):
            raise ValueError("valores base devem ser >= 0")
        if any(b <= a for a, b in zip(rates, rates[1:])):
            raise ValueError("valores base devem crescer com o porte")
        return self
