"""
Controller do ciclo de vida de procedimentos cirúrgicos

Orquestra preço, validação de porte e política de auditoria para criar,
confirmar porte e mudar status de procedimentos. Toda persistência passa
pelo Storage; eventos são publicados somente depois da escrita.
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from models import (
    SurgeryStatus,
    AuthorizationStatus,
    AuditStatus,
    Procedure,
    Patient,
    PortValidation,
    AuditLogEntry,
    PortVerdict,
    PendingSummary,
    Page,
    DomainEvent,
    CommandResult,
    EventPublisher,
    Storage,
    EngineSettings,
    parse_request,
    CreateProcedureRequest,
    ConfirmPorteRequest,
    UpdateProcedureRequest,
    ImportProcedureRequest,
    ProcedureFilter,
    Pagination,
)
from utils import InvalidInput, NotFound, StorageFailure, start_of_day, to_datetime
from .price_model import PriceModel
from .audit_policy import AuditPolicy
from .port_validator import PortValidator, RuleRepository

logger = logging.getLogger(__name__)

# Grafo de transições de status
ALLOWED_TRANSITIONS = {
    SurgeryStatus.SCHEDULED: {SurgeryStatus.CONFIRMED, SurgeryStatus.CANCELLED, SurgeryStatus.POSTPONED},
    SurgeryStatus.CONFIRMED: {SurgeryStatus.IN_PROGRESS, SurgeryStatus.CANCELLED, SurgeryStatus.POSTPONED},
    SurgeryStatus.IN_PROGRESS: {SurgeryStatus.COMPLETED, SurgeryStatus.CANCELLED, SurgeryStatus.POSTPONED},
    SurgeryStatus.POSTPONED: {SurgeryStatus.SCHEDULED, SurgeryStatus.CONFIRMED, SurgeryStatus.CANCELLED},
    SurgeryStatus.COMPLETED: set(),
    SurgeryStatus.CANCELLED: set(),
}


def _audit_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if hasattr(value, 'value'):
        return value.value
    return value


class ClassificationEngine:
    """Motor de classificação e ciclo de vida de procedimentos."""

    def __init__(
        self,
        storage: Storage,
        publisher: Optional[EventPublisher] = None,
        rules: Optional[RuleRepository] = None,
        settings: Optional[EngineSettings] = None,
        price_model: Optional[PriceModel] = None,
        audit_policy: Optional[AuditPolicy] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Inicializa o motor.

        Args:
            storage: Colaborador de armazenamento
            publisher: Publicador de eventos (None = eventos ficam pendentes no resultado)
            rules: Repositório de regras de porte (usa o storage se None)
            settings: Parâmetros do motor
            price_model: Modelo de preço (derivado de settings se None)
            audit_policy: Política de auditoria
            clock: Fonte de "agora"
        """
        self.storage = storage
        self.publisher = publisher
        self.settings = settings or EngineSettings()
        self.price_model = price_model or PriceModel(self.settings)
        self.audit_policy = audit_policy or AuditPolicy()
        self.validator = PortValidator(rules or storage)
        self.clock = clock

    # Ciclo de vida

    def create(self, request: Any) -> CommandResult:
        """
        Cria um procedimento em SCHEDULED com preço derivado do porte.

        Args:
            request: CreateProcedureRequest ou dicionário equivalente

        Returns:
            CommandResult com o procedimento e os eventos emitidos
        """
        req = parse_request(CreateProcedureRequest, request)

        patient = self.storage.find_patient(req.patient_id)
        if patient is None:
            raise NotFound("Patient", req.patient_id)

        base_price = self.price_model.price(req.complexity, req.estimated_duration)

        data = {
            'code': req.procedure_code,
            'name': req.procedure_name,
            'description': req.description,
            'category': req.category,
            'subcategory': req.subcategory,
            'complexity': req.complexity,
            'estimated_duration': req.estimated_duration,
            'base_price': base_price,
            'status': SurgeryStatus.SCHEDULED,
            'scheduled_date': req.scheduled_date,
            'surgeon_id': req.surgeon_id,
            'surgeon_name': req.surgeon_name,
            'assistants': list(req.assistants),
            'anesthesiologist': req.anesthesiologist,
            'operating_room': req.operating_room,
            'hospital': req.hospital,
            'patient_id': req.patient_id,
            'requires_authorization': req.requires_authorization,
            'authorization_status': self._initial_authorization(req.requires_authorization),
            'audit_status': AuditStatus.PENDING_AUDIT,
            'created_by': req.created_by,
        }

        try:
            procedure = self.storage.create_procedure(data)
        except StorageFailure as e:
            logger.error(f"Falha ao criar procedimento {req.procedure_code}: {e}")
            raise

        events = [self._procedure_created(procedure, patient)]
        if self.audit_policy.requires_audit(procedure.complexity):
            events.append(self._audit_requested(procedure))

        result = CommandResult(procedure=procedure, events=events)
        self._dispatch(result)

        logger.info(
            f"Procedimento criado: {procedure.id} ({procedure.code}, "
            f"{procedure.complexity.value}, paciente {procedure.patient_id})"
        )
        return result

    def confirm_porte(self, procedure_id: str, confirmation: Any) -> CommandResult:
        """
        Confirma o porte informado pelo operador.

        Porte, duração e preço são sobrescritos com os valores confirmados;
        o preço confirmado não é recalculado. A validação de porte não é
        reexecutada aqui.

        Args:
            procedure_id: ID do procedimento
            confirmation: ConfirmPorteRequest ou dicionário equivalente

        Returns:
            CommandResult
        """
        req = parse_request(ConfirmPorteRequest, confirmation)
        current = self._require_procedure(procedure_id)

        patch = {
            'complexity': req.complexity,
            'estimated_duration': req.estimated_duration,
            'base_price': req.base_price,
            'updated_by': req.confirmed_by,
        }
        try:
            updated = self.storage.update_procedure(procedure_id, patch)
        except StorageFailure as e:
            logger.error(f"Falha ao confirmar porte de {procedure_id}: {e}")
            raise

        new_values = updated.classification_snapshot()
        new_values['notes'] = req.notes
        new_values['action'] = 'PORTE_CONFIRMED'
        self.storage.append_audit_log(AuditLogEntry(
            action='PORTE_CONFIRMED',
            entity='PROCEDURE',
            entity_id=procedure_id,
            user_id=req.confirmed_by,
            user_role='SURGEON',
            old_values=current.classification_snapshot(),
            new_values=new_values,
            patient_id=current.patient_id,
            procedure_id=procedure_id,
            created_at=self.clock(),
        ))

        result = CommandResult(procedure=updated, events=[
            self._event('PorteConfirmed', updated.to_dict()),
        ])
        self._dispatch(result)

        logger.info(f"Porte confirmado: {procedure_id} -> {req.complexity.value} por {req.confirmed_by}")
        return result

    def update_status(
        self,
        procedure_id: str,
        new_status: Any,
        actor: str,
        performed_at: Any = None,
    ) -> CommandResult:
        """
        Atualiza o status do procedimento.

        Com strict_transitions ativo, só transições do grafo são aceitas.
        Ao concluir, performed_date é preenchida se ainda estiver vazia.

        Args:
            procedure_id: ID do procedimento
            new_status: Novo status (membro ou token)
            actor: Quem realizou a mudança
            performed_at: Data de realização (apenas para COMPLETED)

        Returns:
            CommandResult
        """
        status = SurgeryStatus.parse(new_status)
        if not actor or not str(actor).strip():
            raise InvalidInput("updated_by is required", field="updated_by")

        current = self._require_procedure(procedure_id)

        if self.settings.strict_transitions and current.status.is_terminal:
            raise InvalidInput(
                f"Procedimento em status terminal: {current.status.value}",
                field="status",
                details={'from': current.status.value, 'to': status.value},
            )
        if self.settings.strict_transitions and status not in ALLOWED_TRANSITIONS[current.status]:
            raise InvalidInput(
                f"Transição de status inválida: {current.status.value} -> {status.value}",
                field="status",
                details={'from': current.status.value, 'to': status.value},
            )

        patch: Dict[str, Any] = {'status': status, 'updated_by': actor}
        if status == SurgeryStatus.COMPLETED:
            if performed_at is not None:
                patch['performed_date'] = to_datetime(performed_at, "performed_at")
            elif current.performed_date is None:
                patch['performed_date'] = self.clock()

        try:
            updated = self.storage.update_procedure(procedure_id, patch)
        except StorageFailure as e:
            logger.error(f"Falha ao atualizar status de {procedure_id}: {e}")
            raise

        self.storage.append_audit_log(AuditLogEntry(
            action='UPDATE',
            entity='PROCEDURE',
            entity_id=procedure_id,
            user_id=actor,
            user_role='MEDICAL_STAFF',
            old_values={'status': current.status.value},
            new_values={'status': status.value},
            patient_id=current.patient_id,
            procedure_id=procedure_id,
            created_at=self.clock(),
        ))

        result = CommandResult(procedure=updated, events=[
            self._event('SurgeryStatusUpdated', updated.to_dict()),
        ])
        self._dispatch(result)

        logger.info(f"Status atualizado: {procedure_id} {current.status.value} -> {status.value} por {actor}")
        return result

    def update_details(self, procedure_id: str, request: Any) -> CommandResult:
        """Atualiza campos não classificatórios (equipe, sala, datas, notas)."""
        req = parse_request(UpdateProcedureRequest, request)
        current = self._require_procedure(procedure_id)

        changes = req.changes()
        if not changes:
            return CommandResult(procedure=current)

        patch = dict(changes)
        patch['updated_by'] = req.updated_by
        updated = self.storage.update_procedure(procedure_id, patch)

        self.storage.append_audit_log(AuditLogEntry(
            action='UPDATE',
            entity='PROCEDURE',
            entity_id=procedure_id,
            user_id=req.updated_by,
            user_role='MEDICAL_STAFF',
            old_values={k: _audit_value(getattr(current, k)) for k in changes},
            new_values={k: _audit_value(v) for k, v in changes.items()},
            patient_id=current.patient_id,
            procedure_id=procedure_id,
            created_at=self.clock(),
        ))

        logger.info(f"Procedimento atualizado: {procedure_id} ({', '.join(sorted(changes))})")
        return CommandResult(procedure=updated)

    def import_procedure(self, request: Any) -> CommandResult:
        """
        Importa procedimento vindo de guia (XML/planilha).

        Cria o paciente quando não existe e registra a validação de porte
        quando um porte informado acompanha a guia. Falha ao registrar a
        validação não impede a importação.
        """
        req = parse_request(ImportProcedureRequest, request)

        code = req.code or f"PROC-{uuid.uuid4().hex[:12].upper()}"
        name = req.name or req.description or 'Procedimento Importado'
        estimated = req.estimated_duration if req.estimated_duration is not None else (req.duration or 0)
        base_price = req.base_price
        if base_price is None:
            base_price = self.price_model.price(req.complexity, estimated)

        verdict = None
        if req.reported_port is not None:
            verdict = self.validator.validate(code, req.reported_port)

        patient = self.storage.find_patient(req.patient_id)
        if patient is None:
            patient = self.storage.create_patient(req.patient_id, req.patient_name or 'Paciente Importado')
            logger.info(f"Paciente criado na importação: {req.patient_id}")

        data = {
            'code': code,
            'name': name,
            'description': req.description,
            'category': req.category,
            'subcategory': req.subcategory,
            'complexity': req.complexity,
            'estimated_duration': estimated,
            'duration': req.duration,
            'base_price': base_price,
            'suggested_port': verdict.expected_port if verdict else None,
            'actual_port': req.reported_port,
            'status': req.status,
            'scheduled_date': req.scheduled_date or req.execution_date,
            'performed_date': req.performed_date or req.execution_date,
            'complications': req.complications,
            'notes': req.notes or (f"Importado da guia {req.guia_id}" if req.guia_id else None),
            'hospital': req.hospital,
            'operating_room': req.operating_room,
            'patient_id': patient.id,
            'requires_authorization': req.requires_authorization,
            'authorization_status': self._initial_authorization(req.requires_authorization),
            'audit_status': AuditStatus.PENDING_AUDIT,
            'created_by': req.created_by,
        }
        if req.created_at is not None:
            data['created_at'] = req.created_at
        try:
            procedure = self.storage.create_procedure(data)
        except StorageFailure as e:
            logger.error(f"Falha ao importar procedimento {code}: {e}")
            raise

        events = [self._procedure_created(procedure, patient)]
        if self.audit_policy.requires_audit(procedure.complexity):
            events.append(self._audit_requested(procedure))
        result = CommandResult(procedure=procedure, events=events)

        if verdict is not None:
            try:
                self._record_validation(procedure.id, verdict, 'system')
            except StorageFailure as e:
                logger.error(f"Falha ao registrar validação de porte de {procedure.id}: {e}")
                result.warnings.append(f"Validação de porte não registrada: {e.message}")

        self._dispatch(result)
        logger.info(f"Procedimento importado: {procedure.id} ({procedure.code})")
        return result

    # Validação

    def validate_porte(
        self,
        procedure_code: Any,
        reported_port: Any,
        procedure_id: Optional[str] = None,
        validated_by: Optional[str] = None,
    ) -> Tuple[PortVerdict, Optional[PortValidation]]:
        """
        Valida porte e, se procedure_id for informado, registra a validação.

        Returns:
            Tupla (veredito, registro persistido ou None)
        """
        if procedure_id is not None:
            self._require_procedure(procedure_id)

        verdict = self.validator.validate(procedure_code, reported_port)

        record = None
        if procedure_id is not None:
            record = self._record_validation(procedure_id, verdict, validated_by or 'system')
        return verdict, record

    # Consultas

    def get_procedure(self, procedure_id: str) -> Procedure:
        return self._require_procedure(procedure_id)

    def search_procedures(self, filters: Any = None, pagination: Any = None) -> Page:
        """
        Busca paginada de procedimentos, mais recentes primeiro.
        """
        flt = parse_request(ProcedureFilter, filters or {})
        page = parse_request(Pagination, pagination or {})
        if flt.fuzzy_threshold is None:
            flt = flt.model_copy(update={"fuzzy_threshold": self.settings.search_fuzzy_threshold})

        items = self.storage.query_procedures(flt, page, order_by='created_at', descending=True)
        total = self.storage.count_procedures(flt)
        return Page(items=items, page=page.page, limit=page.limit, total=total)

    def pending_summary(self, now: Optional[datetime] = None) -> PendingSummary:
        """
        Resumo dos procedimentos pendentes (SCHEDULED e CONFIRMED).

        Os itens de recent_activity vêm do mais antigo para o mais novo, para
        triagem em ordem de chegada.
        """
        now = to_datetime(now, "now") if now is not None else self.clock()
        pending = self.storage.query_procedures(
            ProcedureFilter(statuses=[s for s in SurgeryStatus if s.is_pending]),
            order_by='created_at',
            descending=False,
        )

        today = start_of_day(now)
        tomorrow = today + timedelta(days=1)
        window_end = today + timedelta(days=self.settings.scheduled_window_days)

        def scheduled_between(p: Procedure, start: datetime, end: datetime) -> bool:
            return p.scheduled_date is not None and start <= p.scheduled_date < end

        return PendingSummary(
            total_pending=len(pending),
            pending_authorization=sum(
                1 for p in pending
                if p.requires_authorization and p.authorization_status == AuthorizationStatus.PENDING
            ),
            pending_audit=sum(1 for p in pending if self.audit_policy.requires_audit(p.complexity)),
            scheduled_today=sum(1 for p in pending if scheduled_between(p, today, tomorrow)),
            scheduled_this_week=sum(1 for p in pending if scheduled_between(p, today, window_end)),
            recent_activity=pending[:self.settings.pending_recent_limit],
        )

    # Eventos

    def publish_events(self, result: CommandResult) -> List[str]:
        """
        Publica os eventos pendentes de um resultado com o publicador informado.

        Returns:
            Avisos de falha de publicação
        """
        self._dispatch(result)
        return result.warnings

    def _dispatch(self, result: CommandResult) -> None:
        if self.publisher is None:
            return
        for event in result.events:
            try:
                self.publisher.publish(event.topic, event.to_message())
            except Exception as e:
                # Falha de notificação não desfaz a escrita já confirmada
                logger.warning(f"Falha ao publicar evento {event.event_type} em {event.topic}: {e}")
                result.warnings.append(f"{event.event_type}: {e}")

    def _event(self, event_type: str, payload: Dict[str, Any]) -> DomainEvent:
        return DomainEvent(event_type=event_type, payload=payload, occurred_at=self.clock())

    def _procedure_created(self, procedure: Procedure, patient: Patient) -> DomainEvent:
        payload = procedure.to_dict()
        payload['patient_name'] = patient.full_name
        return self._event('ProcedureCreated', payload)

    def _audit_requested(self, procedure: Procedure) -> DomainEvent:
        priority = self.audit_policy.audit_priority(procedure.complexity)
        return self._event('AuditRequested', {
            'patient_id': procedure.patient_id,
            'procedure_id': procedure.id,
            'type': 'PORTE_CLASSIFICATION',
            'priority': priority.value,
            'description': f"Auditoria de classificação de porte para {procedure.name}",
            'requested_by': 'system',
            'metadata': procedure.classification_snapshot(),
        })

    # Auxiliares

    def _require_procedure(self, procedure_id: str) -> Procedure:
        if not procedure_id or not str(procedure_id).strip():
            raise InvalidInput("procedure id is required", field="id")
        procedure = self.storage.get_procedure(procedure_id)
        if procedure is None:
            raise NotFound("Procedure", procedure_id)
        return procedure

    def _record_validation(self, procedure_id: str, verdict: PortVerdict, validated_by: str) -> PortValidation:
        return self.storage.create_port_validation({
            'procedure_id': procedure_id,
            'suggested_port': verdict.expected_port,
            'actual_port': verdict.reported_port,
            'is_valid': verdict.is_valid,
            'discrepancy': verdict.discrepancy,
            'reason': verdict.message,
            'validated_by': validated_by,
            'validated_at': self.clock(),
        })

    @staticmethod
    def _initial_authorization(requires_authorization: bool) -> AuthorizationStatus:
        if requires_authorization:
            return AuthorizationStatus.PENDING
        return AuthorizationStatus.NOT_REQUIRED
