"""
Eventos de domínio e publicadores
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol
import logging
import threading

from config import EVENT_TOPICS
from .procedure import Procedure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DomainEvent:
    """Evento pendente de publicação."""
    event_type: str
    payload: Dict[str, Any]
    occurred_at: datetime

    @property
    def topic(self) -> str:
        return EVENT_TOPICS.get(self.event_type, self.event_type)

    def to_message(self) -> Dict[str, Any]:
        return {
            'eventType': self.event_type,
            'timestamp': self.occurred_at.isoformat(),
            'data': self.payload,
        }


@dataclass
class CommandResult:
    """
    Resultado de uma operação de ciclo de vida.

    O registro já está persistido quando o resultado é montado; os eventos
    são publicados depois, e falhas de publicação viram avisos.
    """
    procedure: Procedure
    events: List[DomainEvent] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def event_types(self) -> List[str]:
        return [e.event_type for e in self.events]


class EventPublisher(Protocol):
    def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        ...


class InMemoryEventPublisher:
    """Publicador que guarda as mensagens em memória."""

    def __init__(self):
        self.published: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            self.published.append({'topic': topic, 'payload': payload})

    def topics(self) -> List[str]:
        return [m['topic'] for m in self.published]

    def event_types(self) -> List[str]:
        return [m['payload'].get('eventType') for m in self.published]


class LoggingEventPublisher:
    """Publicador que apenas registra os eventos no log."""

    def __init__(self, level: int = logging.INFO, name: Optional[str] = None):
        self.level = level
        self._logger = logging.getLogger(name or __name__)

    def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        self._logger.log(self.level, f"Evento publicado em {topic}: {payload.get('eventType')}")
