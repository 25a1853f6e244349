"""
Hierarquia de exceções do motor de classificação de porte

Cada categoria de falha tem um tipo próprio com código e detalhes
estruturados, para que a camada de entrada possa traduzi-las.
"""
from typing import Optional, Dict, Any


class PorteEngineError(Exception):
    """Exceção base do motor."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Converte a exceção em dicionário para respostas de API."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidInput(PorteEngineError):
    """Campo ausente ou malformado, token de enum desconhecido, número negativo."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        extra = {"field": field} if field else {}
        super().__init__(
            message=message,
            code="INVALID_INPUT",
            details={**extra, **(details or {})}
        )
        self.field = field


class NotFound(PorteEngineError):
    """Paciente ou procedimento referenciado não existe."""

    def __init__(self, entity: str, identifier: Any):
        super().__init__(
            message=f"{entity} not found",
            code="NOT_FOUND",
            details={"entity": entity, "id": identifier}
        )
        self.entity = entity
        self.identifier = identifier


class StorageFailure(PorteEngineError):
    """Erro reportado pelo colaborador de armazenamento."""

    def __init__(
        self,
        message: str,
        operation: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="STORAGE_FAILURE",
            details={"operation": operation, **(details or {})}
        )
        self.operation = operation


class PublishFailure(PorteEngineError):
    """Falha ao publicar evento de domínio. Nunca invalida a operação principal."""

    def __init__(
        self,
        message: str,
        topic: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="PUBLISH_FAILURE",
            details={"topic": topic, **(details or {})}
        )
        self.topic = topic
