"""
Configurações do Motor de Classificação de Porte e Analytics Cirúrgico
"""
from pathlib import Path

# Diretórios base
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = BASE_DIR / "data"
INPUT_DIR = DATA_DIR / "input"
OUTPUT_DIR = DATA_DIR / "output"
LOGS_DIR = BASE_DIR / "logs"


def ensure_directories() -> None:
    """Garante que os diretórios de dados e logs existem."""
    for directory in [INPUT_DIR, OUTPUT_DIR, LOGS_DIR]:
        directory.mkdir(parents=True, exist_ok=True)


# Valor base por porte (R$), antes do multiplicador de duração
PRICE_BASE_RATES = {
    "PORTE_1": 500,
    "PORTE_2": 1500,
    "PORTE_3": 3000,
    "PORTE_4": 5000,
    "PORTE_ESPECIAL": 8000,
}

# Configurações do motor de classificação
ENGINE_CONFIG = {
    "strict_transitions": True,  # Valida o grafo de status antes de persistir
    "pending_recent_limit": 10,  # Itens em "recent_activity" do resumo de pendências
    "price_precision": 2,  # Casas decimais (centavos)
    "scheduled_window_days": 7,  # Janela de "agendados na semana"
}

# Configurações de analytics
ANALYTICS_CONFIG = {
    "on_time_tolerance_hours": 1,  # Tolerância de 1 hora entre agendado e realizado
    "default_period": "month",
    "default_limit": 10,
    "complex_min_complexity": "PORTE_3",  # A partir deste porte o procedimento conta como complexo
}

# Configurações de validação de porte
VALIDATION_CONFIG = {
    "high_severity_diff": 2,  # |reportado - recomendado| >= 2 -> HIGH
    "medium_severity_diff": 1,
    "search_fuzzy_threshold": 0.80,  # Score mínimo para busca textual aproximada
}

# Tópicos de eventos de domínio
EVENT_TOPICS = {
    "ProcedureCreated": "surgery.procedure.created",
    "PorteConfirmed": "surgery.porte.confirmed",
    "SurgeryStatusUpdated": "surgery.status.updated",
    "AuditRequested": "audit.requested",
}

# Mapeamento de colunas da planilha de procedimentos
PROCEDURE_COLUMNS = {
    "id": "ID",
    "code": "Código",
    "name": "Procedimento",
    "category": "Categoria",
    "complexity": "Porte",
    "reported_port": "Porte Informado",
    "estimated_duration": "Duração Estimada (min)",
    "duration": "Duração Real (min)",
    "base_price": "Valor Base",
    "status": "Status",
    "scheduled_date": "Data Agendada",
    "performed_date": "Data Realização",
    "patient_id": "Paciente",
    "hospital": "Hospital",
    "operating_room": "Sala",
    "complications": "Complicações",
    "created_at": "Criado Em",
}

# Mapeamento de colunas da planilha de regras de porte
RULE_COLUMNS = {
    "procedure_code": "Código",
    "procedure_name": "Procedimento",
    "category": "Categoria",
    "complexity": "Porte",
    "minimum_port": "Porte Mínimo",
    "maximum_port": "Porte Máximo",
    "recommended_port": "Porte Recomendado",
    "is_active": "Ativa",
}

# Configurações de logging
LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        "detailed": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "INFO",
            "formatter": "default",
            "stream": "ext://sys.stdout",
        },
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "INFO",
            "formatter": "detailed",
            "filename": str(LOGS_DIR / "porte_engine.log"),
            "maxBytes": 104857600,  # 100MB
            "backupCount": 5,
        },
    },
    "loggers": {
        "openpyxl": {"level": "WARNING", "propagate": True},
    },
    "root": {
        "level": "INFO",
        "handlers": ["console", "file"],
    },
}

# Versão do sistema
SYSTEM_VERSION = "1.0.0"
SYSTEM_NAME = "Lazarus - Motor de Classificação de Porte e Analytics Cirúrgico"
