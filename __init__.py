"""
Lazarus - Motor de Classificação de Porte e Analytics Cirúrgico

Classifica procedimentos cirúrgicos por porte, calcula preço base, valida o
porte informado contra regras institucionais, dispara auditoria para portes
altos e agrega métricas operacionais por período.

Módulos principais:
- models: Modelos de dados (procedimentos, regras de porte, eventos, armazenamento)
- controllers: Lógica de negócio (preço, validação, ciclo de vida, analytics, relatórios)
- utils: Utilitários (exceções, datas, normalização de texto, validação)
- config: Configurações do sistema
"""
from .config import SYSTEM_NAME, SYSTEM_VERSION

__version__ = SYSTEM_VERSION
__all__ = ['SYSTEM_NAME', 'SYSTEM_VERSION']
