"""
Base Agent - Classe abstrata para os agentes do Zela.

Cada agente especializado herda desta classe e implementa sua lógica específica.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Optional

from backend.core.identidade import IdentidadeTelefone

logger = logging.getLogger(__name__)


class OrigemMensagem(str, Enum):
    """Origem da mensagem do usuário"""
    WHATSAPP_TEXTO = "whatsapp_texto"
    WHATSAPP_AUDIO = "whatsapp_audio"
    WEB = "web"


@dataclass
class AgentContext:
    """Contexto compartilhado entre agentes"""
    identidade: IdentidadeTelefone
    mensagem_original: str
    origem: OrigemMensagem = OrigemMensagem.WHATSAPP_TEXTO
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    # Preenchidos pelo gateway
    conversa: Optional[object] = None  # ContextoConversa
    intencao: Optional[object] = None  # ResultadoIntencao

    @property
    def telefone(self) -> str:
        return str(self.identidade)


@dataclass
class AgentResponse:
    """Resposta padronizada de qualquer agente"""
    sucesso: bool
    mensagem: str
    dados: dict = field(default_factory=dict)

    # Controle de fluxo
    requer_confirmacao: bool = False
    ultima_acao: Optional[str] = None

    # Metadados
    confianca: float = 1.0
    codigo_transacao: Optional[str] = None


class BaseAgent(ABC):
    """
    Classe base abstrata para todos os agentes.

    Cada agente deve implementar process().
    """

    name: str = "base"
    description: str = "Agente base"

    def __init__(self, db_session=None):
        self.db = db_session

    @abstractmethod
    async def process(self, context: AgentContext) -> AgentResponse:
        """
        Processa o contexto e retorna uma resposta.

        Args:
            context: Contexto com dados do usuário e mensagem
        """
        pass

    def log(self, message: str, level: str = "info"):
        """Log padronizado com nome do agente"""
        prefix = f"[{self.name.upper()}]"
        log_func = getattr(logger, level, logger.info)
        log_func(f"{prefix} {message}")
