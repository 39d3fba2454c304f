# Zela Financeiro - Agentes
from backend.services.agents.base_agent import (
    BaseAgent,
    AgentResponse,
    AgentContext,
    OrigemMensagem
)
from backend.services.agents.intent_classifier import (
    ResultadoIntencao,
    TipoIntencao,
    classificar_intencao
)
from backend.services.agents.gateway_agent import GatewayAgent
from backend.services.agents.consultant_agent import ConsultantAgent
from backend.services.agents.processor import processar_mensagem

__all__ = [
    "BaseAgent",
    "AgentResponse",
    "AgentContext",
    "OrigemMensagem",
    "ResultadoIntencao",
    "TipoIntencao",
    "classificar_intencao",
    "GatewayAgent",
    "ConsultantAgent",
    "processar_mensagem",
]
