"""
Processor - Ponto de entrada para processar mensagens recebidas.
"""

import logging

from sqlalchemy.orm import Session

from backend.core.identidade import canonicalizar
from backend.services.agents.base_agent import AgentContext, AgentResponse, OrigemMensagem
from backend.services.agents.gateway_agent import GatewayAgent

logger = logging.getLogger(__name__)


async def processar_mensagem(
    telefone: str,
    mensagem: str,
    origem: str = "whatsapp_texto",
    db: Session | None = None,
) -> AgentResponse:
    """
    Processa mensagem usando o Gateway Agent.

    Args:
        telefone: Número do remetente em qualquer formato
        mensagem: Texto da mensagem (já transcrito, se era áudio)
        origem: whatsapp_texto, whatsapp_audio ou web
        db: Sessão do banco de dados

    Returns:
        AgentResponse; erros inesperados viram uma resposta amigável
    """
    identidade = canonicalizar(telefone)
    if identidade.desconhecida:
        logger.warning(f"[Processor] Remetente inválido: {telefone!r}")
        return AgentResponse(sucesso=False, mensagem="Não consegui identificar seu número.")

    try:
        origem_enum = OrigemMensagem(origem)
    except ValueError:
        origem_enum = OrigemMensagem.WHATSAPP_TEXTO

    context = AgentContext(
        identidade=identidade,
        mensagem_original=mensagem,
        origem=origem_enum,
    )

    gateway = GatewayAgent(db_session=db)

    try:
        return await gateway.process(context)

    except Exception as e:
        logger.error(f"[Processor] Erro: {e}", exc_info=True)
        if db is not None:
            db.rollback()
        return AgentResponse(
            sucesso=False,
            mensagem="Desculpe, tive um problema. Pode repetir?"
        )
