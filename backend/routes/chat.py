from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.core.database import get_db
from backend.core.security import obter_usuario_atual
from backend.models import Usuario
from backend.schemas import ChatRequest, ChatResposta
from backend.services.agents.base_agent import OrigemMensagem
from backend.services.agents.processor import processar_mensagem

router = APIRouter(prefix="/api/chat", tags=["Chat"])


@router.post("", response_model=ChatResposta)
async def conversar(
    dados: ChatRequest,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """
    Chat do portal: a mensagem segue o mesmo fluxo do WhatsApp, com o
    telefone do token como remetente. Transações salvas ficam com origem "web".
    """
    resultado = await processar_mensagem(
        usuario_atual.telefone, dados.mensagem, OrigemMensagem.WEB.value, db
    )

    return ChatResposta(
        sucesso=resultado.sucesso,
        mensagem=resultado.mensagem,
        codigo_transacao=resultado.codigo_transacao,
        requer_confirmacao=resultado.requer_confirmacao,
    )
