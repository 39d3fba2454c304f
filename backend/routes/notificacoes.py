from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.core.database import get_db
from backend.core.identidade import verificar_dono
from backend.core.security import obter_usuario_atual
from backend.models import Notificacao, Usuario
from backend.schemas import MarcarNotificacoes, NotificacaoResposta
from backend.services import financas

router = APIRouter(prefix="/api/notificacoes", tags=["Notificações"])


@router.get("", response_model=list[NotificacaoResposta])
async def listar_notificacoes(
    todas: bool = False,
    limite: int = 50,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Notificações do usuário, mais recentes primeiro (só as não lidas, por padrão)"""

    query = db.query(Notificacao).filter(
        Notificacao.telefone.in_(financas.variacoes(usuario_atual.telefone))
    )
    if not todas:
        query = query.filter(Notificacao.lida == False)  # noqa: E712

    return query.order_by(Notificacao.id.desc()).limit(min(max(limite, 1), 200)).all()


@router.put("")
async def marcar_como_lidas(
    dados: MarcarNotificacoes,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Marca como lidas as notificações indicadas, ou todas se nenhum id vier"""

    donos = financas.variacoes(usuario_atual.telefone)

    if dados.ids is None:
        marcadas = db.query(Notificacao).filter(
            Notificacao.telefone.in_(donos),
            Notificacao.lida == False  # noqa: E712
        ).update({"lida": True}, synchronize_session=False)
    else:
        notificacoes = db.query(Notificacao).filter(Notificacao.id.in_(dados.ids)).all()
        for notificacao in notificacoes:
            verificar_dono(notificacao.telefone, usuario_atual.telefone)
        for notificacao in notificacoes:
            notificacao.lida = True
        marcadas = len(notificacoes)

    db.commit()
    return {"marcadas": marcadas}
