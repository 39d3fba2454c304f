from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from backend.core.database import get_db
from backend.core.identidade import canonicalizar, verificar_dono
from backend.core.security import obter_usuario_atual
from backend.models import Carteira, Transacao, Usuario
from backend.schemas import CarteiraAtualizar, CarteiraCriar, CarteiraResposta
from backend.services import financas

router = APIRouter(prefix="/api/carteiras", tags=["Carteiras"])


def _obter_carteira(db: Session, carteira_id: int, usuario: Usuario) -> Carteira:
    carteira = db.query(Carteira).filter(
        Carteira.id == carteira_id,
        Carteira.ativo == True  # noqa: E712
    ).first()

    if not carteira:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Carteira não encontrada"
        )

    verificar_dono(carteira.telefone, usuario.telefone)
    return carteira


def _definir_padrao(db: Session, carteira: Carteira, usuario: Usuario) -> None:
    db.query(Carteira).filter(
        Carteira.telefone.in_(financas.variacoes(usuario.telefone)),
        Carteira.id != carteira.id
    ).update({"padrao": False}, synchronize_session=False)
    carteira.padrao = True
    usuario.carteira_padrao_id = carteira.id


@router.get("", response_model=list[CarteiraResposta])
async def listar_carteiras(
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Lista carteiras ativas (a padrão primeiro)"""

    carteiras = db.query(Carteira).filter(
        Carteira.telefone.in_(financas.variacoes(usuario_atual.telefone)),
        Carteira.ativo == True  # noqa: E712
    ).order_by(Carteira.padrao.desc(), Carteira.nome).all()

    return carteiras


@router.post("", response_model=CarteiraResposta, status_code=status.HTTP_201_CREATED)
async def criar_carteira(
    carteira: CarteiraCriar,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Cria uma nova carteira"""

    carteira_existente = db.query(Carteira).filter(
        Carteira.telefone.in_(financas.variacoes(usuario_atual.telefone)),
        Carteira.nome == carteira.nome,
        Carteira.ativo == True  # noqa: E712
    ).first()

    if carteira_existente:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Carteira '{carteira.nome}' já existe"
        )

    nova_carteira = Carteira(
        telefone=canonicalizar(usuario_atual.telefone).digitos or usuario_atual.telefone,
        nome=carteira.nome,
        descricao=carteira.descricao,
        padrao=False
    )
    db.add(nova_carteira)
    db.flush()

    if carteira.padrao:
        _definir_padrao(db, nova_carteira, usuario_atual)

    db.commit()
    db.refresh(nova_carteira)

    return nova_carteira


@router.put("/{carteira_id}", response_model=CarteiraResposta)
async def atualizar_carteira(
    carteira_id: int,
    dados: CarteiraAtualizar,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Atualiza nome e descrição (e opcionalmente torna padrão)"""

    carteira = _obter_carteira(db, carteira_id, usuario_atual)
    campos = dados.model_dump(exclude_none=True)

    tornar_padrao = campos.pop("padrao", None)
    campos.pop("ativo", None)  # desativação só pelo DELETE

    for campo, valor in campos.items():
        setattr(carteira, campo, valor)

    if tornar_padrao:
        _definir_padrao(db, carteira, usuario_atual)

    db.commit()
    db.refresh(carteira)

    return carteira


@router.post("/{carteira_id}/padrao", response_model=CarteiraResposta)
async def definir_carteira_padrao(
    carteira_id: int,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Define a carteira usada por padrão nos registros pelo WhatsApp"""

    carteira = _obter_carteira(db, carteira_id, usuario_atual)
    _definir_padrao(db, carteira, usuario_atual)

    db.commit()
    db.refresh(carteira)

    return carteira


@router.delete("/{carteira_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deletar_carteira(
    carteira_id: int,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Desativa uma carteira (a padrão com transações não pode ser removida)"""

    carteira = _obter_carteira(db, carteira_id, usuario_atual)

    if carteira.padrao:
        possui_transacoes = db.query(Transacao.id).filter(
            Transacao.carteira_id == carteira.id
        ).first()
        if possui_transacoes:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Não é possível remover a carteira padrão com transações"
            )
        if usuario_atual.carteira_padrao_id == carteira.id:
            usuario_atual.carteira_padrao_id = None

    carteira.ativo = False
    carteira.padrao = False
    db.commit()

    return None
