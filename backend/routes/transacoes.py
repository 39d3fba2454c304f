from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional, List

from backend.core.database import get_db
from backend.core.identidade import verificar_dono
from backend.core.security import obter_usuario_atual
from backend.models import Carteira, OrigemRegistro, TipoTransacao, Transacao, Usuario
from backend.schemas import Estatisticas, GastoDia, TransacaoCriar, TransacaoResposta
from backend.services import financas

router = APIRouter(prefix="/api/transacoes", tags=["Transações"])


def _obter_transacao(db: Session, transacao_id: int, usuario: Usuario) -> Transacao:
    """Busca a transação; 404 se não existe, 403 (via PropriedadeNegada) se é de outro dono"""
    transacao = db.query(Transacao).filter(Transacao.id == transacao_id).first()

    if not transacao:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Transação não encontrada"
        )

    verificar_dono(transacao.telefone, usuario.telefone)
    return transacao


@router.post("", response_model=TransacaoResposta, status_code=status.HTTP_201_CREATED)
async def criar_transacao(
    transacao: TransacaoCriar,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Cria uma nova transação"""

    if transacao.carteira_id:
        carteira = db.query(Carteira).filter(Carteira.id == transacao.carteira_id).first()
        if not carteira or not carteira.ativo:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Carteira não encontrada"
            )
        verificar_dono(carteira.telefone, usuario_atual.telefone)

    nova_transacao = financas.criar_transacao(
        db,
        usuario_atual.telefone,
        transacao.model_dump(),
        origem=OrigemRegistro.WEB,
    )
    db.commit()
    db.refresh(nova_transacao)

    return nova_transacao


@router.get("", response_model=List[TransacaoResposta])
async def listar_transacoes(
    tipo: Optional[TipoTransacao] = None,
    carteira_id: Optional[int] = None,
    categoria: Optional[str] = None,
    data_inicio: Optional[date] = None,
    data_fim: Optional[date] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=5000),
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Lista transações do usuário com filtros"""

    query = db.query(Transacao).filter(
        Transacao.telefone.in_(financas.variacoes(usuario_atual.telefone))
    )

    if tipo:
        query = query.filter(Transacao.tipo == tipo)
    if carteira_id:
        query = query.filter(Transacao.carteira_id == carteira_id)
    if categoria:
        query = query.filter(Transacao.categoria == categoria)
    if data_inicio:
        query = query.filter(Transacao.data >= data_inicio)
    if data_fim:
        query = query.filter(Transacao.data <= data_fim)

    transacoes = query.order_by(
        Transacao.data.desc(), Transacao.id.desc()
    ).offset(skip).limit(limit).all()

    return transacoes


@router.get("/resumo/estatisticas", response_model=Estatisticas)
async def obter_estatisticas(
    data_inicio: Optional[date] = None,
    data_fim: Optional[date] = None,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Totais, saldo e gastos de hoje e do mês"""
    return financas.calcular_estatisticas(db, usuario_atual.telefone, data_inicio, data_fim)


@router.get("/resumo/gastos-por-dia", response_model=List[GastoDia])
async def obter_gastos_por_dia(
    dias: int = Query(30, ge=1, le=365),
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Total de saídas por dia, para o gráfico do portal"""
    return financas.gastos_por_dia(db, usuario_atual.telefone, dias)


@router.get("/{transacao_id}", response_model=TransacaoResposta)
async def obter_transacao(
    transacao_id: int,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Obtém uma transação específica"""
    return _obter_transacao(db, transacao_id, usuario_atual)


@router.delete("/{transacao_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deletar_transacao(
    transacao_id: int,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Deleta uma transação"""

    transacao = _obter_transacao(db, transacao_id, usuario_atual)

    financas.excluir_transacao(db, transacao)
    db.commit()

    return None
