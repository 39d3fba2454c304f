import calendar
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from backend.core.database import get_db
from backend.core.identidade import canonicalizar, verificar_dono
from backend.core.security import obter_usuario_atual
from backend.models import (
    Agendamento, Carteira, OrigemRegistro, StatusAgendamento, TipoAgendamento, Usuario
)
from backend.schemas import (
    AgendamentoAtualizar, AgendamentoCriar, AgendamentoResposta, ListaAgendamentos
)
from backend.services import financas
from backend.services.llm.client import hoje_sp

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agendamentos", tags=["Agendamentos"])


def somar_meses(data: date, meses: int) -> date:
    """Mesma data N meses depois; dias que não existem no mês caem no último dia"""
    mes_indice = data.month - 1 + meses
    ano = data.year + mes_indice // 12
    mes = mes_indice % 12 + 1
    dia = min(data.day, calendar.monthrange(ano, mes)[1])
    return date(ano, mes, dia)


def _obter_agendamento(db: Session, agendamento_id: int, usuario: Usuario) -> Agendamento:
    agendamento = db.query(Agendamento).filter(Agendamento.id == agendamento_id).first()

    if not agendamento:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Agendamento não encontrado"
        )

    verificar_dono(agendamento.telefone, usuario.telefone)
    return agendamento


@router.get("", response_model=ListaAgendamentos)
async def listar_agendamentos(
    status_filtro: Optional[StatusAgendamento] = Query(None, alias="status"),
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Lista agendamentos do usuário (filtro opcional por status)"""

    query = db.query(Agendamento).filter(
        Agendamento.telefone.in_(financas.variacoes(usuario_atual.telefone))
    )
    if status_filtro:
        query = query.filter(Agendamento.status == status_filtro)

    agendamentos = query.order_by(Agendamento.data_agendamento, Agendamento.id).all()

    return {"agendamentos": agendamentos, "total": len(agendamentos)}


@router.post("", response_model=AgendamentoResposta, status_code=status.HTTP_201_CREATED)
async def criar_agendamento(
    dados: AgendamentoCriar,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """
    Cria um agendamento de pagamento ou recebimento.

    Com total_parcelas, cria uma linha por mês; as parcelas 2..N apontam
    para a primeira (agendamento_pai_id). Retorna a primeira parcela.
    """
    telefone = canonicalizar(usuario_atual.telefone).digitos or usuario_atual.telefone
    parcelas = dados.total_parcelas or 1

    def _parcela(numero: int, pai_id: Optional[int] = None) -> Agendamento:
        descricao = dados.descricao if parcelas == 1 else f"{dados.descricao} ({numero}/{parcelas})"
        return Agendamento(
            telefone=telefone,
            descricao=descricao,
            valor=dados.valor,
            data_agendamento=somar_meses(dados.data_agendamento, numero - 1),
            tipo=dados.tipo,
            status=StatusAgendamento.PENDENTE,
            categoria=dados.categoria,
            recorrente=dados.recorrente or parcelas > 1,
            total_parcelas=dados.total_parcelas,
            parcela_atual=numero if parcelas > 1 else None,
            agendamento_pai_id=pai_id,
        )

    primeiro = _parcela(1)
    db.add(primeiro)
    db.flush()

    for numero in range(2, parcelas + 1):
        db.add(_parcela(numero, primeiro.id))

    db.commit()
    db.refresh(primeiro)

    logger.info(f"[Agendamentos] {parcelas} parcela(s) criada(s) para {telefone}")
    return primeiro


@router.put("/{agendamento_id}", response_model=AgendamentoResposta)
async def atualizar_agendamento(
    agendamento_id: int,
    dados: AgendamentoAtualizar,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """
    Atualiza um agendamento.

    Marcar como pago cria a transação correspondente (recebimento vira
    entrada, pagamento vira saída) e guarda o vínculo em transacao_id.
    """
    agendamento = _obter_agendamento(db, agendamento_id, usuario_atual)
    campos = dados.model_dump(exclude_none=True)

    carteira_id = campos.pop("carteira_id", None)
    valor_pago = campos.pop("valor_pago", None)
    novo_status = campos.pop("status", None)

    for campo, valor in campos.items():
        setattr(agendamento, campo, valor)

    if novo_status == StatusAgendamento.PAGO and agendamento.status != StatusAgendamento.PAGO:
        if carteira_id:
            carteira = db.query(Carteira).filter(Carteira.id == carteira_id).first()
            if not carteira or not carteira.ativo:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Carteira não encontrada"
                )
            verificar_dono(carteira.telefone, usuario_atual.telefone)

        tipo = "entrada" if agendamento.tipo == TipoAgendamento.RECEBIMENTO else "saida"
        transacao = financas.criar_transacao(
            db,
            usuario_atual.telefone,
            {
                "descricao": agendamento.descricao,
                "valor": valor_pago or agendamento.valor,
                "categoria": agendamento.categoria,
                "tipo": tipo,
                "data": hoje_sp(),
                "carteira_id": carteira_id,
            },
            origem=OrigemRegistro.AGENDAMENTO,
        )
        agendamento.transacao_id = transacao.id
        logger.info(f"[Agendamentos] {agendamento.id} pago, transação {transacao.codigo}")

    if novo_status is not None:
        agendamento.status = novo_status

    db.commit()
    db.refresh(agendamento)

    return agendamento


@router.delete("/{agendamento_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deletar_agendamento(
    agendamento_id: int,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Remove um agendamento (as demais parcelas continuam)"""

    agendamento = _obter_agendamento(db, agendamento_id, usuario_atual)

    db.query(Agendamento).filter(
        Agendamento.agendamento_pai_id == agendamento.id
    ).update({"agendamento_pai_id": None}, synchronize_session=False)

    db.delete(agendamento)
    db.commit()

    return None
