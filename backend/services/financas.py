"""
Consultas e registros financeiros compartilhados entre o portal e o bot.

Todos os filtros por dono usam as variações do telefone, então registros
gravados em formatos antigos ("+55...", "whatsapp:+55...") continuam
visíveis para o mesmo usuário.
"""

import logging
from datetime import date, timedelta

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from backend.core.identidade import canonicalizar, expandir_variacoes
from backend.models import (
    Agendamento,
    Carteira,
    MetodoPagamento,
    Notificacao,
    OrigemRegistro,
    TipoTransacao,
    Transacao,
    Usuario,
    gerar_codigo_unico,
)
from backend.services.llm.client import hoje_sp

logger = logging.getLogger(__name__)

NOME_CARTEIRA_PADRAO = "Principal"


def variacoes(telefone: str) -> list[str]:
    return sorted(expandir_variacoes(telefone))


# ==================== CARTEIRAS ====================

def obter_carteira_padrao(db: Session, telefone: str) -> Carteira:
    """Carteira padrão do dono; cria "Principal" se ele ainda não tiver nenhuma"""
    donos = variacoes(telefone)
    carteira = db.query(Carteira).filter(
        Carteira.telefone.in_(donos),
        Carteira.ativo == True,  # noqa: E712
        Carteira.padrao == True,  # noqa: E712
    ).first()
    if carteira:
        return carteira

    carteira = db.query(Carteira).filter(
        Carteira.telefone.in_(donos),
        Carteira.ativo == True,  # noqa: E712
    ).order_by(Carteira.id).first()
    if carteira:
        carteira.padrao = True
        db.flush()
        return carteira

    carteira = Carteira(
        telefone=canonicalizar(telefone).digitos or telefone,
        nome=NOME_CARTEIRA_PADRAO,
        padrao=True,
    )
    db.add(carteira)
    db.flush()

    usuario = db.query(Usuario).filter(Usuario.telefone.in_(donos)).first()
    if usuario and not usuario.carteira_padrao_id:
        usuario.carteira_padrao_id = carteira.id

    logger.info(f"[Financas] Carteira padrão criada para {telefone}")
    return carteira


def saldo_por_carteira(db: Session, telefone: str) -> tuple[list[dict], float]:
    """Saldo (entradas - saídas) de cada carteira ativa e o total"""
    donos = variacoes(telefone)
    carteiras = db.query(Carteira).filter(
        Carteira.telefone.in_(donos),
        Carteira.ativo == True,  # noqa: E712
    ).order_by(Carteira.id).all()

    somas = db.query(
        Transacao.carteira_id,
        Transacao.tipo,
        func.sum(Transacao.valor),
    ).filter(
        Transacao.telefone.in_(donos)
    ).group_by(Transacao.carteira_id, Transacao.tipo).all()

    saldos: dict = {}
    for carteira_id, tipo, total in somas:
        sinal = 1 if tipo == TipoTransacao.ENTRADA else -1
        saldos[carteira_id] = saldos.get(carteira_id, 0.0) + sinal * float(total or 0)

    resultado = [
        {"id": c.id, "nome": c.nome, "saldo": round(saldos.get(c.id, 0.0), 2)}
        for c in carteiras
    ]
    if saldos.get(None):
        resultado.append({"id": None, "nome": "Sem carteira", "saldo": round(saldos[None], 2)})

    total = round(sum(saldos.values()), 2)
    return resultado, total


# ==================== TRANSAÇÕES ====================

def criar_transacao(
    db: Session,
    telefone: str,
    dados: dict,
    origem: OrigemRegistro = OrigemRegistro.WHATSAPP_TEXTO,
    mensagem_original: str | None = None,
) -> Transacao:
    """
    Adiciona uma transação à sessão (sem commit).

    dados: descricao, valor, tipo ("entrada"/"saida"), e opcionalmente
    categoria, metodo, data (date ou ISO) e carteira_id.
    """
    data = dados.get("data") or hoje_sp()
    if isinstance(data, str):
        data = date.fromisoformat(data[:10])

    carteira_id = dados.get("carteira_id") or obter_carteira_padrao(db, telefone).id

    transacao = Transacao(
        codigo=gerar_codigo_unico(db),
        telefone=canonicalizar(telefone).digitos or telefone,
        carteira_id=carteira_id,
        descricao=dados.get("descricao") or "Transação",
        valor=round(float(dados["valor"]), 2),
        categoria=dados.get("categoria") or "outros",
        tipo=TipoTransacao(dados.get("tipo") or "saida"),
        metodo=MetodoPagamento(dados.get("metodo") or "debito"),
        data=data,
        origem=origem,
        mensagem_original=mensagem_original,
    )
    db.add(transacao)
    db.flush()
    return transacao


def ultimas_transacoes(db: Session, telefone: str, limite: int = 10) -> list[Transacao]:
    return db.query(Transacao).filter(
        Transacao.telefone.in_(variacoes(telefone))
    ).order_by(Transacao.data.desc(), Transacao.id.desc()).limit(limite).all()


def excluir_transacao(db: Session, transacao: Transacao) -> None:
    """Remove a transação (sem commit), soltando agendamentos pagos que apontam para ela"""
    db.query(Agendamento).filter(
        Agendamento.transacao_id == transacao.id
    ).update({"transacao_id": None}, synchronize_session=False)
    db.delete(transacao)


def buscar_por_codigo(db: Session, codigo: str) -> Transacao | None:
    return db.query(Transacao).filter(Transacao.codigo == codigo.upper()).first()


# ==================== ESTATÍSTICAS ====================

def calcular_estatisticas(
    db: Session,
    telefone: str,
    data_inicio: date | None = None,
    data_fim: date | None = None,
    hoje: date | None = None,
) -> dict:
    """
    Totais do período, com gasto de hoje e do mês corrente.

    Returns:
        Dict com os campos do schema Estatisticas
    """
    hoje = hoje or hoje_sp()
    query = db.query(Transacao).filter(Transacao.telefone.in_(variacoes(telefone)))
    if data_inicio:
        query = query.filter(Transacao.data >= data_inicio)
    if data_fim:
        query = query.filter(Transacao.data <= data_fim)
    transacoes = query.all()

    entradas = [t.valor for t in transacoes if t.tipo == TipoTransacao.ENTRADA]
    saidas = [t.valor for t in transacoes if t.tipo == TipoTransacao.SAIDA]

    gasto_hoje, gasto_mes = db.query(
        func.sum(case((Transacao.data == hoje, Transacao.valor), else_=0.0)),
        func.sum(case((Transacao.data >= hoje.replace(day=1), Transacao.valor), else_=0.0)),
    ).filter(
        Transacao.telefone.in_(variacoes(telefone)),
        Transacao.tipo == TipoTransacao.SAIDA,
        Transacao.data <= hoje,
    ).one()

    total_entradas = round(sum(entradas), 2)
    total_saidas = round(sum(saidas), 2)

    return {
        "total_entradas": total_entradas,
        "total_saidas": total_saidas,
        "saldo": round(total_entradas - total_saidas, 2),
        "total_transacoes": len(transacoes),
        "media_gasto": round(total_saidas / len(saidas), 2) if saidas else 0.0,
        "maior_gasto": max(saidas) if saidas else 0.0,
        "menor_gasto": min(saidas) if saidas else 0.0,
        "gasto_hoje": round(float(gasto_hoje or 0), 2),
        "gasto_mes": round(float(gasto_mes or 0), 2),
    }


def estatisticas_do_dia(db: Session, telefone: str, hoje: date | None = None) -> dict:
    hoje = hoje or hoje_sp()
    return calcular_estatisticas(db, telefone, hoje, hoje, hoje=hoje)


def estatisticas_do_mes(db: Session, telefone: str, hoje: date | None = None) -> dict:
    hoje = hoje or hoje_sp()
    return calcular_estatisticas(db, telefone, hoje.replace(day=1), hoje, hoje=hoje)


def gastos_por_dia(db: Session, telefone: str, dias: int = 30, hoje: date | None = None) -> list[dict]:
    """Total de saídas por dia nos últimos `dias` dias (dias sem gasto = 0)"""
    hoje = hoje or hoje_sp()
    inicio = hoje - timedelta(days=dias - 1)

    linhas = db.query(Transacao.data, func.sum(Transacao.valor)).filter(
        Transacao.telefone.in_(variacoes(telefone)),
        Transacao.tipo == TipoTransacao.SAIDA,
        Transacao.data >= inicio,
        Transacao.data <= hoje,
    ).group_by(Transacao.data).all()
    totais = {d: float(total or 0) for d, total in linhas}

    return [
        {"data": inicio + timedelta(days=i), "total": round(totais.get(inicio + timedelta(days=i), 0.0), 2)}
        for i in range(dias)
    ]


# ==================== NOTIFICAÇÕES ====================

def registrar_notificacao(db: Session, telefone: str, tipo: str, mensagem: str, dados: dict | None = None) -> Notificacao:
    """Adiciona uma notificação do portal à sessão (sem commit)"""
    notificacao = Notificacao(
        telefone=canonicalizar(telefone).digitos or telefone,
        tipo=tipo,
        mensagem=mensagem,
        dados=dados,
    )
    db.add(notificacao)
    return notificacao
