from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Boolean, Text, ForeignKey, Enum, JSON
from sqlalchemy.orm import Session, declarative_base, relationship
from datetime import UTC, datetime
import enum
import secrets
import string
import time

from backend.core.database import SessionLocal, engine

Base = declarative_base()


def agora_utc() -> datetime:
    return datetime.now(UTC)


def _gerar_codigo_formato() -> str:
    """Gera código no formato LL+NN+L (ex: AB12C)"""
    letras = string.ascii_uppercase
    numeros = string.digits
    return (
        secrets.choice(letras) +
        secrets.choice(letras) +
        secrets.choice(numeros) +
        secrets.choice(numeros) +
        secrets.choice(letras)
    )


def gerar_codigo_unico(db=None) -> str:
    """
    Gera código único de transação no formato LL+NN+L.
    Se db for fornecido, verifica unicidade no banco.
    """
    for _ in range(10):
        codigo = _gerar_codigo_formato()
        if db is None:
            return codigo
        existente = db.query(Transacao).filter(Transacao.codigo == codigo).first()
        if not existente:
            return codigo
    return _gerar_codigo_formato() + str(int(time.time()))[-2:]


class TipoTransacao(str, enum.Enum):
    ENTRADA = "entrada"
    SAIDA = "saida"


class MetodoPagamento(str, enum.Enum):
    CREDITO = "credito"
    DEBITO = "debito"


class OrigemRegistro(str, enum.Enum):
    WHATSAPP_TEXTO = "whatsapp_texto"
    WHATSAPP_AUDIO = "whatsapp_audio"
    WEB = "web"
    AGENDAMENTO = "agendamento"


class TipoAgendamento(str, enum.Enum):
    PAGAMENTO = "pagamento"
    RECEBIMENTO = "recebimento"


class StatusAgendamento(str, enum.Enum):
    PENDENTE = "pendente"
    PAGO = "pago"
    CANCELADO = "cancelado"


class Usuario(Base):
    __tablename__ = "usuarios"

    id = Column(Integer, primary_key=True, index=True)
    telefone = Column(String(20), unique=True, index=True, nullable=False)
    nome = Column(String(255), nullable=False, default="Usuário")
    email = Column(String(255), nullable=True)
    ativo = Column(Boolean, default=True)
    carteira_padrao_id = Column(Integer, ForeignKey("carteiras.id"), nullable=True)
    criado_em = Column(DateTime(timezone=True), default=agora_utc)
    atualizado_em = Column(DateTime(timezone=True), default=agora_utc, onupdate=agora_utc)


class Carteira(Base):
    __tablename__ = "carteiras"

    id = Column(Integer, primary_key=True, index=True)
    telefone = Column(String(20), nullable=False, index=True)
    nome = Column(String(100), nullable=False)
    descricao = Column(Text, nullable=True)
    padrao = Column(Boolean, default=False)
    ativo = Column(Boolean, default=True)
    criado_em = Column(DateTime(timezone=True), default=agora_utc)
    atualizado_em = Column(DateTime(timezone=True), default=agora_utc, onupdate=agora_utc)

    # Relacionamentos
    transacoes = relationship("Transacao", back_populates="carteira")


class Transacao(Base):
    __tablename__ = "transacoes"

    id = Column(Integer, primary_key=True, index=True)
    codigo = Column(String(8), unique=True, index=True, default=_gerar_codigo_formato)
    telefone = Column(String(20), nullable=False, index=True)
    carteira_id = Column(Integer, ForeignKey("carteiras.id"), nullable=True)
    descricao = Column(Text, nullable=False)
    valor = Column(Float, nullable=False)
    categoria = Column(String(100), default="outros")
    tipo = Column(Enum(TipoTransacao), nullable=False)
    metodo = Column(Enum(MetodoPagamento), default=MetodoPagamento.DEBITO)
    data = Column(Date, nullable=False, index=True)
    origem = Column(Enum(OrigemRegistro), default=OrigemRegistro.WHATSAPP_TEXTO)
    mensagem_original = Column(Text)
    criado_em = Column(DateTime(timezone=True), default=agora_utc)

    # Relacionamentos
    carteira = relationship("Carteira", back_populates="transacoes")


class Agendamento(Base):
    __tablename__ = "agendamentos"

    id = Column(Integer, primary_key=True, index=True)
    telefone = Column(String(20), nullable=False, index=True)
    descricao = Column(Text, nullable=False)
    valor = Column(Float, nullable=False)
    data_agendamento = Column(Date, nullable=False, index=True)
    tipo = Column(Enum(TipoAgendamento), nullable=False)
    status = Column(Enum(StatusAgendamento), default=StatusAgendamento.PENDENTE)
    categoria = Column(String(100), default="outros")
    notificado = Column(Boolean, default=False)

    # Parcelamento
    recorrente = Column(Boolean, default=False)
    total_parcelas = Column(Integer, nullable=True)
    parcela_atual = Column(Integer, nullable=True)
    agendamento_pai_id = Column(Integer, ForeignKey("agendamentos.id"), nullable=True)

    transacao_id = Column(Integer, ForeignKey("transacoes.id"), nullable=True)
    criado_em = Column(DateTime(timezone=True), default=agora_utc)
    atualizado_em = Column(DateTime(timezone=True), default=agora_utc, onupdate=agora_utc)


class NumeroRegistrado(Base):
    """Números que já enviaram mensagem ao bot"""
    __tablename__ = "numeros_registrados"

    id = Column(Integer, primary_key=True, index=True)
    telefone = Column(String(20), unique=True, index=True, nullable=False)
    primeira_mensagem = Column(DateTime(timezone=True), default=agora_utc)
    ultima_mensagem = Column(DateTime(timezone=True), default=agora_utc)
    total_mensagens = Column(Integer, default=1)


class Categoria(Base):
    """Categorias do sistema (telefone nulo, padrao=True) e as criadas por cada usuário"""
    __tablename__ = "categorias"

    id = Column(Integer, primary_key=True, index=True)
    telefone = Column(String(20), nullable=True, index=True)
    nome = Column(String(100), nullable=False)
    descricao = Column(Text, nullable=True)
    tipo = Column(Enum(TipoTransacao), nullable=False, default=TipoTransacao.SAIDA)
    cor = Column(String(7), default="#0EA5E9")
    padrao = Column(Boolean, default=False)
    criado_em = Column(DateTime(timezone=True), default=agora_utc)
    atualizado_em = Column(DateTime(timezone=True), default=agora_utc, onupdate=agora_utc)


class Notificacao(Base):
    """Avisos para o portal: transações registradas pelo WhatsApp e lembretes enviados"""
    __tablename__ = "notificacoes"

    id = Column(Integer, primary_key=True, index=True)
    telefone = Column(String(20), nullable=False, index=True)
    tipo = Column(String(50), nullable=False)
    mensagem = Column(Text, nullable=False)
    dados = Column(JSON, nullable=True)
    lida = Column(Boolean, default=False, index=True)
    criado_em = Column(DateTime(timezone=True), default=agora_utc)


# Categorias padrão (mesmos nomes que o extrator usa)
CATEGORIAS_PADRAO = [
    # Saídas
    {"nome": "alimentacao", "tipo": TipoTransacao.SAIDA, "cor": "#F59E0B"},
    {"nome": "transporte", "tipo": TipoTransacao.SAIDA, "cor": "#3B82F6"},
    {"nome": "saude", "tipo": TipoTransacao.SAIDA, "cor": "#EF4444"},
    {"nome": "educacao", "tipo": TipoTransacao.SAIDA, "cor": "#8B5CF6"},
    {"nome": "lazer", "tipo": TipoTransacao.SAIDA, "cor": "#EC4899"},
    {"nome": "casa", "tipo": TipoTransacao.SAIDA, "cor": "#10B981"},
    {"nome": "vestuario", "tipo": TipoTransacao.SAIDA, "cor": "#6366F1"},
    {"nome": "contas", "tipo": TipoTransacao.SAIDA, "cor": "#0EA5E9"},
    {"nome": "outros", "tipo": TipoTransacao.SAIDA, "cor": "#6B7280"},
    # Entradas
    {"nome": "salario", "tipo": TipoTransacao.ENTRADA, "cor": "#10B981"},
    {"nome": "investimentos", "tipo": TipoTransacao.ENTRADA, "cor": "#F59E0B"},
    {"nome": "outros", "tipo": TipoTransacao.ENTRADA, "cor": "#6B7280"},
]


def criar_tabelas():
    """Cria todas as tabelas no banco de dados"""
    Base.metadata.create_all(bind=engine)


def inserir_categorias_padrao(db: Session | None = None) -> int:
    """
    Insere as categorias padrão se ainda não existirem.

    Returns:
        Quantidade inserida (0 se já existiam)
    """
    sessao = db or SessionLocal()
    try:
        if sessao.query(Categoria).filter(Categoria.padrao == True).count():  # noqa: E712
            return 0

        for dados in CATEGORIAS_PADRAO:
            sessao.add(Categoria(**dados, padrao=True, telefone=None))
        sessao.commit()
        return len(CATEGORIAS_PADRAO)
    except Exception:
        sessao.rollback()
        raise
    finally:
        if db is None:
            sessao.close()
