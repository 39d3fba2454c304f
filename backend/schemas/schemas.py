from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import date, datetime
from typing import Optional, List

from backend.models.models import (
    TipoTransacao, MetodoPagamento, OrigemRegistro, TipoAgendamento, StatusAgendamento
)


# ==================== Usuario ====================

class UsuarioResposta(BaseModel):
    id: int
    telefone: str
    nome: str
    email: Optional[str] = None
    ativo: bool
    carteira_padrao_id: Optional[int] = None
    criado_em: datetime

    class Config:
        from_attributes = True


class UsuarioAtualizar(BaseModel):
    nome: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None


# ==================== Auth ====================

class Token(BaseModel):
    access_token: str
    token_type: str
    expires_in: int


class SolicitarCodigoRequest(BaseModel):
    telefone: str


class VerificarCodigoRequest(BaseModel):
    telefone: str
    codigo: str

    @field_validator("codigo")
    @classmethod
    def normalizar_codigo(cls, v: str) -> str:
        codigo = "".join(v.split())
        if not codigo.isdigit() or len(codigo) != 6:
            raise ValueError("Código deve ter 6 dígitos")
        return codigo


# ==================== Carteira ====================

class CarteiraCriar(BaseModel):
    nome: str = Field(min_length=1, max_length=100)
    descricao: Optional[str] = None
    padrao: bool = False


class CarteiraAtualizar(BaseModel):
    nome: Optional[str] = Field(None, min_length=1, max_length=100)
    descricao: Optional[str] = None
    padrao: Optional[bool] = None
    ativo: Optional[bool] = None


class CarteiraResposta(BaseModel):
    id: int
    telefone: str
    nome: str
    descricao: Optional[str] = None
    padrao: bool
    ativo: bool
    criado_em: datetime

    class Config:
        from_attributes = True


# ==================== Transacao ====================

class TransacaoBase(BaseModel):
    descricao: str = Field(min_length=1)
    valor: float = Field(gt=0, description="Valor deve ser maior que zero")
    categoria: str = "outros"
    tipo: TipoTransacao
    metodo: MetodoPagamento = MetodoPagamento.DEBITO
    data: date
    carteira_id: Optional[int] = None


class TransacaoCriar(TransacaoBase):
    pass


class TransacaoResposta(TransacaoBase):
    id: int
    codigo: str
    telefone: str
    origem: Optional[OrigemRegistro] = None
    mensagem_original: Optional[str] = None
    criado_em: datetime

    class Config:
        from_attributes = True


class Estatisticas(BaseModel):
    total_entradas: float
    total_saidas: float
    saldo: float
    total_transacoes: int
    media_gasto: float
    maior_gasto: float
    menor_gasto: float
    gasto_hoje: float
    gasto_mes: float


class GastoDia(BaseModel):
    data: date
    total: float


# ==================== Agendamento ====================

class AgendamentoCriar(BaseModel):
    descricao: str = Field(min_length=1)
    valor: float = Field(gt=0)
    data_agendamento: date
    tipo: TipoAgendamento
    categoria: str = "outros"
    recorrente: bool = False
    total_parcelas: Optional[int] = Field(None, ge=2, le=999)


class AgendamentoAtualizar(BaseModel):
    descricao: Optional[str] = Field(None, min_length=1)
    valor: Optional[float] = Field(None, gt=0)
    data_agendamento: Optional[date] = None
    tipo: Optional[TipoAgendamento] = None
    categoria: Optional[str] = None
    status: Optional[StatusAgendamento] = None
    carteira_id: Optional[int] = None
    valor_pago: Optional[float] = Field(None, gt=0)


class AgendamentoResposta(BaseModel):
    id: int
    telefone: str
    descricao: str
    valor: float
    data_agendamento: date
    tipo: TipoAgendamento
    status: StatusAgendamento
    categoria: Optional[str] = None
    notificado: bool
    recorrente: bool
    total_parcelas: Optional[int] = None
    parcela_atual: Optional[int] = None
    agendamento_pai_id: Optional[int] = None
    transacao_id: Optional[int] = None
    criado_em: datetime

    class Config:
        from_attributes = True


class ListaAgendamentos(BaseModel):
    agendamentos: List[AgendamentoResposta]
    total: int


# ==================== Categoria ====================

class CategoriaCriar(BaseModel):
    nome: str = Field(min_length=1, max_length=100)
    descricao: Optional[str] = None
    tipo: TipoTransacao = TipoTransacao.SAIDA
    cor: str = Field("#0EA5E9", pattern=r"^#[0-9A-Fa-f]{6}$")

    @field_validator("nome")
    @classmethod
    def limpar_nome(cls, v: str) -> str:
        nome = v.strip()
        if not nome:
            raise ValueError("Nome da categoria é obrigatório")
        return nome


class CategoriaAtualizar(BaseModel):
    nome: Optional[str] = Field(None, min_length=1, max_length=100)
    descricao: Optional[str] = None
    tipo: Optional[TipoTransacao] = None
    cor: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")


class CategoriaResposta(BaseModel):
    id: int
    telefone: Optional[str] = None
    nome: str
    descricao: Optional[str] = None
    tipo: TipoTransacao
    cor: Optional[str] = None
    padrao: bool

    class Config:
        from_attributes = True


# ==================== Notificacao ====================

class NotificacaoResposta(BaseModel):
    id: int
    tipo: str
    mensagem: str
    dados: Optional[dict] = None
    lida: bool
    criado_em: datetime

    class Config:
        from_attributes = True


class MarcarNotificacoes(BaseModel):
    """Sem ids, marca todas as notificações do usuário como lidas"""
    ids: Optional[List[int]] = None


# ==================== Chat ====================

class ChatRequest(BaseModel):
    mensagem: str = Field(min_length=1, max_length=2000)

    @field_validator("mensagem")
    @classmethod
    def limpar_mensagem(cls, v: str) -> str:
        mensagem = v.strip()
        if not mensagem:
            raise ValueError("Mensagem é obrigatória")
        return mensagem


class ChatResposta(BaseModel):
    sucesso: bool
    mensagem: str
    codigo_transacao: Optional[str] = None
    requer_confirmacao: bool = False
