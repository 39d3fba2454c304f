from backend.schemas.schemas import (
    # Usuario
    UsuarioResposta,
    UsuarioAtualizar,
    # Auth
    Token,
    SolicitarCodigoRequest,
    VerificarCodigoRequest,
    # Carteira
    CarteiraCriar,
    CarteiraAtualizar,
    CarteiraResposta,
    # Transacao
    TransacaoBase,
    TransacaoCriar,
    TransacaoResposta,
    Estatisticas,
    GastoDia,
    # Agendamento
    AgendamentoCriar,
    AgendamentoAtualizar,
    AgendamentoResposta,
    ListaAgendamentos,
    # Categoria
    CategoriaCriar,
    CategoriaAtualizar,
    CategoriaResposta,
    # Notificacao
    NotificacaoResposta,
    MarcarNotificacoes,
    # Chat
    ChatRequest,
    ChatResposta,
)
