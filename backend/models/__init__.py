from backend.models.models import (
    Base,
    Usuario,
    Carteira,
    Transacao,
    Agendamento,
    NumeroRegistrado,
    Categoria,
    Notificacao,
    TipoTransacao,
    MetodoPagamento,
    OrigemRegistro,
    TipoAgendamento,
    StatusAgendamento,
    gerar_codigo_unico,
    agora_utc,
    criar_tabelas,
    inserir_categorias_padrao,
    CATEGORIAS_PADRAO,
)
