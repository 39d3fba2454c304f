from backend.routes.agendamentos import router as agendamentos_router
from backend.routes.auth import router as auth_router
from backend.routes.carteiras import router as carteiras_router
from backend.routes.categorias import router as categorias_router
from backend.routes.chat import router as chat_router
from backend.routes.notificacoes import router as notificacoes_router
from backend.routes.transacoes import router as transacoes_router
from backend.routes.whatsapp import router as whatsapp_router

__all__ = [
    "agendamentos_router",
    "auth_router",
    "carteiras_router",
    "categorias_router",
    "chat_router",
    "notificacoes_router",
    "transacoes_router",
    "whatsapp_router",
]
