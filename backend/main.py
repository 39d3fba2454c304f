import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.config import settings
from backend.core.identidade import PropriedadeNegada
from backend.models import criar_tabelas, inserir_categorias_padrao
from backend.routes import (
    agendamentos_router,
    auth_router,
    carteiras_router,
    categorias_router,
    chat_router,
    notificacoes_router,
    transacoes_router,
    whatsapp_router,
)
from backend.services.memory_service import memory_service

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

INTERVALO_LIMPEZA_MEMORIA = 300

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


async def _limpar_memoria_periodicamente():
    """Remove contextos expirados da memória local (no Redis o TTL cuida disso)"""
    while True:
        await asyncio.sleep(INTERVALO_LIMPEZA_MEMORIA)
        removidos = memory_service.limpar_expirados()
        if removidos:
            logger.debug(f"[Memoria] {removidos} contexto(s) expirado(s) removido(s)")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Gerencia ciclo de vida da aplicacao."""
    # Startup
    logger.info("Zela Financeiro API iniciando...")
    criar_tabelas()
    inseridas = inserir_categorias_padrao()
    if inseridas:
        logger.info(f"{inseridas} categorias padrão inseridas")
    limpeza = asyncio.create_task(_limpar_memoria_periodicamente())
    logger.info("Lembretes de agendamentos rodam no worker arq: arq backend.worker.WorkerSettings")

    yield

    # Shutdown
    limpeza.cancel()
    await memory_service.close()
    logger.info("Zela Financeiro API encerrando...")

app = FastAPI(
    title="Zela Financeiro API",
    description="Assistente financeiro pelo WhatsApp com portal web",
    version="1.0.0",
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def adicionar_headers_seguranca(request: Request, call_next):
    response = await call_next(request)
    for header, valor in SECURITY_HEADERS.items():
        response.headers[header] = valor
    return response


@app.exception_handler(PropriedadeNegada)
async def propriedade_negada_handler(request: Request, exc: PropriedadeNegada):
    return JSONResponse(
        status_code=403,
        content={"detail": "Recurso não pertence ao usuário"},
    )


# Routers
app.include_router(auth_router)
app.include_router(transacoes_router)
app.include_router(agendamentos_router)
app.include_router(carteiras_router)
app.include_router(categorias_router)
app.include_router(notificacoes_router)
app.include_router(chat_router)
app.include_router(whatsapp_router)


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "Zela Financeiro API"}


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Iniciando Zela Financeiro API em http://{settings.HOST}:{settings.PORT}")

    uvicorn.run(
        "backend.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
