"""
Arq Worker - Task Queue assíncrono.

Responsabilidades:
- Lembrar agendamentos pendentes que vencem hoje ou já venceram (diário às 8h)

Para rodar o worker:
    arq backend.worker.WorkerSettings

Para rodar com hot-reload (dev):
    arq backend.worker.WorkerSettings --watch backend
"""

import logging
from datetime import date, datetime
from urllib.parse import urlparse
from zoneinfo import ZoneInfo

from arq import cron
from arq.connections import RedisSettings
from sqlalchemy.orm import Session

from backend.config import settings
from backend.core.database import SessionLocal
from backend.models import Agendamento, StatusAgendamento
from backend.services import financas
from backend.services.whatsapp import whatsapp_service
from backend.utils.formatters import fmt_valor, formatar_lembrete

# Timezone São Paulo
SAO_PAULO_TZ = ZoneInfo("America/Sao_Paulo")

logger = logging.getLogger(__name__)


# =============================================================================
# HELPERS
# =============================================================================

def parse_redis_url(url: str) -> RedisSettings:
    """Converte URL Redis para RedisSettings do arq."""
    parsed = urlparse(url)

    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        database=int(parsed.path.lstrip("/") or 0),
        password=parsed.password,
    )


async def enviar_lembretes_agendamentos(db: Session, hoje: date) -> dict:
    """
    Envia lembrete de cada agendamento pendente, não notificado, com
    vencimento até hoje, e marca como notificado.

    Um envio que falha deixa o agendamento para a próxima execução.
    """
    resultados = {"agendamentos": 0, "lembretes_enviados": 0, "erros": 0}

    agendamentos = db.query(Agendamento).filter(
        Agendamento.status == StatusAgendamento.PENDENTE,
        Agendamento.notificado == False,  # noqa: E712
        Agendamento.data_agendamento <= hoje,
    ).order_by(Agendamento.data_agendamento).all()

    for agendamento in agendamentos:
        resultados["agendamentos"] += 1
        resultado = await whatsapp_service.enviar_mensagem(
            agendamento.telefone,
            formatar_lembrete(agendamento)
        )

        if resultado.get("success"):
            agendamento.notificado = True
            financas.registrar_notificacao(
                db,
                agendamento.telefone,
                "lembrete_agendamento",
                f"Lembrete enviado: {agendamento.descricao} ({fmt_valor(agendamento.valor)})",
                {"agendamento_id": agendamento.id},
            )
            resultados["lembretes_enviados"] += 1
        else:
            resultados["erros"] += 1
            logger.error(
                f"[Worker] Falha no lembrete do agendamento {agendamento.id}: {resultado.get('error')}"
            )

    db.commit()
    return resultados


# =============================================================================
# JOBS
# =============================================================================

async def job_lembretes_agendamentos(ctx: dict) -> dict:
    """
    Job executado diariamente às 8h.
    Lembra pagamentos e recebimentos do dia (e os atrasados).
    """
    agora = datetime.now(SAO_PAULO_TZ)
    logger.info(f"[Worker] Iniciando lembretes de agendamentos - {agora}")

    db = SessionLocal()
    try:
        resultados = await enviar_lembretes_agendamentos(db, agora.date())
    finally:
        db.close()

    logger.info(f"[Worker] Lembretes concluídos: {resultados}")
    return resultados


# =============================================================================
# STARTUP/SHUTDOWN
# =============================================================================

async def startup(ctx: dict):
    """Executado quando o worker inicia."""
    logger.info("[Worker] Iniciando worker arq...")
    logger.info("[Worker] Timezone: America/Sao_Paulo")
    logger.info("[Worker] Jobs agendados:")
    logger.info("  - lembretes_agendamentos: diariamente às 8h")


async def shutdown(ctx: dict):
    """Executado quando o worker para."""
    logger.info("[Worker] Encerrando worker arq...")


# =============================================================================
# CONFIGURAÇÃO DO WORKER
# =============================================================================

class WorkerSettings:
    """Configurações do worker arq."""

    # Conexão Redis
    redis_settings = parse_redis_url(settings.REDIS_URL)

    # Funções de lifecycle
    on_startup = startup
    on_shutdown = shutdown

    # Jobs disponíveis para enfileiramento manual
    functions = [
        job_lembretes_agendamentos,
    ]

    # Jobs agendados (cron)
    cron_jobs = [
        # Diário às 8h (horário de São Paulo)
        cron(
            job_lembretes_agendamentos,
            hour=8,
            minute=0,
            timeout=300,  # 5 min timeout
        ),
    ]

    # Timezone
    timezone = SAO_PAULO_TZ

    # Retry policy
    max_tries = 3
    retry_delay = 60  # 1 minuto entre retries

    # Health check
    health_check_interval = 60
