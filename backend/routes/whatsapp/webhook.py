"""
Webhooks do WhatsApp - Recebe mensagens e processa com o Gateway Agent.
Compatível com Z-API (JSON) e Twilio (form-urlencoded).
"""

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from backend.config import settings
from backend.core.database import get_db
from backend.core.identidade import canonicalizar
from backend.core.security import obter_usuario_atual
from backend.models import Usuario
from backend.routes.whatsapp.utils import (
    montar_twiml,
    registrar_numero,
    verify_twilio_signature,
    verify_webhook_signature,
)
from backend.services import llm_service, whatsapp_service
from backend.services.agents.base_agent import OrigemMensagem
from backend.services.agents.processor import processar_mensagem

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/whatsapp", tags=["WhatsApp"])

MENSAGEM_AUDIO_FALHOU = "Não consegui entender o áudio. Pode enviar por texto?"

# Tipos de callback da Z-API que carregam mensagem recebida
EVENTOS_MENSAGEM = {"ReceivedCallback"}


async def _obter_texto(texto: str, audio_url: str, audio_mimetype: str | None = None) -> tuple[str, str]:
    """
    Resolve o conteúdo da mensagem.

    Returns:
        Tuple (texto, origem); texto vazio se o áudio não pôde ser transcrito
    """
    if texto:
        return texto, OrigemMensagem.WHATSAPP_TEXTO.value

    logger.debug(f"[Webhook] Áudio recebido ({audio_mimetype or 'tipo desconhecido'})")
    transcricao, sucesso = await llm_service.transcrever_audio(audio_url)
    if not sucesso:
        return "", OrigemMensagem.WHATSAPP_AUDIO.value
    return transcricao, OrigemMensagem.WHATSAPP_AUDIO.value


@router.post("/webhook")
async def webhook_whatsapp(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    x_webhook_signature: str | None = Header(None, alias="X-Webhook-Signature"),
):
    """
    Webhook para receber mensagens da Z-API.

    Valida assinatura HMAC-SHA256 se WEBHOOK_SECRET estiver configurado.
    A resposta ao usuário é enviada em background.
    """
    body = await request.body()
    if not verify_webhook_signature(body, x_webhook_signature):
        logger.warning("[Webhook] Assinatura inválida - rejeitando requisição")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        payload = json.loads(body)
        logger.debug(f"[Webhook] Payload recebido: {payload}")

        evento = payload.get("type")
        if evento and evento not in EVENTOS_MENSAGEM:
            return {"status": "ignored", "reason": f"event type: {evento}"}

        # Ignora mensagens enviadas por nós
        if payload.get("fromMe", False):
            return {"status": "ignored", "reason": "own message"}

        if payload.get("isGroup", False):
            return {"status": "ignored", "reason": "group message"}

        identidade = canonicalizar(payload.get("phone"))
        if identidade.desconhecida:
            logger.warning(f"[Webhook] Número inválido no payload: {payload.get('phone')!r}")
            return {"status": "error", "reason": "number not found"}

        texto = ((payload.get("text") or {}).get("message") or "").strip()
        audio = payload.get("audio") or {}
        audio_url = audio.get("audioUrl", "")

        if not texto and not audio_url:
            logger.debug(f"[Webhook] Tipo não suportado de {identidade}")
            return {"status": "ignored", "reason": "unsupported message type"}

        registrar_numero(db, identidade)

        mensagem, origem = await _obter_texto(texto, audio_url, audio.get("mimeType"))
        if not mensagem:
            background_tasks.add_task(
                whatsapp_service.enviar_mensagem, identidade.digitos, MENSAGEM_AUDIO_FALHOU
            )
            return {"status": "audio_transcription_failed"}

        resultado = await processar_mensagem(identidade.digitos, mensagem, origem, db)

        if resultado.mensagem:
            background_tasks.add_task(
                whatsapp_service.enviar_mensagem, identidade.digitos, resultado.mensagem
            )

        return {
            "status": "success" if resultado.sucesso else "processed",
            "origem": origem,
            "codigo": resultado.codigo_transacao,
        }

    except Exception as e:
        logger.error(f"[Webhook] Erro: {e}", exc_info=True)
        return {"status": "error", "error": str(e)}


@router.post("/twilio")
async def webhook_twilio(
    request: Request,
    db: Session = Depends(get_db),
    x_twilio_signature: str | None = Header(None, alias="X-Twilio-Signature"),
):
    """
    Webhook do Twilio (form-urlencoded com From e Body).

    Exige X-Twilio-Signature válida. A resposta volta na própria
    requisição em TwiML.
    """
    form = dict(await request.form())
    url = settings.TWILIO_WEBHOOK_URL or str(request.url)
    if not verify_twilio_signature(url, form, x_twilio_signature):
        logger.warning("[Twilio] Assinatura inválida - rejeitando requisição")
        raise HTTPException(status_code=403, detail="Invalid Twilio signature")

    identidade = canonicalizar(form.get("From"))
    if identidade.desconhecida:
        logger.warning(f"[Twilio] Remetente inválido: {form.get('From')!r}")
        return Response(content=montar_twiml("Não consegui identificar seu número."), media_type="text/xml")

    try:
        registrar_numero(db, identidade)

        audio_url = ""
        if form.get("MediaContentType0", "").startswith("audio"):
            audio_url = form.get("MediaUrl0", "")

        mensagem, origem = await _obter_texto(form.get("Body", "").strip(), audio_url)
        if not mensagem:
            resposta = MENSAGEM_AUDIO_FALHOU if audio_url else "Envie uma mensagem de texto ou áudio."
        else:
            resultado = await processar_mensagem(identidade.digitos, mensagem, origem, db)
            resposta = resultado.mensagem

    except Exception as e:
        logger.error(f"[Twilio] Erro: {e}", exc_info=True)
        resposta = "Desculpe, tive um problema. Pode repetir?"

    return Response(content=montar_twiml(resposta), media_type="text/xml")


@router.get("/status")
async def status_whatsapp(usuario_atual: Usuario = Depends(obter_usuario_atual)):
    """Verifica a conexão da instância Z-API"""
    return await whatsapp_service.verificar_conexao()
