"""
Funções utilitárias para processamento de mensagens WhatsApp.
"""

import hashlib
import hmac
import logging

from sqlalchemy.orm import Session
from twilio.request_validator import RequestValidator
from twilio.twiml.messaging_response import MessagingResponse

from backend.config import settings
from backend.core.identidade import IdentidadeTelefone, expandir_variacoes
from backend.models import NumeroRegistrado, agora_utc

logger = logging.getLogger(__name__)


def verify_webhook_signature(payload: bytes, signature: str | None) -> bool:
    """
    Verifica a assinatura HMAC-SHA256 do webhook.

    Args:
        payload: Corpo da requisição em bytes
        signature: Assinatura enviada no header X-Webhook-Signature

    Returns:
        True se a assinatura for válida ou se WEBHOOK_SECRET não estiver configurado
    """
    # Sem secret configurado, pula validação (desenvolvimento)
    if not settings.WEBHOOK_SECRET:
        return True

    if not signature:
        return False

    expected_signature = hmac.new(
        settings.WEBHOOK_SECRET.encode("utf-8"),
        payload,
        hashlib.sha256,
    ).hexdigest()

    return hmac.compare_digest(expected_signature, signature)


def registrar_numero(db: Session, identidade: IdentidadeTelefone) -> NumeroRegistrado:
    """
    Registra (ou atualiza) o número que mandou mensagem ao bot.

    Só números registrados podem pedir código de acesso ao portal.
    """
    registro = db.query(NumeroRegistrado).filter(
        NumeroRegistrado.telefone.in_(list(expandir_variacoes(identidade)))
    ).first()

    if registro:
        registro.ultima_mensagem = agora_utc()
        registro.total_mensagens = (registro.total_mensagens or 0) + 1
    else:
        registro = NumeroRegistrado(telefone=identidade.digitos)
        db.add(registro)
        logger.info(f"[Webhook] Novo número registrado: {identidade}")

    db.commit()
    return registro


def verify_twilio_signature(url: str, params: dict, signature: str | None) -> bool:
    """
    Verifica o header X-Twilio-Signature.

    Sem TWILIO_AUTH_TOKEN configurado nenhuma requisição é aceita.
    """
    if not settings.TWILIO_AUTH_TOKEN or not signature:
        return False

    validator = RequestValidator(settings.TWILIO_AUTH_TOKEN)
    return validator.validate(url, params, signature)


def montar_twiml(mensagem: str) -> str:
    """Resposta no formato TwiML do Twilio"""
    resposta = MessagingResponse()
    resposta.message(mensagem)
    return str(resposta)
