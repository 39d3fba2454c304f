"""
Serviço de WhatsApp para envio de mensagens
Compatível com Z-API
"""

import logging

import httpx

from backend.config import settings
from backend.core.identidade import canonicalizar

logger = logging.getLogger(__name__)


class WhatsAppService:
    """Serviço para enviar mensagens via Z-API"""

    def __init__(self):
        self.base_url = settings.ZAPI_BASE_URL.rstrip("/")
        self.instance_id = settings.ZAPI_INSTANCE_ID
        self.token = settings.ZAPI_TOKEN
        self.client_token = settings.ZAPI_CLIENT_TOKEN

    @property
    def configurado(self) -> bool:
        return bool(self.instance_id and self.token)

    def _url(self, recurso: str) -> str:
        return f"{self.base_url}/instances/{self.instance_id}/token/{self.token}/{recurso}"

    def _get_headers(self) -> dict:
        """Retorna headers para requisições Z-API"""
        headers = {"Content-Type": "application/json"}
        if self.client_token:
            headers["Client-Token"] = self.client_token
        return headers

    async def enviar_mensagem(self, numero: str, mensagem: str) -> dict:
        """
        Envia mensagem de texto para um número

        Args:
            numero: Número do WhatsApp em qualquer formato aceito
            mensagem: Texto da mensagem

        Returns:
            dict com resultado da API
        """
        if not self.configurado:
            logger.warning("[WhatsApp] API não configurada")
            return {"success": False, "error": "API não configurada"}

        identidade = canonicalizar(numero)
        if identidade.desconhecida:
            logger.warning(f"[WhatsApp] Número inválido para envio: {numero!r}")
            return {"success": False, "error": "Número inválido"}

        payload = {
            "phone": identidade.digitos,
            "message": mensagem,
        }

        try:
            async with httpx.AsyncClient(timeout=30) as client:
                response = await client.post(
                    self._url("send-text"),
                    json=payload,
                    headers=self._get_headers()
                )
        except httpx.HTTPError as e:
            logger.error(f"[WhatsApp] Erro ao enviar: {e}")
            return {"success": False, "error": str(e)}

        if response.status_code in [200, 201]:
            logger.info(f"[WhatsApp] Mensagem enviada para {identidade.digitos}")
            return {"success": True, "data": response.json()}

        logger.error(f"[WhatsApp] Erro: {response.status_code} - {response.text}")
        return {"success": False, "error": response.text}

    async def verificar_conexao(self) -> dict:
        """Verifica se a instância está conectada"""
        if not self.configurado:
            return {"connected": False, "error": "API não configurada"}

        try:
            async with httpx.AsyncClient(timeout=10) as client:
                response = await client.get(self._url("status"), headers=self._get_headers())
        except httpx.HTTPError as e:
            return {"connected": False, "error": str(e)}

        if response.status_code != 200:
            return {"connected": False, "error": response.text}

        data = response.json()
        return {"connected": bool(data.get("connected")), "data": data}


# Instância global
whatsapp_service = WhatsAppService()
