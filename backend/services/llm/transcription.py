"""
Transcrição de áudio usando Gemini (áudio inline).
"""

import base64
import logging

import httpx

from backend.services.llm.client import LLMClient, LLMIndisponivelError

logger = logging.getLogger(__name__)

PROMPT_TRANSCRICAO = """Transcreva este áudio em português brasileiro.
Retorne APENAS o texto transcrito, sem explicações ou formatação adicional.
Se o áudio estiver inaudível ou vazio, retorne: [INAUDÍVEL]"""


class AudioTranscriber:
    """Serviço de transcrição de áudio."""

    def __init__(self, client: LLMClient):
        self.client = client

    async def transcribe_from_url(self, audio_url: str) -> tuple[str, bool]:
        """
        Transcreve áudio a partir de URL.

        Returns:
            Tuple (texto_transcrito, sucesso)
        """
        if not self.client.gemini_api_key:
            logger.warning("[Audio] GEMINI_API_KEY não configurada")
            return "", False

        try:
            logger.debug(f"[Audio] Baixando áudio de: {audio_url}")
            async with httpx.AsyncClient() as client:
                response = await client.get(audio_url, timeout=30)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"[Audio] Erro ao baixar áudio: {e}")
            return "", False

        audio_base64 = base64.b64encode(response.content).decode("utf-8")
        mimetype = response.headers.get("content-type", "audio/ogg").split(";")[0].strip()
        return await self.transcribe_from_base64(audio_base64, mimetype or "audio/ogg")

    async def transcribe_from_base64(
        self,
        base64_data: str,
        mimetype: str = "audio/ogg",
    ) -> tuple[str, bool]:
        """Transcreve áudio já codificado em base64."""
        if not self.client.gemini_api_key:
            logger.warning("[Audio] GEMINI_API_KEY não configurada")
            return "", False

        try:
            logger.debug(f"[Audio] Transcrevendo áudio ({mimetype}, {len(base64_data)} chars)")
            texto = await self.client.call_gemini_parts(
                [
                    {"text": PROMPT_TRANSCRICAO},
                    {"inline_data": {"mime_type": mimetype, "data": base64_data}},
                ],
                timeout=60,
            )
        except (httpx.HTTPError, KeyError, IndexError, LLMIndisponivelError) as e:
            logger.error(f"[Audio] Erro ao transcrever: {e}")
            return "", False

        texto = texto.strip()
        if not texto or texto == "[INAUDÍVEL]":
            logger.warning("[Audio] Áudio inaudível")
            return "", False

        logger.debug(f"[Audio] Transcrição: {texto[:100]}")
        return texto, True
