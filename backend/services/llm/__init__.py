"""
LLM Service - Processamento com Groq e Gemini.

Módulos:
- client: Cliente base dos provedores
- extraction: Extração de transações e agendamentos
- transcription: Transcrição de áudio
"""

from datetime import date

from backend.services.llm.client import LLMClient, LLMIndisponivelError
from backend.services.llm.extraction import TextExtractor
from backend.services.llm.transcription import AudioTranscriber


class LLMService:
    """Serviço unificado para processamento com LLM."""

    def __init__(self):
        self.client = LLMClient()
        self._transcriber = AudioTranscriber(self.client)
        self._extractor = TextExtractor(self.client)

    @property
    def configurado(self) -> bool:
        return self.client.configurado

    # =========================================================================
    # Text Extraction
    # =========================================================================

    async def extrair_transacoes(self, texto: str, historico: str = "") -> list[dict]:
        """Extrai uma ou mais transações financeiras de um texto."""
        return await self._extractor.extrair_transacoes(texto, historico)

    async def extrair_agendamento(self, texto: str, referencia: date | None = None) -> dict | None:
        """Extrai um agendamento futuro de um texto."""
        return await self._extractor.extrair_agendamento(texto, referencia)

    # =========================================================================
    # Audio Transcription
    # =========================================================================

    async def transcrever_audio(self, audio_url: str) -> tuple[str, bool]:
        """Transcreve áudio para texto usando Gemini."""
        return await self._transcriber.transcribe_from_url(audio_url)


# Instância global
llm_service = LLMService()

__all__ = ["LLMClient", "LLMIndisponivelError", "LLMService", "llm_service"]
