"""
Cliente base para os provedores de LLM (Groq e Gemini).
"""

import json
import logging
import re
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import httpx

from backend.config import settings

logger = logging.getLogger(__name__)

SAO_PAULO_TZ = ZoneInfo("America/Sao_Paulo")

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models"


class LLMIndisponivelError(Exception):
    """Nenhum provedor de LLM configurado ou todos falharam."""


class LLMClient:
    """
    Cliente para chamadas de texto aos provedores configurados.

    A ordem segue IA_PROVIDER: o provedor escolhido é tentado primeiro e o
    outro serve de fallback.
    """

    def __init__(self):
        self.groq_api_key = settings.GROQ_API_KEY
        self.groq_model = settings.GROQ_MODEL
        self.groq_url = f"{settings.GROQ_BASE_URL.rstrip('/')}/chat/completions"
        self.gemini_api_key = settings.GEMINI_API_KEY
        self.gemini_model = settings.GEMINI_MODEL

    @property
    def configurado(self) -> bool:
        return bool(self.groq_api_key or self.gemini_api_key)

    def _provedores(self) -> list:
        provedores = []
        if self.groq_api_key:
            provedores.append(("groq", self._call_groq))
        if self.gemini_api_key:
            provedores.append(("gemini", self._call_gemini))
        if settings.IA_PROVIDER == "gemini":
            provedores.sort(key=lambda p: p[0] != "gemini")
        return provedores

    async def call(
        self,
        prompt: str,
        max_tokens: int = 1000,
        temperature: float = 0.1,
        timeout: int = 30,
    ) -> str:
        """
        Faz chamada de texto, tentando os provedores em ordem.

        Raises:
            LLMIndisponivelError: sem provedor configurado ou todos falharam
        """
        provedores = self._provedores()
        if not provedores:
            raise LLMIndisponivelError("Nenhum provedor de IA configurado")

        ultimo_erro = None
        for nome, chamar in provedores:
            try:
                return await chamar(prompt, max_tokens, temperature, timeout)
            except (httpx.HTTPError, KeyError, IndexError) as e:
                logger.warning(f"[LLM] Falha no provedor {nome}: {e}")
                ultimo_erro = e

        raise LLMIndisponivelError(f"Todos os provedores falharam: {ultimo_erro}")

    async def _call_groq(self, prompt: str, max_tokens: int, temperature: float, timeout: int) -> str:
        headers = {
            "Authorization": f"Bearer {self.groq_api_key}",
            "Content-Type": "application/json",
        }

        payload = {
            "model": self.groq_model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        async with httpx.AsyncClient() as client:
            response = await client.post(
                self.groq_url,
                headers=headers,
                json=payload,
                timeout=timeout,
            )
            response.raise_for_status()

        return response.json()["choices"][0]["message"]["content"]

    async def _call_gemini(self, prompt: str, max_tokens: int, temperature: float, timeout: int) -> str:
        return await self.call_gemini_parts(
            [{"text": prompt}],
            max_tokens=max_tokens,
            temperature=temperature,
            timeout=timeout,
        )

    async def call_gemini_parts(
        self,
        parts: list[dict],
        max_tokens: int = 1000,
        temperature: float = 0.1,
        timeout: int = 60,
    ) -> str:
        """
        Chamada ao Gemini com partes arbitrárias (texto, áudio inline).

        Args:
            parts: Lista de partes no formato da API generateContent
        """
        if not self.gemini_api_key:
            raise LLMIndisponivelError("GEMINI_API_KEY não configurada")

        url = f"{GEMINI_URL}/{self.gemini_model}:generateContent"
        payload = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "maxOutputTokens": max_tokens,
                "temperature": temperature,
            },
        }

        async with httpx.AsyncClient() as client:
            response = await client.post(
                url,
                params={"key": self.gemini_api_key},
                json=payload,
                timeout=timeout,
            )
            response.raise_for_status()

        candidato = response.json()["candidates"][0]
        return "".join(p.get("text", "") for p in candidato["content"]["parts"])


def parse_llm_response(response: str):
    """
    Parseia resposta do LLM removendo markdown se necessário.

    Aceita tanto um objeto quanto uma lista JSON.
    """
    response = re.sub(r"```json\s*", "", response)
    response = re.sub(r"```\s*", "", response)
    response = response.strip()

    json_match = re.search(r"[\[{].*[\]}]", response, re.DOTALL)
    if json_match:
        response = json_match.group()

    return json.loads(response)


def hoje_sp() -> date:
    """Data de hoje no fuso de São Paulo"""
    return datetime.now(SAO_PAULO_TZ).date()


def convert_relative_date(data_relativa: str | None, referencia: date | None = None) -> date:
    """
    Converte data relativa em date.

    Args:
        data_relativa: "hoje", "ontem", "anteontem" ou "YYYY-MM-DD"
        referencia: data base (default: hoje em São Paulo)
    """
    hoje = referencia or hoje_sp()
    if not data_relativa or data_relativa == "hoje":
        return hoje
    elif data_relativa == "ontem":
        return hoje - timedelta(days=1)
    elif data_relativa == "anteontem":
        return hoje - timedelta(days=2)
    else:
        try:
            return date.fromisoformat(data_relativa[:10])
        except ValueError:
            return hoje
