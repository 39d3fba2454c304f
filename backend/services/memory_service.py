"""
Memory Service - Memória de curto prazo do sistema Zela.

- Contexto de conversa por telefone (últimas 10 mensagens, transações
  pendentes de confirmação, última ação), expira após 10 minutos sem uso
- Códigos de verificação de login (5 minutos)

O armazenamento é plugável: Redis em produção, memória local em testes
ou em instalações sem Redis.
"""

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Callable, Optional

import redis.asyncio as redis

from backend.config import settings
from backend.core.security import gerar_hash_codigo, verificar_codigo_hash

logger = logging.getLogger(__name__)

MAX_MENSAGENS = 10


# ==================== ARMAZENAMENTO ====================

class ArmazenamentoBase(ABC):
    """Interface mínima de um armazenamento chave/valor com TTL"""

    @abstractmethod
    async def get(self, chave: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, chave: str, valor: str, ttl: int) -> None:
        pass

    @abstractmethod
    async def delete(self, chave: str) -> None:
        pass

    @abstractmethod
    def lock(self, chave: str):
        """Retorna um async context manager que serializa escritas na chave"""
        pass

    async def close(self) -> None:
        pass


class MemoriaLocal(ArmazenamentoBase):
    """Armazenamento em dicionário do processo, com expiração na leitura"""

    def __init__(self, relogio: Callable[[], float] = time.monotonic):
        self._relogio = relogio
        self._dados: dict[str, tuple[str, float]] = {}
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get(self, chave: str) -> Optional[str]:
        item = self._dados.get(chave)
        if item is None:
            return None
        valor, expira_em = item
        if self._relogio() >= expira_em:
            del self._dados[chave]
            return None
        return valor

    async def set(self, chave: str, valor: str, ttl: int) -> None:
        self._dados[chave] = (valor, self._relogio() + ttl)

    async def delete(self, chave: str) -> None:
        self._dados.pop(chave, None)

    def lock(self, chave: str):
        return self._locks[chave]

    def limpar_expirados(self) -> int:
        """Remove chaves expiradas; retorna quantas foram removidas"""
        agora = self._relogio()
        expiradas = [c for c, (_, expira_em) in self._dados.items() if agora >= expira_em]
        for chave in expiradas:
            del self._dados[chave]
            lock = self._locks.get(chave)
            if lock is not None and not lock.locked():
                del self._locks[chave]
        return len(expiradas)


class MemoriaRedis(ArmazenamentoBase):
    """Armazenamento em Redis"""

    def __init__(self, url: str):
        self.url = url
        self._redis: Optional[redis.Redis] = None

    def _cliente(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True
            )
        return self._redis

    async def get(self, chave: str) -> Optional[str]:
        r = self._cliente()
        return await r.get(chave)

    async def set(self, chave: str, valor: str, ttl: int) -> None:
        r = self._cliente()
        await r.setex(chave, ttl, valor)

    async def delete(self, chave: str) -> None:
        r = self._cliente()
        await r.delete(chave)

    def lock(self, chave: str):
        return self._cliente().lock(f"{chave}:lock", timeout=10, blocking_timeout=5)

    async def close(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None


# ==================== CONTEXTO DE CONVERSA ====================

@dataclass
class MensagemContexto:
    role: str  # "user" ou "assistant"
    conteudo: str
    timestamp: str


@dataclass
class ContextoConversa:
    telefone: str
    mensagens: list[MensagemContexto] = field(default_factory=list)
    transacoes_pendentes: list[dict] = field(default_factory=list)
    pendente_desde: Optional[str] = None
    ultima_acao: Optional[str] = None
    ultima_atualizacao: float = 0.0

    def adicionar(self, role: str, conteudo: str) -> None:
        self.mensagens.append(
            MensagemContexto(role, conteudo, datetime.now(UTC).isoformat())
        )
        # Mantém apenas as últimas mensagens
        self.mensagens = self.mensagens[-MAX_MENSAGENS:]

    def expirado(self, agora: float, ttl: int) -> bool:
        return agora - self.ultima_atualizacao > ttl

    def to_dict(self) -> dict:
        return {
            "telefone": self.telefone,
            "mensagens": [m.__dict__ for m in self.mensagens],
            "transacoes_pendentes": self.transacoes_pendentes,
            "pendente_desde": self.pendente_desde,
            "ultima_acao": self.ultima_acao,
            "ultima_atualizacao": self.ultima_atualizacao,
        }

    @classmethod
    def from_dict(cls, dados: dict) -> "ContextoConversa":
        return cls(
            telefone=dados["telefone"],
            mensagens=[MensagemContexto(**m) for m in dados.get("mensagens", [])],
            transacoes_pendentes=dados.get("transacoes_pendentes", []),
            pendente_desde=dados.get("pendente_desde"),
            ultima_acao=dados.get("ultima_acao"),
            ultima_atualizacao=dados.get("ultima_atualizacao", 0.0),
        )


class MemoryService:
    """Serviço de memória de conversa e códigos de verificação"""

    # Prefixos de chaves
    PREFIX_CONTEXTO = "zela:contexto:"
    PREFIX_CODIGO = "zela:codigo:"

    def __init__(
        self,
        armazenamento: Optional[ArmazenamentoBase] = None,
        relogio: Callable[[], float] = time.time,
    ):
        self.armazenamento = armazenamento or self._criar_armazenamento()
        self.ttl_contexto = settings.CONTEXTO_TTL
        self.ttl_codigo = settings.CODIGO_VERIFICACAO_TTL
        self._relogio = relogio

    @staticmethod
    def _criar_armazenamento() -> ArmazenamentoBase:
        if settings.MEMORY_BACKEND == "memory":
            return MemoriaLocal()
        return MemoriaRedis(settings.REDIS_URL)

    async def close(self):
        await self.armazenamento.close()

    # ==================== CONTEXTO ====================

    async def _ler(self, chave: str) -> Optional[ContextoConversa]:
        data = await self.armazenamento.get(chave)
        if not data:
            return None

        contexto = ContextoConversa.from_dict(json.loads(data))
        if contexto.expirado(self._relogio(), self.ttl_contexto):
            await self.armazenamento.delete(chave)
            return None
        return contexto

    async def _gravar(self, chave: str, contexto: ContextoConversa) -> None:
        contexto.ultima_atualizacao = self._relogio()
        await self.armazenamento.set(chave, json.dumps(contexto.to_dict()), self.ttl_contexto)

    async def obter_contexto(self, telefone: str) -> Optional[ContextoConversa]:
        """
        Retorna o contexto da conversa, ou None se não existir, estiver
        expirado ou o armazenamento estiver indisponível.
        """
        try:
            return await self._ler(f"{self.PREFIX_CONTEXTO}{telefone}")
        except Exception as e:
            logger.warning(f"[Memoria] Contexto indisponível para {telefone}: {e}")
            return None

    async def salvar_contexto(self, contexto: ContextoConversa) -> None:
        try:
            await self._gravar(f"{self.PREFIX_CONTEXTO}{contexto.telefone}", contexto)
        except Exception as e:
            logger.warning(f"[Memoria] Não foi possível salvar contexto de {contexto.telefone}: {e}")

    async def _atualizar(
        self, telefone: str, alterar: Callable[[ContextoConversa], None]
    ) -> Optional[ContextoConversa]:
        """
        Leitura-alteração-escrita do contexto sob o lock da chave.

        Retorna None quando a alteração não foi gravada (lock não obtido
        ou armazenamento indisponível).
        """
        chave = f"{self.PREFIX_CONTEXTO}{telefone}"
        try:
            async with self.armazenamento.lock(chave):
                contexto = await self._ler(chave) or ContextoConversa(telefone=telefone)
                alterar(contexto)
                await self._gravar(chave, contexto)
                return contexto
        except Exception as e:
            logger.warning(f"[Memoria] Falha ao atualizar contexto de {telefone}: {e}")
            return None

    async def adicionar_mensagem(self, telefone: str, role: str, conteudo: str) -> Optional[ContextoConversa]:
        """Adiciona mensagem ao histórico (mantém as últimas 10); None se não foi gravada"""
        return await self._atualizar(telefone, lambda ctx: ctx.adicionar(role, conteudo))

    async def salvar_transacoes_pendentes(self, telefone: str, transacoes: list[dict]) -> Optional[ContextoConversa]:
        """Guarda transações extraídas aguardando "sim" ou "não" """
        def alterar(ctx: ContextoConversa):
            ctx.transacoes_pendentes = transacoes
            ctx.pendente_desde = datetime.now(UTC).isoformat()
            ctx.ultima_acao = "confirmando"

        return await self._atualizar(telefone, alterar)

    async def retirar_transacoes_pendentes(self, telefone: str) -> list[dict]:
        """
        Devolve as transações pendentes e limpa a pendência numa única
        operação sob o lock. Confirmações simultâneas nunca recebem o
        mesmo lote: a segunda recebe lista vazia.
        """
        retiradas: list[dict] = []

        def alterar(ctx: ContextoConversa):
            retiradas.extend(ctx.transacoes_pendentes)
            ctx.transacoes_pendentes = []
            ctx.pendente_desde = None

        if await self._atualizar(telefone, alterar) is None:
            return []
        return retiradas

    async def limpar_transacoes_pendentes(self, telefone: str) -> Optional[ContextoConversa]:
        def alterar(ctx: ContextoConversa):
            ctx.transacoes_pendentes = []
            ctx.pendente_desde = None

        return await self._atualizar(telefone, alterar)

    async def definir_ultima_acao(self, telefone: str, acao: Optional[str]) -> Optional[ContextoConversa]:
        def alterar(ctx: ContextoConversa):
            ctx.ultima_acao = acao

        return await self._atualizar(telefone, alterar)

    async def limpar_contexto(self, telefone: str) -> None:
        try:
            await self.armazenamento.delete(f"{self.PREFIX_CONTEXTO}{telefone}")
        except Exception as e:
            logger.warning(f"[Memoria] Falha ao limpar contexto de {telefone}: {e}")

    @staticmethod
    def formatar_historico(contexto: Optional[ContextoConversa], limite: int = 5) -> str:
        """Histórico recente em texto, para uso em prompts"""
        if not contexto or not contexto.mensagens:
            return ""
        linhas = []
        for m in contexto.mensagens[-limite:]:
            autor = "Usuário" if m.role == "user" else "Assistente"
            linhas.append(f"{autor}: {m.conteudo}")
        return "\n".join(linhas)

    def limpar_expirados(self) -> int:
        """Varredura periódica (só se aplica à memória local)"""
        if isinstance(self.armazenamento, MemoriaLocal):
            return self.armazenamento.limpar_expirados()
        return 0

    # ==================== CÓDIGOS DE VERIFICAÇÃO ====================

    async def salvar_codigo_verificacao(self, telefone: str, codigo: str) -> None:
        """Salva hash do código de login (expira em 5 minutos)"""
        chave = f"{self.PREFIX_CODIGO}{telefone}"
        await self.armazenamento.set(chave, gerar_hash_codigo(codigo), self.ttl_codigo)

    async def verificar_codigo_verificacao(self, telefone: str, codigo: str) -> bool:
        """Valida o código; um código válido só pode ser usado uma vez"""
        chave = f"{self.PREFIX_CODIGO}{telefone}"
        async with self.armazenamento.lock(chave):
            codigo_hash = await self.armazenamento.get(chave)
            if not codigo_hash:
                return False
            if not verificar_codigo_hash(codigo, codigo_hash):
                return False
            await self.armazenamento.delete(chave)
            return True


# Singleton
memory_service = MemoryService()
