"""
Intent Classifier - Classificação determinística de mensagens (sem LLM).

Decide qual pipeline trata a mensagem antes de qualquer chamada ao modelo:
comando rápido, ajuda, saldo, exclusão, agendamento, transação ou pergunta.

As regras ficam em uma única tabela ordenada (REGRAS); a primeira que casar
vence. Agendamento vem antes de transação porque "conta" e "pagamento"
também aparecem em frases de gasto comum ("paguei a conta de luz").
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, NamedTuple, Optional

from backend.utils.texto import normalizar

logger = logging.getLogger(__name__)


class TipoIntencao(str, Enum):
    """Pipelines possíveis para uma mensagem"""
    COMANDO = "comando"
    AJUDA = "ajuda"
    SALDO = "saldo"
    EXCLUSAO = "exclusao"
    AGENDAMENTO = "agendamento"
    TRANSACAO = "transacao"
    PERGUNTA = "pergunta"
    DESCONHECIDA = "desconhecida"


@dataclass(frozen=True)
class ResultadoIntencao:
    tipo: TipoIntencao
    confianca: float
    detalhes: dict = field(default_factory=dict)


# ==================== VOCABULÁRIO ====================

COMANDOS = {"ajuda", "help", "exemplos", "comandos", "hoje", "mes"}

RELATORIOS = [
    (r"(?:resumo|relatorio|extrato|gastos|balanco) (?:do|deste|desse|este|esse) mes", "mes"),
    (r"resumo mensal", "mes"),
    (r"(?:resumo|relatorio|extrato|gastos) (?:de|do) (?:hoje|dia)", "hoje"),
    (r"resumo diario", "hoje"),
]

TERMOS_AJUDA = [
    r"ajuda", r"socorro", r"me ajud\w*", r"como funciona", r"como (?:eu )?uso",
    r"como usar", r"o que (?:voce|vc) faz", r"menu",
]

TERMOS_SALDO = [
    r"saldos?", r"quanto (?:eu )?tenho", r"quanto (?:me )?(?:sobrou|resta|restou)",
]

TERMOS_EXCLUSAO = [
    r"excluir", r"exclua", r"deletar", r"delete", r"apagar", r"apague",
    r"remover", r"remova", r"cancelar (?:a |o )?(?:transacao|registro|lancamento)",
]

TERMOS_AGENDAMENTO = [
    r"agendar", r"agende", r"agendamentos?", r"agendad[oa]s?",
    r"lembrar", r"lembre(?:-| )?me", r"lembretes?",
    r"boletos?", r"contas?", r"pagamentos?", r"recebimentos?",
    r"para (?:o )?dia", r"no dia", r"vencimentos?", r"vence", r"vencer",
    r"marcar", r"programar",
]

INTERROGATIVAS = [
    r"quanto", r"quantos", r"quantas", r"qual", r"quais", r"quando", r"onde",
    r"como", r"por que", r"porque", r"o que", r"quem", r"sera",
]

CONFIRMAR = {"sim", "s", "ok", "confirma", "confirmar", "confirmo", "isso", "certo",
             "correto", "pode", "pode salvar", "salva", "salvar", "yes"}
CANCELAR = {"nao", "n", "cancela", "cancelar", "errado", "no", "nao quero"}

ABERTURAS_SEGUIMENTO = re.compile(r"^(?:e|mas)\s")
VALOR_SOLTO = re.compile(r"^(?:r\$\s*)?\d+(?:[.,]\d+)?(?:\s*reais?)?$")
CODIGO_TRANSACAO = re.compile(r"\b([A-Z]{2}\d{2}[A-Z])\b", re.IGNORECASE)


def _compilar(termos: list[str]) -> re.Pattern:
    return re.compile(r"(?<!\w)(?:" + "|".join(termos) + r")(?!\w)")


_RE_AJUDA = _compilar(TERMOS_AJUDA)
_RE_SALDO = _compilar(TERMOS_SALDO)
_RE_EXCLUSAO = _compilar(TERMOS_EXCLUSAO)
_RE_AGENDAMENTO = _compilar(TERMOS_AGENDAMENTO)
_RE_INTERROGATIVA = re.compile(r"^(?:" + "|".join(INTERROGATIVAS) + r")(?!\w)")
_RE_RELATORIOS = [(re.compile(p), comando) for p, comando in RELATORIOS]


def _sem_pontuacao(texto: str) -> str:
    return texto.strip(" !.?,;")


# ==================== PREDICADOS ====================
# Cada predicado recebe (texto normalizado, texto original, contexto) e
# retorna os detalhes da intenção quando casa, ou None.

def _confirmacao_pendente(texto: str, original: str, contexto) -> Optional[dict]:
    if not getattr(contexto, "transacoes_pendentes", None):
        return None
    resposta = _sem_pontuacao(texto)
    if resposta in CONFIRMAR:
        return {"confirmacao": True}
    if resposta in CANCELAR:
        return {"confirmacao": False}
    return None


def _comando(texto: str, original: str, contexto) -> Optional[dict]:
    token = _sem_pontuacao(texto)
    if token.startswith("/"):
        token = token[1:].strip()
    if token in COMANDOS:
        return {"comando": token}

    for padrao, comando in _RE_RELATORIOS:
        if padrao.search(texto):
            return {"comando": comando, "relatorio": True}
    return None


def _ajuda(texto: str, original: str, contexto) -> Optional[dict]:
    return {} if _RE_AJUDA.search(texto) else None


def _saldo(texto: str, original: str, contexto) -> Optional[dict]:
    return {} if _RE_SALDO.search(texto) else None


def _exclusao(texto: str, original: str, contexto) -> Optional[dict]:
    if not _RE_EXCLUSAO.search(texto):
        return None
    match = CODIGO_TRANSACAO.search(original)
    return {"codigo": match.group(1).upper()} if match else {}


def _agendamento(texto: str, original: str, contexto) -> Optional[dict]:
    match = _RE_AGENDAMENTO.search(texto)
    return {"palavra_chave": match.group(0)} if match else None


def _seguimento_pergunta(texto: str, original: str, contexto) -> Optional[dict]:
    if getattr(contexto, "ultima_acao", None) != "pergunta":
        return None
    return {"seguimento": True} if ABERTURAS_SEGUIMENTO.search(texto) else None


def _pergunta(texto: str, original: str, contexto) -> Optional[dict]:
    if "?" in texto or _RE_INTERROGATIVA.search(texto):
        return {}
    return None


def _complemento_extracao(texto: str, original: str, contexto) -> Optional[dict]:
    if getattr(contexto, "ultima_acao", None) != "extraindo_transacao":
        return None
    return {"complemento": True} if VALOR_SOLTO.match(_sem_pontuacao(texto)) else None


class Regra(NamedTuple):
    predicado: Callable[[str, str, object], Optional[dict]]
    tipo: TipoIntencao
    confianca: float


REGRAS: list[Regra] = [
    Regra(_confirmacao_pendente, TipoIntencao.TRANSACAO, 0.95),
    Regra(_comando, TipoIntencao.COMANDO, 1.0),
    Regra(_ajuda, TipoIntencao.AJUDA, 0.9),
    Regra(_saldo, TipoIntencao.SALDO, 0.9),
    Regra(_exclusao, TipoIntencao.EXCLUSAO, 0.9),
    Regra(_agendamento, TipoIntencao.AGENDAMENTO, 0.7),
    Regra(_seguimento_pergunta, TipoIntencao.PERGUNTA, 0.6),
    Regra(_pergunta, TipoIntencao.PERGUNTA, 0.75),
    Regra(_complemento_extracao, TipoIntencao.TRANSACAO, 0.7),
]


def classificar_intencao(texto: str, contexto=None) -> ResultadoIntencao:
    """
    Classifica a mensagem em exatamente uma intenção.

    Args:
        texto: Mensagem do usuário (já transcrita, se era áudio)
        contexto: ContextoConversa opcional; só transacoes_pendentes e
            ultima_acao são lidos

    Returns:
        ResultadoIntencao. Sem sinal forte, cai em TRANSACAO (o chamador
        rebaixa para DESCONHECIDA se a extração não encontrar nada).
    """
    if not isinstance(texto, str) or not texto.strip():
        return ResultadoIntencao(TipoIntencao.DESCONHECIDA, 0.0)

    try:
        normalizado = normalizar(texto)

        for regra in REGRAS:
            detalhes = regra.predicado(normalizado, texto, contexto)
            if detalhes is not None:
                return ResultadoIntencao(regra.tipo, regra.confianca, detalhes)

        confianca = 0.5 if re.search(r"\d", normalizado) else 0.3
        return ResultadoIntencao(TipoIntencao.TRANSACAO, confianca)

    except Exception as e:
        logger.error(f"[Intencao] Erro ao classificar: {e}", exc_info=True)
        return ResultadoIntencao(TipoIntencao.TRANSACAO, 0.3)
