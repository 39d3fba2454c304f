"""
Identidade por telefone.

Normaliza números vindos do webhook, do token JWT ou do banco para uma forma
canônica (apenas dígitos, com DDI 55) e decide se dois números representam o
mesmo assinante, considerando:
- Prefixo de transporte "whatsapp:" e "+"
- Nono dígito dos celulares brasileiros (8 ou 9 dígitos no assinante)
"""

import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

CODIGO_PAIS = "55"
PREFIXO_TRANSPORTE = "whatsapp:"
SENTINELA = "desconhecido"

_NAO_DIGITO = re.compile(r"\D")


class PropriedadeNegada(Exception):
    """O recurso pertence a outro telefone."""

    def __init__(self, dono: str, chamador: str):
        self.dono = dono
        self.chamador = chamador
        super().__init__("Recurso pertence a outro usuário")


@dataclass(frozen=True)
class IdentidadeTelefone:
    """Telefone canônico de um assinante."""
    digitos: str
    codigo_pais: str = CODIGO_PAIS
    tinha_prefixo: bool = field(default=False, compare=False)

    @property
    def desconhecida(self) -> bool:
        return not self.digitos

    @property
    def ddd(self) -> str:
        return self.digitos[2:4]

    @property
    def assinante(self) -> str:
        return self.digitos[4:]

    def __str__(self) -> str:
        return self.digitos or SENTINELA


IDENTIDADE_DESCONHECIDA = IdentidadeTelefone(digitos="")


def canonicalizar(raw) -> IdentidadeTelefone:
    """
    Converte um telefone em qualquer formato para a identidade canônica.

    Exemplos:
        "whatsapp:+5561981474690" -> 5561981474690
        "(61) 98147-4690"         -> 5561981474690
        "5511999999999@s.whatsapp.net" -> 5511999999999

    Entradas vazias ou implausíveis viram a identidade desconhecida,
    que nunca corresponde a nenhuma outra.
    """
    if not isinstance(raw, str):
        logger.debug(f"[Identidade] Entrada não textual: {raw!r}")
        return IDENTIDADE_DESCONHECIDA

    texto = raw.strip()
    tinha_prefixo = texto.lower().startswith(PREFIXO_TRANSPORTE)
    if tinha_prefixo:
        texto = texto[len(PREFIXO_TRANSPORTE):].strip()

    digitos = _NAO_DIGITO.sub("", texto.lstrip("+"))

    # Número nacional sem DDI (DDD + 8 ou 9 dígitos). O DDD 55 existe,
    # então o comprimento decide, não o prefixo.
    if len(digitos) in (10, 11):
        digitos = CODIGO_PAIS + digitos

    if not digitos.startswith(CODIGO_PAIS) or len(digitos) not in (12, 13):
        logger.debug(f"[Identidade] Telefone inválido: {raw!r}")
        return IDENTIDADE_DESCONHECIDA

    return IdentidadeTelefone(digitos=digitos, tinha_prefixo=tinha_prefixo)


def _formas(digitos: str) -> set[str]:
    return {digitos, f"+{digitos}", f"{PREFIXO_TRANSPORTE}+{digitos}"}


def _alternativa_nono_digito(identidade: IdentidadeTelefone) -> str | None:
    assinante = identidade.assinante

    if len(assinante) == 9 and assinante.startswith("9"):
        return f"{CODIGO_PAIS}{identidade.ddd}{assinante[1:]}"

    if len(assinante) == 8 and not assinante.startswith("9"):
        return f"{CODIGO_PAIS}{identidade.ddd}9{assinante}"

    return None


def expandir_variacoes(identidade) -> set[str]:
    """
    Retorna todas as representações equivalentes do telefone.

    Sempre inclui dígitos puros, "+dígitos" e "whatsapp:+dígitos". Para
    celulares com 9 dígitos começando em 9, inclui também a forma sem o
    nono dígito; para 8 dígitos, a forma com o nono dígito.
    """
    if not isinstance(identidade, IdentidadeTelefone):
        identidade = canonicalizar(identidade)
    if identidade.desconhecida:
        return _formas(SENTINELA)

    variacoes = _formas(identidade.digitos)

    alternativa = _alternativa_nono_digito(identidade)
    if alternativa:
        variacoes |= _formas(alternativa)

    return variacoes


def corresponde(a, b) -> bool:
    """Verifica se dois telefones (em qualquer formato) são o mesmo assinante."""
    ident_a = a if isinstance(a, IdentidadeTelefone) else canonicalizar(a)
    ident_b = b if isinstance(b, IdentidadeTelefone) else canonicalizar(b)

    if ident_a.desconhecida or ident_b.desconhecida:
        return False

    if ident_a.digitos == ident_b.digitos:
        return True

    return bool(expandir_variacoes(ident_a) & expandir_variacoes(ident_b))


def verificar_dono(dono, chamador) -> None:
    """Levanta PropriedadeNegada se o chamador não for o dono do recurso."""
    if not corresponde(dono, chamador):
        logger.warning(f"[Identidade] Acesso negado: dono={dono} chamador={chamador}")
        raise PropriedadeNegada(str(dono), str(chamador))
