"""
Extração de transações e agendamentos de texto usando LLM.
"""

import calendar
import logging
import re
from datetime import date

from backend.utils.texto import normalizar
from backend.services.llm.client import (
    LLMClient,
    LLMIndisponivelError,
    convert_relative_date,
    hoje_sp,
    parse_llm_response,
)

logger = logging.getLogger(__name__)

PALAVRAS_ENTRADA = [
    "recebi", "recebimento", "ganhei", "ganho", "entrou", "salario", "vendi",
    "me pagaram", "deposito", "pix recebido", "reembolso",
]
PALAVRAS_SAIDA = [
    "gastei", "paguei", "comprei", "gasto", "despesa", "pagar", "comprar",
    "gastar", "torrei",
]

CATEGORIAS = [
    "alimentacao", "transporte", "saude", "educacao", "lazer", "casa",
    "vestuario", "contas", "salario", "investimentos", "outros",
]


def _contem_palavra(texto: str, palavras: list[str]) -> bool:
    return any(re.search(rf"(?<!\w){re.escape(p)}(?!\w)", texto) for p in palavras)


def corrigir_tipo(texto: str, tipo: str | None) -> str:
    """
    Corrige o tipo sugerido pelo modelo com base nas palavras da mensagem.

    Só sobrescreve quando a mensagem aponta para um único lado.
    """
    normalizado = normalizar(texto)
    entrada = _contem_palavra(normalizado, PALAVRAS_ENTRADA)
    saida = _contem_palavra(normalizado, PALAVRAS_SAIDA)

    if entrada and not saida:
        return "entrada"
    if saida and not entrada:
        return "saida"
    return tipo if tipo in ("entrada", "saida") else "saida"


def extrair_valor(texto: str) -> float | None:
    """Extrai o primeiro valor monetário da mensagem ("R$ 1.234,56", "50 reais")"""
    padroes = [
        r"r\$\s*(\d{1,3}(?:\.\d{3})+(?:,\d{1,2})?|\d+(?:[.,]\d{1,2})?)",
        r"(\d{1,3}(?:\.\d{3})+(?:,\d{1,2})?|\d+(?:[.,]\d{1,2})?)\s*(?:reais?|conto|pila)",
        r"(\d{1,3}(?:\.\d{3})+(?:,\d{1,2})?|\d+(?:[.,]\d{1,2})?)",
    ]
    for padrao in padroes:
        match = re.search(padrao, texto, re.IGNORECASE)
        if match:
            valor_str = match.group(1)
            if "," in valor_str:
                valor_str = valor_str.replace(".", "").replace(",", ".")
            elif re.fullmatch(r"\d{1,3}(?:\.\d{3})+", valor_str):
                valor_str = valor_str.replace(".", "")
            try:
                valor = float(valor_str)
            except ValueError:
                continue
            return valor if valor > 0 else None
    return None


def normalizar_data_agendamento(texto_data: str | None, referencia: date | None = None) -> date | None:
    """
    Converte a data de um agendamento para date.

    Aceita "YYYY-MM-DD", "dd/mm/yyyy", "dd/mm" e um dia solto ("15",
    "dia 15"). Datas sem ano ou sem mês que já passaram vão para o
    próximo ano ou mês.
    """
    if not texto_data:
        return None
    hoje = referencia or hoje_sp()
    texto = str(texto_data).strip().lower()

    try:
        if re.fullmatch(r"\d{4}-\d{2}-\d{2}", texto):
            return date.fromisoformat(texto)

        match = re.fullmatch(r"(\d{1,2})/(\d{1,2})/(\d{2,4})", texto)
        if match:
            dia, mes, ano = (int(g) for g in match.groups())
            if ano < 100:
                ano += 2000
            return date(ano, mes, dia)

        match = re.fullmatch(r"(\d{1,2})/(\d{1,2})", texto)
        if match:
            dia, mes = (int(g) for g in match.groups())
            data = date(hoje.year, mes, dia)
            if data < hoje:
                data = date(hoje.year + 1, mes, dia)
            return data

        match = re.fullmatch(r"(?:dia\s+)?(\d{1,2})", texto)
        if match:
            dia = int(match.group(1))
            if not 1 <= dia <= 31:
                return None
            ano, mes = hoje.year, hoje.month
            if dia < hoje.day:
                ano, mes = (ano + 1, 1) if mes == 12 else (ano, mes + 1)
            ultimo_dia = calendar.monthrange(ano, mes)[1]
            return date(ano, mes, min(dia, ultimo_dia))

    except ValueError:
        return None

    return None


class TextExtractor:
    """Extrai transações e agendamentos de mensagens de texto."""

    def __init__(self, client: LLMClient):
        self.client = client

    async def extrair_transacoes(self, texto: str, historico: str = "") -> list[dict]:
        """
        Extrai uma ou mais transações da mensagem.

        Returns:
            Lista de dicts com descricao, valor, categoria, tipo, metodo,
            data (ISO), confianca e fallback. Lista vazia se não houver
            transação.
        """
        hoje = hoje_sp()
        contexto = f"\nConversa recente:\n{historico}\n" if historico else ""

        prompt = f"""Você é um assistente financeiro brasileiro que extrai transações de mensagens informais.
Hoje é {hoje.isoformat()}.{contexto}
Mensagem: "{texto}"

Retorne APENAS um JSON válido (sem markdown) no formato:
{{"transacoes": [
  {{"descricao": "descrição curta",
    "valor": número positivo,
    "categoria": uma de {", ".join(CATEGORIAS)},
    "tipo": "entrada" ou "saida",
    "metodo": "credito" ou "debito",
    "data_relativa": "hoje", "ontem", "anteontem" ou "YYYY-MM-DD",
    "confianca": número de 0 a 1}}
]}}

REGRAS:
- "gastei", "paguei", "comprei" = saida; "recebi", "ganhei", "entrou", "vendi" = entrada
- Cartão de crédito = credito; demais = debito
- Uma mensagem pode conter várias transações ("gastei 20 no uber e 35 no almoço")
- Se não houver valor ou não for uma transação, retorne {{"transacoes": []}}
"""

        try:
            response = await self.client.call(prompt, timeout=30)
            resultado = parse_llm_response(response)
        except (LLMIndisponivelError, ValueError) as e:
            logger.warning(f"[Extracao] LLM indisponível, usando extração básica: {e}")
            basica = self._extracao_basica(texto)
            return [basica] if basica else []

        itens = resultado.get("transacoes", []) if isinstance(resultado, dict) else resultado
        transacoes = []
        for item in itens or []:
            if not isinstance(item, dict):
                continue
            try:
                valor = float(item.get("valor") or 0)
            except (TypeError, ValueError):
                continue
            if valor <= 0:
                continue

            categoria = normalizar(str(item.get("categoria") or "outros"))
            metodo = item.get("metodo") if item.get("metodo") in ("credito", "debito") else "debito"
            try:
                confianca = float(item.get("confianca", 0.8))
            except (TypeError, ValueError):
                confianca = 0.5

            transacoes.append({
                "descricao": (item.get("descricao") or texto)[:200],
                "valor": round(valor, 2),
                "categoria": categoria if categoria in CATEGORIAS else "outros",
                "tipo": corrigir_tipo(texto, item.get("tipo")),
                "metodo": metodo,
                "data": convert_relative_date(item.get("data_relativa"), hoje).isoformat(),
                "confianca": confianca,
                "fallback": False,
            })

        return transacoes

    def _extracao_basica(self, texto: str) -> dict | None:
        """Extração por regex quando o LLM não está disponível"""
        valor = extrair_valor(texto)
        if not valor:
            return None

        return {
            "descricao": texto.strip()[:200] or "Transação",
            "valor": round(valor, 2),
            "categoria": "outros",
            "tipo": corrigir_tipo(texto, None),
            "metodo": "debito",
            "data": hoje_sp().isoformat(),
            "confianca": 0.3,
            "fallback": True,
        }

    async def extrair_agendamento(self, texto: str, referencia: date | None = None) -> dict | None:
        """
        Extrai um agendamento de pagamento/recebimento.

        Exemplos:
            "agendar pagamento de boleto de 500 reais para dia 15/12"
            "lembrar de pagar conta de luz de 200 reais no dia 20"

        Returns:
            Dict com descricao, valor, data_agendamento (date), tipo e
            categoria, ou None se a mensagem não descreve um agendamento.
        """
        hoje = referencia or hoje_sp()

        prompt = f"""Analise a mensagem e extraia um agendamento de pagamento ou recebimento FUTURO.
Hoje é {hoje.isoformat()}.
Mensagem: "{texto}"

Retorne APENAS um JSON válido (sem markdown):
{{"sucesso": true ou false,
  "descricao": "descrição curta",
  "valor": número positivo,
  "data": "YYYY-MM-DD", "dd/mm", "dd/mm/yyyy" ou o número do dia,
  "tipo": "pagamento" ou "recebimento",
  "categoria": uma de {", ".join(CATEGORIAS)}}}

Se a mensagem descreve algo que JÁ aconteceu (ex: "paguei a conta"), ou não tem valor ou data, retorne {{"sucesso": false}}.
"""

        try:
            response = await self.client.call(prompt, max_tokens=300, timeout=30)
            dados = parse_llm_response(response)
        except (LLMIndisponivelError, ValueError) as e:
            logger.warning(f"[Extracao] Agendamento não extraído: {e}")
            return None

        if not isinstance(dados, dict) or not dados.get("sucesso"):
            return None

        try:
            valor = float(dados.get("valor") or 0)
        except (TypeError, ValueError):
            return None

        data_agendamento = normalizar_data_agendamento(dados.get("data"), hoje)
        if valor <= 0 or data_agendamento is None:
            return None

        categoria = normalizar(str(dados.get("categoria") or "outros"))
        return {
            "descricao": (dados.get("descricao") or texto)[:200],
            "valor": round(valor, 2),
            "data_agendamento": data_agendamento,
            "tipo": "recebimento" if dados.get("tipo") == "recebimento" else "pagamento",
            "categoria": categoria if categoria in CATEGORIAS else "outros",
        }
