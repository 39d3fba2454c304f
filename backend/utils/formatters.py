"""
Funções de formatação para o Zela Financeiro.

Valores e datas no padrão brasileiro e os textos enviados pelo WhatsApp.
"""

from datetime import date, datetime


def fmt_valor(v: float) -> str:
    """
    Formata valor monetário para padrão brasileiro.

    Exemplo:
        >>> fmt_valor(1234.56)
        'R$ 1.234,56'
    """
    return f"R$ {v:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


def formatar_data_br(data: str | date) -> str:
    """Formata data em formato brasileiro: dd/mm/yyyy"""
    if isinstance(data, str) and "-" in data and len(data) >= 10:
        try:
            data = datetime.strptime(data[:10], "%Y-%m-%d")
        except ValueError:
            return data
    if isinstance(data, date):
        return data.strftime("%d/%m/%Y")
    return str(data)


def formatar_data_curta(data: str | date) -> str:
    """Formata data curta: dd/mm"""
    if isinstance(data, str) and "-" in data and len(data) >= 10:
        try:
            data = datetime.strptime(data[:10], "%Y-%m-%d")
        except ValueError:
            return data[:5] if len(data) >= 5 else data
    if isinstance(data, date):
        return data.strftime("%d/%m")
    return str(data)


def _tipo(transacao) -> str:
    tipo = getattr(transacao, "tipo", None)
    if tipo is None and isinstance(transacao, dict):
        tipo = transacao.get("tipo")
    return getattr(tipo, "value", tipo)


def _campo(transacao, nome: str, padrao=None):
    if isinstance(transacao, dict):
        return transacao.get(nome, padrao)
    return getattr(transacao, nome, padrao)


# ==================== TRANSAÇÕES ====================

def formatar_resposta_transacao(transacao) -> str:
    """Confirmação de uma transação registrada."""
    entrada = _tipo(transacao) == "entrada"
    tipo_texto = "Entrada" if entrada else "Saída"
    icone = "💰" if entrada else "💸"
    codigo = _campo(transacao, "codigo", "-----")

    return f"""✓ {tipo_texto} registrada

📅 {formatar_data_curta(_campo(transacao, "data", ""))} • {_campo(transacao, "descricao") or '-'}
{icone} {fmt_valor(_campo(transacao, "valor", 0))}
🏷️ {(_campo(transacao, "categoria") or "outros").capitalize()}

Código: {codigo}
Para excluir: excluir {codigo}"""


def formatar_resposta_multiplas(transacoes: list) -> str:
    """Confirmação de várias transações registradas de uma vez."""
    if len(transacoes) == 1:
        return formatar_resposta_transacao(transacoes[0])

    msg = f"✓ {len(transacoes)} transações registradas\n\n"
    msg += formatar_lista_transacoes(transacoes)
    msg += "\n\nPara excluir: excluir [CÓDIGO]"
    return msg


def formatar_lista_transacoes(transacoes: list) -> str:
    linhas = []
    for t in transacoes:
        sinal = "+" if _tipo(t) == "entrada" else "-"
        descricao = (_campo(t, "descricao") or "-")[:25]
        linhas.append(
            f"[{_campo(t, 'codigo', '-----')}] {formatar_data_curta(_campo(t, 'data', ''))} • {descricao}\n"
            f"        {sinal}{fmt_valor(_campo(t, 'valor', 0))}"
        )
    return "\n".join(linhas)


def formatar_confirmacao_pendente(transacoes: list[dict]) -> str:
    """Pede confirmação de transações extraídas com baixa confiança."""
    linhas = []
    for t in transacoes:
        tipo = "Entrada" if t.get("tipo") == "entrada" else "Saída"
        linhas.append(f"• {tipo}: {t.get('descricao', '-')} - {fmt_valor(t.get('valor', 0))}")

    return (
        "🤔 Entendi o seguinte:\n\n"
        + "\n".join(linhas)
        + "\n\nEstá correto? Responda *SIM* para salvar ou *NÃO* para cancelar."
    )


def formatar_lista_exclusao(transacoes: list) -> str:
    """Últimas transações com códigos, para o usuário escolher qual excluir."""
    if not transacoes:
        return "Você ainda não tem transações registradas."

    return (
        "🗑️ Suas últimas transações:\n\n"
        + formatar_lista_transacoes(transacoes)
        + "\n\nPara excluir, envie: excluir [CÓDIGO]\nEx: excluir AB12C"
    )


# ==================== RESUMOS ====================

def formatar_resumo(titulo: str, estatisticas: dict) -> str:
    """Resumo de um período (dia ou mês)."""
    if not estatisticas.get("total_transacoes"):
        return f"📊 {titulo}\n\nNenhuma transação registrada no período."

    saldo = estatisticas["saldo"]
    sinal = "" if saldo >= 0 else "-"

    return f"""📊 {titulo}

💰 Entradas: {fmt_valor(estatisticas["total_entradas"])}
💸 Saídas: {fmt_valor(estatisticas["total_saidas"])}
━━━━━━━━━━━━━━━
Saldo: {sinal}{fmt_valor(abs(saldo))}

Transações: {estatisticas["total_transacoes"]}
Maior gasto: {fmt_valor(estatisticas["maior_gasto"])}"""


def formatar_saldo(carteiras: list[dict], saldo_total: float) -> str:
    """Saldo por carteira e total."""
    linhas = ["💼 Seu saldo\n"]
    for c in carteiras:
        sinal = "" if c["saldo"] >= 0 else "-"
        linhas.append(f"• {c['nome']}: {sinal}{fmt_valor(abs(c['saldo']))}")

    sinal = "" if saldo_total >= 0 else "-"
    linhas.append(f"\nTotal: {sinal}{fmt_valor(abs(saldo_total))}")
    return "\n".join(linhas)


def formatar_agendamento(agendamento) -> str:
    tipo = "Recebimento" if _tipo(agendamento) == "recebimento" else "Pagamento"
    return f"""📅 {tipo} agendado!

📝 {_campo(agendamento, "descricao")}
💵 {fmt_valor(_campo(agendamento, "valor", 0))}
🗓️ {formatar_data_br(_campo(agendamento, "data_agendamento", ""))}

Vou te lembrar no dia."""


def formatar_lembrete(agendamento) -> str:
    tipo = "receber" if _tipo(agendamento) == "recebimento" else "pagar"
    return f"""⏰ Lembrete

Hoje é dia de {tipo}: {_campo(agendamento, "descricao")}
💵 {fmt_valor(_campo(agendamento, "valor", 0))}
🗓️ Vencimento: {formatar_data_br(_campo(agendamento, "data_agendamento", ""))}"""


# ==================== AJUDA ====================

MENSAGEM_MENU = """👋 Olá! Eu sou o Zela, seu assistente financeiro.

📌 *Como registrar:*
• "Gastei 50 no almoço"
• "Recebi 3000 de salário"
• Envie um áudio falando o gasto

📌 *Comandos:*
• *saldo* - saldo por carteira
• *hoje* - resumo do dia
• *mes* - resumo do mês
• *excluir* - apagar uma transação
• *exemplos* - mais exemplos
• *comandos* - lista de comandos"""

MENSAGEM_EXEMPLOS = """💡 *Exemplos:*

• "Paguei 120 de luz"
• "Gastei 20 no uber e 35 no almoço"
• "Comprei um tênis de 300 no crédito"
• "Recebi 500 de freela ontem"
• "Agendar boleto de 450 para dia 15"
• "Me lembre de receber 800 do cliente dia 20/12"
• "Quanto gastei esse mês?"
"""

MENSAGEM_COMANDOS = """📋 *Comandos disponíveis:*

• *ajuda* - menu principal
• *exemplos* - exemplos de mensagens
• *hoje* - resumo de hoje
• *mes* - resumo do mês
• *saldo* - saldo por carteira
• *excluir [CÓDIGO]* - exclui uma transação"""

MENSAGEM_NAO_ENTENDI = """🤔 Não encontrei uma transação nessa mensagem.

💡 Tente algo como:
• "Gastei 50 no mercado"
• "Recebi 200 de pix"

Ou envie *ajuda* para ver o que eu sei fazer."""
