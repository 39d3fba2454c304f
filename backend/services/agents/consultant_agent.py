"""
Consultant Agent - Responde perguntas do usuario sobre as proprias financas.

Usa o modelo da Groq (API compatível com OpenAI) com as estatísticas do mês
e o histórico recente no prompt. Sem chave configurada, responde com um
resumo das estatísticas.
"""

from sqlalchemy import func
from sqlalchemy.orm import Session

from langchain_openai import ChatOpenAI
from langchain_core.messages import HumanMessage, SystemMessage

from backend.config import settings
from backend.models import TipoTransacao, Transacao
from backend.services import financas
from backend.services.agents.base_agent import (
    BaseAgent,
    AgentContext,
    AgentResponse,
)
from backend.services.llm.client import hoje_sp
from backend.services.memory_service import MemoryService
from backend.utils import fmt_valor
from backend.utils.formatters import formatar_resumo


class ConsultantAgent(BaseAgent):
    """
    Agente consultor - responde perguntas sobre financas do usuario.

    Exemplos:
    - "Quanto gastei esse mês?"
    - "Qual minha maior despesa?"
    - "E com transporte?" (seguimento da pergunta anterior)
    """

    name = "consultant"
    description = "Responde consultas financeiras"

    def __init__(self, db_session=None):
        super().__init__(db_session)
        self._llm = None

    @property
    def llm(self):
        """ChatOpenAI só é criado quando há chave da Groq"""
        if self._llm is None and settings.GROQ_API_KEY:
            self._llm = ChatOpenAI(
                model=settings.GROQ_MODEL,
                openai_api_key=settings.GROQ_API_KEY,
                openai_api_base=settings.GROQ_BASE_URL,
                temperature=0.3,
                max_tokens=600,
            )
        return self._llm

    async def process(self, context: AgentContext) -> AgentResponse:
        estatisticas = financas.estatisticas_do_mes(self.db, context.telefone)
        categorias = self.obter_gastos_por_categoria(self.db, context.telefone)

        if self.llm is None:
            self.log("Sem chave da Groq, respondendo com resumo", "debug")
            return AgentResponse(
                sucesso=True,
                mensagem=formatar_resumo("Resumo do mês", estatisticas),
                dados={"estatisticas": estatisticas},
                ultima_acao="pergunta",
            )

        historico = MemoryService.formatar_historico(context.conversa)
        sistema = self._montar_prompt(estatisticas, categorias, historico)

        try:
            resposta = await self.llm.ainvoke([
                SystemMessage(content=sistema),
                HumanMessage(content=context.mensagem_original),
            ])
            texto = resposta.content.strip()
        except Exception as e:
            self.log(f"Erro ao consultar modelo: {e}", "warning")
            texto = ""

        if not texto:
            texto = formatar_resumo("Resumo do mês", estatisticas)

        return AgentResponse(
            sucesso=True,
            mensagem=texto,
            dados={"estatisticas": estatisticas},
            ultima_acao="pergunta",
        )

    def _montar_prompt(self, estatisticas: dict, categorias: list[dict], historico: str) -> str:
        hoje = hoje_sp()
        linhas_categorias = "\n".join(
            f"- {c['categoria']}: {fmt_valor(c['total'])} ({c['percentual']}%)" for c in categorias
        ) or "- nenhuma saída no mês"

        prompt = f"""Você é o Zela, assistente financeiro pessoal no WhatsApp.
Responda em português do Brasil, de forma curta e amigável, usando APENAS os dados abaixo.
Se a informação pedida não estiver nos dados, diga que não tem essa informação.

Hoje: {hoje.strftime('%d/%m/%Y')}

Mês atual:
- Entradas: {fmt_valor(estatisticas['total_entradas'])}
- Saídas: {fmt_valor(estatisticas['total_saidas'])}
- Saldo: {fmt_valor(estatisticas['saldo'])}
- Transações: {estatisticas['total_transacoes']}
- Maior gasto: {fmt_valor(estatisticas['maior_gasto'])}
- Gasto de hoje: {fmt_valor(estatisticas['gasto_hoje'])}

Saídas por categoria:
{linhas_categorias}"""

        if historico:
            prompt += f"\n\nConversa recente:\n{historico}"
        return prompt

    def obter_gastos_por_categoria(self, db: Session, telefone: str) -> list[dict]:
        """Saídas do mês corrente agrupadas por categoria"""
        hoje = hoje_sp()

        resultados = db.query(
            Transacao.categoria,
            func.sum(Transacao.valor).label("total"),
        ).filter(
            Transacao.telefone.in_(financas.variacoes(telefone)),
            Transacao.tipo == TipoTransacao.SAIDA,
            Transacao.data >= hoje.replace(day=1),
            Transacao.data <= hoje,
        ).group_by(Transacao.categoria).order_by(func.sum(Transacao.valor).desc()).all()

        total_geral = sum(float(r.total or 0) for r in resultados)

        return [{
            "categoria": r.categoria or "outros",
            "total": round(float(r.total or 0), 2),
            "percentual": round(float(r.total or 0) / total_geral * 100, 1) if total_geral > 0 else 0,
        } for r in resultados]
