"""
Gateway Agent - Orquestrador das mensagens do Zela.

Responsabilidades:
- Carregar o contexto da conversa
- Classificar a intenção (sem LLM)
- Rotear para o fluxo certo e registrar a resposta no histórico
"""

from backend.core.identidade import PropriedadeNegada, verificar_dono
from backend.models import (
    Agendamento,
    OrigemRegistro,
    StatusAgendamento,
    TipoAgendamento,
)
from backend.services import financas
from backend.services.agents.base_agent import (
    BaseAgent,
    AgentContext,
    AgentResponse,
    OrigemMensagem,
)
from backend.services.agents.consultant_agent import ConsultantAgent
from backend.services.agents.intent_classifier import TipoIntencao, classificar_intencao
from backend.services.llm import llm_service
from backend.services.memory_service import MemoryService, memory_service
from backend.utils import formatters

# Abaixo disso a extração vira pendência de confirmação
CONFIANCA_MINIMA = 0.6


class GatewayAgent(BaseAgent):
    """
    Agente Gateway - Ponto de entrada para todas as mensagens.

    Fluxo:
    1. Carrega o contexto (falha no armazenamento = sem contexto)
    2. Classifica a intenção
    3. Roteia para o fluxo correspondente
    4. Registra a resposta e a última ação no contexto
    """

    name = "gateway"
    description = "Orquestrador principal do sistema"

    def __init__(self, db_session=None):
        super().__init__(db_session)
        self._consultant_agent = None

    @property
    def consultant_agent(self) -> ConsultantAgent:
        if self._consultant_agent is None:
            self._consultant_agent = ConsultantAgent(self.db)
        return self._consultant_agent

    async def process(self, context: AgentContext) -> AgentResponse:
        telefone = context.telefone
        self.log(f"Processando de {telefone}: {context.mensagem_original[:50]}")

        context.conversa = await memory_service.obter_contexto(telefone)
        context.intencao = classificar_intencao(context.mensagem_original, context.conversa)
        self.log(f"Intenção: {context.intencao.tipo.value} ({context.intencao.confianca})")

        if await memory_service.adicionar_mensagem(telefone, "user", context.mensagem_original) is None:
            self.log(f"Histórico de {telefone} não gravado; seguindo sem contexto", "warning")

        resposta = await self._rotear(context)

        await memory_service.adicionar_mensagem(telefone, "assistant", resposta.mensagem)
        if not resposta.requer_confirmacao:
            await memory_service.definir_ultima_acao(telefone, resposta.ultima_acao)

        return resposta

    async def _rotear(self, context: AgentContext) -> AgentResponse:
        intencao = context.intencao

        if intencao.tipo == TipoIntencao.COMANDO:
            return self._comando(context, intencao.detalhes.get("comando"))

        if intencao.tipo == TipoIntencao.AJUDA:
            return AgentResponse(sucesso=True, mensagem=formatters.MENSAGEM_MENU)

        if intencao.tipo == TipoIntencao.SALDO:
            carteiras, total = financas.saldo_por_carteira(self.db, context.telefone)
            return AgentResponse(
                sucesso=True,
                mensagem=formatters.formatar_saldo(carteiras, total),
                dados={"carteiras": carteiras, "total": total},
            )

        if intencao.tipo == TipoIntencao.EXCLUSAO:
            return self._excluir(context, intencao.detalhes.get("codigo"))

        if intencao.tipo == TipoIntencao.AGENDAMENTO:
            resposta = await self._agendar(context)
            if resposta is not None:
                return resposta
            # Sem agendamento extraído: tenta como transação

        if intencao.tipo == TipoIntencao.PERGUNTA:
            return await self.consultant_agent.process(context)

        if intencao.tipo == TipoIntencao.DESCONHECIDA:
            return AgentResponse(sucesso=False, mensagem=formatters.MENSAGEM_NAO_ENTENDI)

        return await self._transacao(context)

    # ==================== COMANDOS ====================

    def _comando(self, context: AgentContext, comando: str | None) -> AgentResponse:
        if comando == "exemplos":
            return AgentResponse(sucesso=True, mensagem=formatters.MENSAGEM_EXEMPLOS)

        if comando == "comandos":
            return AgentResponse(sucesso=True, mensagem=formatters.MENSAGEM_COMANDOS)

        if comando == "hoje":
            estatisticas = financas.estatisticas_do_dia(self.db, context.telefone)
            return AgentResponse(
                sucesso=True,
                mensagem=formatters.formatar_resumo("Resumo de hoje", estatisticas),
                dados=estatisticas,
            )

        if comando == "mes":
            estatisticas = financas.estatisticas_do_mes(self.db, context.telefone)
            return AgentResponse(
                sucesso=True,
                mensagem=formatters.formatar_resumo("Resumo do mês", estatisticas),
                dados=estatisticas,
            )

        # ajuda, help
        return AgentResponse(sucesso=True, mensagem=formatters.MENSAGEM_MENU)

    # ==================== EXCLUSÃO ====================

    def _excluir(self, context: AgentContext, codigo: str | None) -> AgentResponse:
        if not codigo:
            ultimas = financas.ultimas_transacoes(self.db, context.telefone, limite=10)
            return AgentResponse(sucesso=True, mensagem=formatters.formatar_lista_exclusao(ultimas))

        transacao = financas.buscar_por_codigo(self.db, codigo)
        nao_encontrada = AgentResponse(
            sucesso=False,
            mensagem=f"❌ Não encontrei a transação {codigo}.\n\nEnvie *excluir* para ver suas últimas transações.",
        )
        if not transacao:
            return nao_encontrada

        try:
            verificar_dono(transacao.telefone, context.identidade)
        except PropriedadeNegada:
            # Para quem não é dono, o código simplesmente não existe
            return nao_encontrada

        descricao, valor = transacao.descricao, transacao.valor
        try:
            financas.excluir_transacao(self.db, transacao)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            self.log(f"Erro ao excluir {codigo}: {e}", "error")
            return AgentResponse(sucesso=False, mensagem="Não consegui excluir agora. Tente novamente.")

        self.log(f"Transação excluída: {codigo}")
        return AgentResponse(
            sucesso=True,
            mensagem=f"🗑️ Transação {codigo} excluída\n\n{descricao} • {formatters.fmt_valor(valor)}",
            codigo_transacao=codigo,
        )

    # ==================== AGENDAMENTO ====================

    async def _agendar(self, context: AgentContext) -> AgentResponse | None:
        dados = await llm_service.extrair_agendamento(context.mensagem_original)
        if not dados:
            self.log("Nenhum agendamento extraído", "debug")
            return None

        agendamento = Agendamento(
            telefone=context.telefone,
            descricao=dados["descricao"],
            valor=dados["valor"],
            data_agendamento=dados["data_agendamento"],
            tipo=TipoAgendamento(dados["tipo"]),
            status=StatusAgendamento.PENDENTE,
            categoria=dados.get("categoria") or "outros",
        )

        try:
            self.db.add(agendamento)
            self.db.commit()
            self.db.refresh(agendamento)
        except Exception as e:
            self.db.rollback()
            self.log(f"Erro ao salvar agendamento: {e}", "error")
            return AgentResponse(sucesso=False, mensagem="Não consegui salvar o agendamento. Tente novamente.")

        self.log(f"Agendamento criado: {agendamento.id} para {agendamento.data_agendamento}")
        return AgentResponse(
            sucesso=True,
            mensagem=formatters.formatar_agendamento(agendamento),
            dados={"agendamento_id": agendamento.id},
        )

    # ==================== TRANSAÇÕES ====================

    async def _transacao(self, context: AgentContext) -> AgentResponse:
        telefone = context.telefone
        confirmacao = context.intencao.detalhes.get("confirmacao")

        if confirmacao is not None:
            pendentes = await memory_service.retirar_transacoes_pendentes(telefone)
            if not confirmacao:
                return AgentResponse(sucesso=True, mensagem="Ok, descartei. Pode mandar de novo do jeito certo.")
            return self._salvar(context, pendentes)

        if context.conversa and context.conversa.transacoes_pendentes:
            # Mensagem nova substitui a pendência anterior
            await memory_service.limpar_transacoes_pendentes(telefone)

        historico = MemoryService.formatar_historico(context.conversa)
        extraidas = await llm_service.extrair_transacoes(context.mensagem_original, historico)

        if not extraidas:
            return AgentResponse(
                sucesso=False,
                mensagem=formatters.MENSAGEM_NAO_ENTENDI,
                dados={"intencao": TipoIntencao.DESCONHECIDA.value},
                ultima_acao="extraindo_transacao",
            )

        duvidosas = [
            t for t in extraidas
            if not t.get("fallback") and t.get("confianca", 1.0) < CONFIANCA_MINIMA
        ]
        if duvidosas:
            for item in extraidas:
                item["mensagem_original"] = context.mensagem_original
            if await memory_service.salvar_transacoes_pendentes(telefone, extraidas) is None:
                self.log(f"Pendência de {telefone} não gravada; salvando direto", "warning")
                return self._salvar(context, extraidas)
            return AgentResponse(
                sucesso=True,
                mensagem=formatters.formatar_confirmacao_pendente(extraidas),
                dados={"pendentes": extraidas},
                requer_confirmacao=True,
                confianca=min(t.get("confianca", 0.0) for t in duvidosas),
            )

        return self._salvar(context, extraidas)

    def _salvar(self, context: AgentContext, itens: list[dict]) -> AgentResponse:
        if not itens:
            return AgentResponse(sucesso=False, mensagem="Não há transações para salvar.")

        origem = (
            OrigemRegistro.WHATSAPP_AUDIO
            if context.origem == OrigemMensagem.WHATSAPP_AUDIO
            else OrigemRegistro.WHATSAPP_TEXTO
        )
        if context.origem == OrigemMensagem.WEB:
            origem = OrigemRegistro.WEB

        try:
            salvas = [
                financas.criar_transacao(
                    self.db,
                    context.telefone,
                    item,
                    origem=origem,
                    mensagem_original=item.get("mensagem_original", context.mensagem_original),
                )
                for item in itens
            ]
            if origem != OrigemRegistro.WEB:
                for transacao in salvas:
                    financas.registrar_notificacao(
                        self.db,
                        context.telefone,
                        "transacao_nova",
                        f"{transacao.descricao}: {formatters.fmt_valor(transacao.valor)} registrada pelo WhatsApp",
                        {"codigo": transacao.codigo},
                    )
            self.db.commit()
            for transacao in salvas:
                self.db.refresh(transacao)
        except Exception as e:
            self.db.rollback()
            self.log(f"Erro ao salvar transações: {e}", "error")
            return AgentResponse(sucesso=False, mensagem="Não consegui salvar agora. Tente novamente.")

        codigos = [t.codigo for t in salvas]
        self.log(f"Transações salvas: {', '.join(codigos)}")

        return AgentResponse(
            sucesso=True,
            mensagem=formatters.formatar_resposta_multiplas(salvas),
            dados={"codigos": codigos},
            codigo_transacao=codigos[0],
        )
