"""
Testes para as notificações do portal.
"""

import asyncio
from datetime import date

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from backend.models import Agendamento, Notificacao, TipoAgendamento
from backend.services import financas
from backend.services.agents.processor import processar_mensagem
from backend.worker import enviar_lembretes_agendamentos

TELEFONE_TESTE = "5561981474690"
TELEFONE_OUTRO = "5511988887777"

TRANSACAO_UBER = {
    "descricao": "Uber", "valor": 20.0, "categoria": "transporte", "tipo": "saida",
    "metodo": "debito", "data": "2025-03-10", "confianca": 0.9, "fallback": False,
}


def _notificar(db: Session, telefone: str, mensagem: str) -> Notificacao:
    notificacao = financas.registrar_notificacao(db, telefone, "teste", mensagem)
    db.commit()
    return notificacao


class TestOrigemDasNotificacoes:

    def test_transacao_pelo_whatsapp_gera_notificacao(self, db: Session, llm_fake):
        llm_fake.transacoes = [TRANSACAO_UBER]

        resposta = asyncio.run(processar_mensagem(TELEFONE_TESTE, "gastei 20 no uber", "whatsapp_texto", db))

        notificacao = db.query(Notificacao).one()
        assert notificacao.tipo == "transacao_nova"
        assert notificacao.telefone == TELEFONE_TESTE
        assert notificacao.dados == {"codigo": resposta.codigo_transacao}
        assert "Uber: R$ 20,00" in notificacao.mensagem

    def test_transacao_pelo_portal_nao_gera(self, db: Session, llm_fake):
        llm_fake.transacoes = [TRANSACAO_UBER]

        asyncio.run(processar_mensagem(TELEFONE_TESTE, "gastei 20 no uber", "web", db))

        assert db.query(Notificacao).count() == 0

    def test_lembrete_enviado_gera_notificacao(self, db: Session, mensagens_enviadas: list):
        agendamento = Agendamento(
            telefone=TELEFONE_TESTE, descricao="Internet", valor=99.9,
            data_agendamento=date(2025, 3, 20), tipo=TipoAgendamento.PAGAMENTO,
        )
        db.add(agendamento)
        db.commit()

        asyncio.run(enviar_lembretes_agendamentos(db, date(2025, 3, 20)))

        notificacao = db.query(Notificacao).one()
        assert notificacao.tipo == "lembrete_agendamento"
        assert notificacao.dados == {"agendamento_id": agendamento.id}
        assert notificacao.mensagem == "Lembrete enviado: Internet (R$ 99,90)"


class TestRotasNotificacoes:

    def test_listar_nao_lidas(self, client: TestClient, db: Session, auth_headers: dict):
        _notificar(db, TELEFONE_TESTE, "primeira")
        lida = _notificar(db, TELEFONE_TESTE, "lida")
        lida.lida = True
        db.add(Notificacao(telefone="whatsapp:+5561981474690", tipo="teste", mensagem="formato antigo"))
        _notificar(db, TELEFONE_OUTRO, "de outro")
        db.commit()

        nao_lidas = client.get("/api/notificacoes", headers=auth_headers).json()
        todas = client.get("/api/notificacoes", headers=auth_headers, params={"todas": True}).json()

        assert [n["mensagem"] for n in nao_lidas] == ["formato antigo", "primeira"]
        assert len(todas) == 3

    def test_marcar_todas(self, client: TestClient, db: Session, auth_headers: dict):
        _notificar(db, TELEFONE_TESTE, "a")
        _notificar(db, TELEFONE_TESTE, "b")
        alheia = _notificar(db, TELEFONE_OUTRO, "c")

        response = client.put("/api/notificacoes", headers=auth_headers, json={})

        assert response.json() == {"marcadas": 2}
        assert client.get("/api/notificacoes", headers=auth_headers).json() == []
        db.refresh(alheia)
        assert alheia.lida is False

    def test_marcar_por_id(self, client: TestClient, db: Session, auth_headers: dict):
        primeira = _notificar(db, TELEFONE_TESTE, "a")
        _notificar(db, TELEFONE_TESTE, "b")

        response = client.put("/api/notificacoes", headers=auth_headers, json={"ids": [primeira.id]})

        assert response.json() == {"marcadas": 1}
        assert [n["mensagem"] for n in client.get("/api/notificacoes", headers=auth_headers).json()] == ["b"]

    def test_marcar_de_outro_usuario(self, client: TestClient, db: Session, auth_headers: dict):
        alheia = _notificar(db, TELEFONE_OUTRO, "c")

        response = client.put("/api/notificacoes", headers=auth_headers, json={"ids": [alheia.id]})

        assert response.status_code == 403
        db.refresh(alheia)
        assert alheia.lida is False

    def test_exige_autenticacao(self, client: TestClient):
        assert client.get("/api/notificacoes").status_code == 401
        assert client.put("/api/notificacoes", json={}).status_code == 401
