"""
Testes para rotas de agendamentos.
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from backend.models import Agendamento, OrigemRegistro, TipoTransacao, Transacao
from backend.routes.agendamentos import somar_meses


def _criar(client: TestClient, headers: dict, **campos) -> dict:
    payload = {
        "descricao": "Aluguel",
        "valor": 1200.0,
        "tipo": "pagamento",
        "data_agendamento": "2025-01-31",
        "categoria": "casa",
    }
    payload.update(campos)
    response = client.post("/api/agendamentos", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


class TestSomarMeses:

    @pytest.mark.parametrize("data, meses, esperado", [
        (date(2025, 1, 15), 1, date(2025, 2, 15)),
        (date(2025, 1, 31), 1, date(2025, 2, 28)),
        (date(2024, 1, 31), 1, date(2024, 2, 29)),
        (date(2025, 11, 10), 3, date(2026, 2, 10)),
        (date(2025, 5, 5), 0, date(2025, 5, 5)),
    ])
    def test_somar_meses(self, data, meses, esperado):
        assert somar_meses(data, meses) == esperado


class TestCriarAgendamento:

    def test_agendamento_simples(self, client: TestClient, auth_headers: dict):
        data = _criar(client, auth_headers)

        assert data["descricao"] == "Aluguel"
        assert data["status"] == "pendente"
        assert data["notificado"] is False
        assert data["parcela_atual"] is None

    def test_parcelado_cria_uma_linha_por_mes(
        self, client: TestClient, db: Session, auth_headers: dict
    ):
        primeira = _criar(client, auth_headers, descricao="Notebook", total_parcelas=3)

        assert primeira["descricao"] == "Notebook (1/3)"
        assert primeira["parcela_atual"] == 1
        assert primeira["recorrente"] is True

        parcelas = db.query(Agendamento).order_by(Agendamento.parcela_atual).all()
        assert [p.descricao for p in parcelas] == ["Notebook (1/3)", "Notebook (2/3)", "Notebook (3/3)"]
        assert [p.data_agendamento for p in parcelas] == [
            date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 31)
        ]
        assert parcelas[0].agendamento_pai_id is None
        assert all(p.agendamento_pai_id == primeira["id"] for p in parcelas[1:])

    def test_uma_parcela_nao_e_permitida(self, client: TestClient, auth_headers: dict):
        response = client.post(
            "/api/agendamentos",
            headers=auth_headers,
            json={"descricao": "X", "valor": 10, "tipo": "pagamento",
                  "data_agendamento": "2025-01-01", "total_parcelas": 1},
        )
        assert response.status_code == 422


class TestListarAgendamentos:

    def test_filtro_por_status(self, client: TestClient, auth_headers: dict, outro_auth_headers: dict):
        primeiro = _criar(client, auth_headers, data_agendamento="2025-02-10")
        _criar(client, auth_headers, descricao="Salário", tipo="recebimento", data_agendamento="2025-02-05")
        _criar(client, outro_auth_headers, descricao="Alheio")
        client.put(f"/api/agendamentos/{primeiro['id']}", headers=auth_headers, json={"status": "cancelado"})

        todos = client.get("/api/agendamentos", headers=auth_headers).json()
        assert todos["total"] == 2
        assert [a["descricao"] for a in todos["agendamentos"]] == ["Salário", "Aluguel"]

        pendentes = client.get("/api/agendamentos?status=pendente", headers=auth_headers).json()
        assert [a["descricao"] for a in pendentes["agendamentos"]] == ["Salário"]


class TestAtualizarAgendamento:

    def test_marcar_pago_cria_saida(
        self, client: TestClient, db: Session, auth_headers: dict
    ):
        agendamento = _criar(client, auth_headers)

        response = client.put(
            f"/api/agendamentos/{agendamento['id']}",
            headers=auth_headers,
            json={"status": "pago", "valor_pago": 1250},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "pago"

        transacao = db.query(Transacao).filter(Transacao.id == data["transacao_id"]).one()
        assert transacao.tipo == TipoTransacao.SAIDA
        assert transacao.valor == 1250
        assert transacao.origem == OrigemRegistro.AGENDAMENTO
        assert transacao.categoria == "casa"

    def test_recebimento_pago_vira_entrada(
        self, client: TestClient, db: Session, auth_headers: dict
    ):
        agendamento = _criar(client, auth_headers, descricao="Freela", tipo="recebimento")
        data = client.put(
            f"/api/agendamentos/{agendamento['id']}", headers=auth_headers, json={"status": "pago"}
        ).json()

        transacao = db.query(Transacao).filter(Transacao.id == data["transacao_id"]).one()
        assert transacao.tipo == TipoTransacao.ENTRADA
        assert transacao.valor == 1200

    def test_pagar_duas_vezes_nao_duplica(
        self, client: TestClient, db: Session, auth_headers: dict
    ):
        agendamento = _criar(client, auth_headers)
        url = f"/api/agendamentos/{agendamento['id']}"
        client.put(url, headers=auth_headers, json={"status": "pago"})
        client.put(url, headers=auth_headers, json={"status": "pago"})

        assert db.query(Transacao).count() == 1

    def test_atualizar_campos(self, client: TestClient, auth_headers: dict):
        agendamento = _criar(client, auth_headers)
        data = client.put(
            f"/api/agendamentos/{agendamento['id']}",
            headers=auth_headers,
            json={"valor": 1300, "data_agendamento": "2025-02-05"},
        ).json()

        assert data["valor"] == 1300
        assert data["data_agendamento"] == "2025-02-05"
        assert data["transacao_id"] is None

    def test_campos_nulos_sao_ignorados(self, client: TestClient, auth_headers: dict):
        agendamento = _criar(client, auth_headers)
        response = client.put(
            f"/api/agendamentos/{agendamento['id']}",
            headers=auth_headers,
            json={"descricao": None, "valor": None, "data_agendamento": None, "tipo": None, "categoria": "moradia"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["descricao"] == "Aluguel"
        assert data["valor"] == 1200.0
        assert data["data_agendamento"] == "2025-01-31"
        assert data["tipo"] == "pagamento"
        assert data["categoria"] == "moradia"

    def test_de_outro_usuario(self, client: TestClient, auth_headers: dict, outro_auth_headers: dict):
        alheio = _criar(client, outro_auth_headers)
        response = client.put(
            f"/api/agendamentos/{alheio['id']}", headers=auth_headers, json={"status": "pago"}
        )
        assert response.status_code == 403


class TestDeletarAgendamento:

    def test_deletar_primeira_parcela_mantem_as_demais(
        self, client: TestClient, db: Session, auth_headers: dict
    ):
        primeira = _criar(client, auth_headers, total_parcelas=2)

        response = client.delete(f"/api/agendamentos/{primeira['id']}", headers=auth_headers)
        assert response.status_code == 204

        restantes = db.query(Agendamento).all()
        assert len(restantes) == 1
        assert restantes[0].agendamento_pai_id is None

    def test_inexistente(self, client: TestClient, auth_headers: dict):
        assert client.delete("/api/agendamentos/999", headers=auth_headers).status_code == 404
