"""
Testes para as rotas de categorias.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from backend.models import CATEGORIAS_PADRAO, Categoria, Transacao, inserir_categorias_padrao
from backend.services import financas

TELEFONE_TESTE = "5561981474690"


@pytest.fixture
def categorias_padrao(db: Session) -> int:
    return inserir_categorias_padrao(db)


def _criar(client: TestClient, headers: dict, **campos) -> dict:
    payload = {"nome": "Pet", "tipo": "saida", "cor": "#123ABC"}
    payload.update(campos)
    response = client.post("/api/categorias", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


class TestCategoriasPadrao:

    def test_insercao_unica(self, db: Session, categorias_padrao: int):
        assert categorias_padrao == len(CATEGORIAS_PADRAO)
        assert inserir_categorias_padrao(db) == 0
        assert db.query(Categoria).count() == len(CATEGORIAS_PADRAO)

    def test_listar_inclui_padrao_e_proprias(
        self, client: TestClient, auth_headers: dict, outro_auth_headers: dict, categorias_padrao: int
    ):
        _criar(client, auth_headers)
        _criar(client, outro_auth_headers, nome="Academia")

        categorias = client.get("/api/categorias", headers=auth_headers).json()
        nomes = [c["nome"] for c in categorias]

        assert len(categorias) == len(CATEGORIAS_PADRAO) + 1
        assert all(c["padrao"] for c in categorias[:-1])
        assert nomes[-1] == "Pet"
        assert "Academia" not in nomes

    def test_filtro_por_tipo(self, client: TestClient, auth_headers: dict, categorias_padrao: int):
        entradas = client.get("/api/categorias", headers=auth_headers, params={"tipo": "entrada"}).json()
        assert {c["nome"] for c in entradas} == {"salario", "investimentos", "outros"}

    def test_padrao_nao_pode_ser_editada(
        self, client: TestClient, db: Session, auth_headers: dict, categorias_padrao: int
    ):
        padrao = db.query(Categoria).filter(Categoria.nome == "transporte").one()

        response = client.put(f"/api/categorias/{padrao.id}", headers=auth_headers, json={"nome": "uber"})

        assert response.status_code == 403
        assert response.json()["detail"] == "Não é possível editar categorias padrão"

    def test_padrao_nao_pode_ser_removida(
        self, client: TestClient, db: Session, auth_headers: dict, categorias_padrao: int
    ):
        padrao = db.query(Categoria).filter(Categoria.nome == "transporte").one()

        response = client.delete(f"/api/categorias/{padrao.id}", headers=auth_headers)

        assert response.status_code == 403
        assert db.query(Categoria).filter(Categoria.id == padrao.id).count() == 1


class TestCategoriasDoUsuario:

    def test_criar(self, client: TestClient, auth_headers: dict):
        data = _criar(client, auth_headers, nome="  Pet  ", descricao="Ração e veterinário")

        assert data["nome"] == "Pet"
        assert data["telefone"] == TELEFONE_TESTE
        assert data["padrao"] is False
        assert data["cor"] == "#123ABC"

    def test_nome_repetido(self, client: TestClient, auth_headers: dict, categorias_padrao: int):
        _criar(client, auth_headers)

        repetida = client.post("/api/categorias", headers=auth_headers, json={"nome": "Pet"})
        igual_a_padrao = client.post("/api/categorias", headers=auth_headers, json={"nome": "lazer"})
        outro_tipo = client.post("/api/categorias", headers=auth_headers, json={"nome": "Pet", "tipo": "entrada"})

        assert repetida.status_code == 400
        assert igual_a_padrao.status_code == 400
        assert outro_tipo.status_code == 201

    def test_validacao(self, client: TestClient, auth_headers: dict):
        assert client.post("/api/categorias", headers=auth_headers, json={"nome": "   "}).status_code == 422
        assert client.post(
            "/api/categorias", headers=auth_headers, json={"nome": "Pet", "cor": "azul"}
        ).status_code == 422

    def test_renomear_leva_transacoes(self, client: TestClient, db: Session, auth_headers: dict):
        categoria = _criar(client, auth_headers)
        financas.criar_transacao(db, TELEFONE_TESTE, {"descricao": "Ração", "valor": 90, "categoria": "Pet"})
        db.commit()

        response = client.put(
            f"/api/categorias/{categoria['id']}", headers=auth_headers, json={"nome": "Cachorro", "cor": None}
        )

        assert response.status_code == 200
        assert response.json()["nome"] == "Cachorro"
        assert response.json()["cor"] == "#123ABC"
        db.expire_all()
        assert db.query(Transacao).one().categoria == "Cachorro"

    def test_remover_passa_transacoes_para_outros(self, client: TestClient, db: Session, auth_headers: dict):
        categoria = _criar(client, auth_headers)
        financas.criar_transacao(db, TELEFONE_TESTE, {"descricao": "Ração", "valor": 90, "categoria": "Pet"})
        db.commit()

        response = client.delete(f"/api/categorias/{categoria['id']}", headers=auth_headers)

        assert response.status_code == 204
        db.expire_all()
        assert db.query(Transacao).one().categoria == "outros"
        assert client.delete(f"/api/categorias/{categoria['id']}", headers=auth_headers).status_code == 404

    def test_de_outro_usuario(self, client: TestClient, auth_headers: dict, outro_auth_headers: dict):
        alheia = _criar(client, outro_auth_headers)

        editar = client.put(f"/api/categorias/{alheia['id']}", headers=auth_headers, json={"nome": "Minha"})
        remover = client.delete(f"/api/categorias/{alheia['id']}", headers=auth_headers)

        assert editar.status_code == 403
        assert editar.json()["detail"] == "Recurso não pertence ao usuário"
        assert remover.status_code == 403

    def test_exige_autenticacao(self, client: TestClient):
        assert client.get("/api/categorias").status_code == 401
