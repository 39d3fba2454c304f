"""
Testes para os webhooks do WhatsApp (Z-API e Twilio).
"""

import hashlib
import hmac
import json
from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from twilio.request_validator import RequestValidator

from backend.config import settings
from backend.models import NumeroRegistrado, OrigemRegistro, Transacao, agora_utc
from backend.routes.whatsapp.utils import montar_twiml, verify_webhook_signature
from backend.services import financas

TELEFONE_TESTE = "5561981474690"

TRANSACAO_MERCADO = {
    "descricao": "Mercado", "valor": 50.0, "categoria": "alimentacao", "tipo": "saida",
    "metodo": "debito", "data": "2025-03-10", "confianca": 0.9, "fallback": False,
}


def _payload(**campos) -> dict:
    payload = {
        "type": "ReceivedCallback",
        "phone": TELEFONE_TESTE,
        "fromMe": False,
        "isGroup": False,
        "text": {"message": "gastei 50 no mercado"},
    }
    payload.update(campos)
    return payload


class TestWebhookZapi:

    def test_mensagem_de_texto_registra_transacao(
        self, client: TestClient, db: Session, llm_fake, mensagens_enviadas: list
    ):
        llm_fake.transacoes = [TRANSACAO_MERCADO]

        response = client.post("/api/whatsapp/webhook", json=_payload())

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["origem"] == "whatsapp_texto"

        transacao = db.query(Transacao).one()
        assert transacao.codigo == data["codigo"]
        assert transacao.telefone == TELEFONE_TESTE
        assert transacao.mensagem_original == "gastei 50 no mercado"

        assert mensagens_enviadas[-1]["numero"] == TELEFONE_TESTE
        assert f"Código: {transacao.codigo}" in mensagens_enviadas[-1]["mensagem"]

    def test_registra_numero(self, client: TestClient, db: Session, llm_fake):
        client.post("/api/whatsapp/webhook", json=_payload(text={"message": "ajuda"}))
        client.post("/api/whatsapp/webhook", json=_payload(text={"message": "saldo"}))

        registro = db.query(NumeroRegistrado).one()
        assert registro.telefone == TELEFONE_TESTE
        assert registro.total_mensagens == 2

    def test_horarios_em_utc(self, client: TestClient, db: Session, llm_fake):
        assert agora_utc().tzinfo is UTC
        antes = datetime.now(UTC) - timedelta(seconds=1)

        client.post("/api/whatsapp/webhook", json=_payload(text={"message": "ajuda"}))

        registro = db.query(NumeroRegistrado).one()
        # SQLite devolve sem fuso; o valor gravado já é UTC
        ultima = registro.ultima_mensagem.replace(tzinfo=UTC)
        assert antes <= ultima <= datetime.now(UTC)

    def test_ignora_mensagens_proprias(self, client: TestClient, mensagens_enviadas: list):
        response = client.post("/api/whatsapp/webhook", json=_payload(fromMe=True))
        assert response.json()["status"] == "ignored"
        assert mensagens_enviadas == []

    def test_ignora_grupos(self, client: TestClient):
        response = client.post("/api/whatsapp/webhook", json=_payload(isGroup=True))
        assert response.json() == {"status": "ignored", "reason": "group message"}

    def test_ignora_outros_eventos(self, client: TestClient):
        response = client.post("/api/whatsapp/webhook", json=_payload(type="MessageStatusCallback"))
        assert response.json()["status"] == "ignored"

    def test_telefone_invalido(self, client: TestClient, db: Session):
        response = client.post("/api/whatsapp/webhook", json=_payload(phone="123"))
        assert response.json() == {"status": "error", "reason": "number not found"}
        assert db.query(NumeroRegistrado).count() == 0

    def test_sem_texto_nem_audio(self, client: TestClient):
        response = client.post("/api/whatsapp/webhook", json=_payload(text=None, image={"imageUrl": "x"}))
        assert response.json()["status"] == "ignored"

    def test_audio_transcrito(self, client: TestClient, db: Session, llm_fake):
        llm_fake.transcricao = ("gastei 50 no mercado", True)
        llm_fake.transacoes = [TRANSACAO_MERCADO]

        response = client.post(
            "/api/whatsapp/webhook",
            json=_payload(text=None, audio={"audioUrl": "https://cdn/audio.ogg", "mimeType": "audio/ogg"}),
        )

        assert response.json()["origem"] == "whatsapp_audio"
        assert db.query(Transacao).one().origem == OrigemRegistro.WHATSAPP_AUDIO
        assert ("audio", "https://cdn/audio.ogg") in llm_fake.chamadas

    def test_audio_nao_transcrito(self, client: TestClient, llm_fake, mensagens_enviadas: list):
        llm_fake.transcricao = ("", False)

        response = client.post(
            "/api/whatsapp/webhook",
            json=_payload(text=None, audio={"audioUrl": "https://cdn/audio.ogg"}),
        )

        assert response.json() == {"status": "audio_transcription_failed"}
        assert "áudio" in mensagens_enviadas[-1]["mensagem"]

    def test_payload_invalido(self, client: TestClient):
        response = client.post(
            "/api/whatsapp/webhook", content=b"nao e json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "error"


class TestAssinatura:

    def test_sem_secret_aceita(self):
        assert verify_webhook_signature(b"{}", None) is True

    def test_assinatura_valida(self, client: TestClient, monkeypatch, llm_fake):
        monkeypatch.setattr(settings, "WEBHOOK_SECRET", "segredo")
        corpo = json.dumps(_payload(text={"message": "ajuda"})).encode()
        assinatura = hmac.new(b"segredo", corpo, hashlib.sha256).hexdigest()

        response = client.post(
            "/api/whatsapp/webhook",
            content=corpo,
            headers={"Content-Type": "application/json", "X-Webhook-Signature": assinatura},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "success"

    def test_assinatura_invalida(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(settings, "WEBHOOK_SECRET", "segredo")
        response = client.post(
            "/api/whatsapp/webhook", json=_payload(), headers={"X-Webhook-Signature": "errada"}
        )
        assert response.status_code == 401

    def test_assinatura_ausente(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(settings, "WEBHOOK_SECRET", "segredo")
        assert client.post("/api/whatsapp/webhook", json=_payload()).status_code == 401


URL_TWILIO = "http://testserver/api/whatsapp/twilio"


def _post_twilio(client: TestClient, dados: dict, token: str = "token-twilio"):
    assinatura = RequestValidator(token).compute_signature(URL_TWILIO, dados)
    return client.post("/api/whatsapp/twilio", data=dados, headers={"X-Twilio-Signature": assinatura})


class TestWebhookTwilio:

    @pytest.fixture(autouse=True)
    def token_twilio(self, monkeypatch):
        monkeypatch.setattr(settings, "TWILIO_AUTH_TOKEN", "token-twilio")
        monkeypatch.setattr(settings, "TWILIO_WEBHOOK_URL", "")

    def test_resposta_em_twiml(self, client: TestClient, db: Session, llm_fake):
        llm_fake.transacoes = [TRANSACAO_MERCADO]

        response = _post_twilio(client, {"From": "whatsapp:+5561981474690", "Body": "gastei 50 no mercado"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/xml")
        assert "<Response><Message>" in response.text
        assert "registrada" in response.text
        assert db.query(Transacao).one().telefone == TELEFONE_TESTE

    def test_remetente_invalido(self, client: TestClient):
        response = _post_twilio(client, {"From": "whatsapp:+1", "Body": "oi"})
        assert "Não consegui identificar seu número." in response.text

    def test_sem_assinatura_recusa(self, client: TestClient, db: Session, usuario_teste):
        financas.criar_transacao(db, TELEFONE_TESTE, {"descricao": "Luz", "valor": 180, "tipo": "saida"})
        db.commit()

        response = client.post(
            "/api/whatsapp/twilio", data={"From": "whatsapp:+5561981474690", "Body": "saldo"}
        )

        assert response.status_code == 403
        assert "Seu saldo" not in response.text
        assert db.query(Transacao).count() == 1

    def test_assinatura_de_outro_token_recusa(self, client: TestClient):
        response = _post_twilio(client, {"From": "whatsapp:+5561981474690", "Body": "saldo"}, token="outro")
        assert response.status_code == 403

    def test_corpo_alterado_recusa(self, client: TestClient):
        assinatura = RequestValidator("token-twilio").compute_signature(
            URL_TWILIO, {"From": "whatsapp:+5511988887777", "Body": "saldo"}
        )
        response = client.post(
            "/api/whatsapp/twilio",
            data={"From": "whatsapp:+5561981474690", "Body": "saldo"},
            headers={"X-Twilio-Signature": assinatura},
        )
        assert response.status_code == 403

    def test_sem_token_configurado_recusa(self, client: TestClient, monkeypatch):
        dados = {"From": "whatsapp:+5561981474690", "Body": "saldo"}
        assinatura = RequestValidator("").compute_signature(URL_TWILIO, dados)
        monkeypatch.setattr(settings, "TWILIO_AUTH_TOKEN", "")

        response = client.post("/api/whatsapp/twilio", data=dados, headers={"X-Twilio-Signature": assinatura})

        assert response.status_code == 403

    def test_url_publica_configurada(self, client: TestClient, monkeypatch, llm_fake):
        monkeypatch.setattr(settings, "TWILIO_WEBHOOK_URL", "https://zela.exemplo.com/api/whatsapp/twilio")
        dados = {"From": "whatsapp:+5561981474690", "Body": "ajuda"}
        assinatura = RequestValidator("token-twilio").compute_signature(settings.TWILIO_WEBHOOK_URL, dados)

        response = client.post("/api/whatsapp/twilio", data=dados, headers={"X-Twilio-Signature": assinatura})

        assert response.status_code == 200
        assert "<Message>" in response.text

    def test_twiml_escapa_caracteres(self):
        assert "<Message>A &amp; B &lt;C&gt;</Message>" in montar_twiml("A & B <C>")


class TestStatus:

    def test_status_exige_autenticacao(self, client: TestClient):
        assert client.get("/api/whatsapp/status").status_code == 401
