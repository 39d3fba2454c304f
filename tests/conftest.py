"""
Fixtures compartilhados para testes.
"""

import asyncio
import os
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables BEFORE importing the app
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-with-at-least-32-characters"
os.environ["MEMORY_BACKEND"] = "memory"
os.environ["REDIS_URL"] = "redis://localhost:6379/0"
os.environ["GROQ_API_KEY"] = ""
os.environ["GEMINI_API_KEY"] = ""
os.environ["WEBHOOK_SECRET"] = ""
os.environ["DEBUG"] = "False"

from backend.core.database import get_db
from backend.core.security import criar_access_token
from backend.main import app
from backend.models import Base, Carteira, Usuario
from backend.services.llm import llm_service
from backend.services.memory_service import MemoriaLocal, memory_service
from backend.services.whatsapp import whatsapp_service

TELEFONE_TESTE = "5561981474690"
TELEFONE_OUTRO = "5511988887777"


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def memoria_limpa():
    """Cada teste começa com a memória de conversa vazia."""
    memory_service.armazenamento = MemoriaLocal()
    yield memory_service


class MemoriaQueCede(MemoriaLocal):
    """Memória local que devolve o controle ao loop a cada leitura e escrita, como o Redis."""

    async def get(self, chave):
        await asyncio.sleep(0)
        return await super().get(chave)

    async def set(self, chave, valor, ttl):
        await asyncio.sleep(0)
        await super().set(chave, valor, ttl)


@pytest.fixture
def memoria_concorrente(memoria_limpa) -> MemoriaQueCede:
    """Instala no memory_service um armazenamento que intercala corrotinas."""
    armazenamento = MemoriaQueCede()
    memory_service.armazenamento = armazenamento
    return armazenamento


@pytest.fixture(autouse=True)
def mensagens_enviadas(monkeypatch) -> list:
    """Captura as mensagens que seriam enviadas pela Z-API."""
    enviadas = []

    async def enviar_fake(numero: str, mensagem: str) -> dict:
        enviadas.append({"numero": numero, "mensagem": mensagem})
        return {"success": True, "data": {"messageId": f"msg-{len(enviadas)}"}}

    monkeypatch.setattr(whatsapp_service, "enviar_mensagem", enviar_fake)
    return enviadas


@pytest.fixture
def llm_fake(monkeypatch):
    """
    Substitui as chamadas ao LLM por respostas configuráveis.

    Uso: llm_fake.transacoes = [...]; llm_fake.agendamento = {...}
    """

    class LLMFake:
        transacoes: list = []
        agendamento = None
        transcricao = ("", False)
        chamadas: list = []

    fake = LLMFake()
    fake.chamadas = []

    async def extrair_transacoes(texto, historico=""):
        fake.chamadas.append(("transacoes", texto))
        return [dict(t) for t in fake.transacoes]

    async def extrair_agendamento(texto, referencia=None):
        fake.chamadas.append(("agendamento", texto))
        return dict(fake.agendamento) if fake.agendamento else None

    async def transcrever_audio(url):
        fake.chamadas.append(("audio", url))
        return fake.transcricao

    monkeypatch.setattr(llm_service, "extrair_transacoes", extrair_transacoes)
    monkeypatch.setattr(llm_service, "extrair_agendamento", extrair_agendamento)
    monkeypatch.setattr(llm_service, "transcrever_audio", transcrever_audio)
    return fake


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a new database session for a test."""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def _criar_usuario(db: Session, telefone: str, ativo: bool = True) -> Usuario:
    usuario = Usuario(telefone=telefone, nome="Usuário Teste", ativo=ativo)
    db.add(usuario)
    db.flush()

    carteira = Carteira(telefone=telefone, nome="Principal", padrao=True)
    db.add(carteira)
    db.flush()
    usuario.carteira_padrao_id = carteira.id

    db.commit()
    db.refresh(usuario)
    return usuario


@pytest.fixture
def usuario_teste(db: Session) -> Usuario:
    """Usuário ativo com carteira padrão."""
    return _criar_usuario(db, TELEFONE_TESTE)


@pytest.fixture
def outro_usuario(db: Session) -> Usuario:
    return _criar_usuario(db, TELEFONE_OUTRO)


@pytest.fixture
def usuario_inativo(db: Session) -> Usuario:
    return _criar_usuario(db, "5521977776666", ativo=False)


@pytest.fixture
def auth_headers(usuario_teste: Usuario) -> dict:
    """Headers com token JWT do usuário de teste."""
    token = criar_access_token({"sub": usuario_teste.telefone})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def outro_auth_headers(outro_usuario: Usuario) -> dict:
    token = criar_access_token({"sub": outro_usuario.telefone})
    return {"Authorization": f"Bearer {token}"}
