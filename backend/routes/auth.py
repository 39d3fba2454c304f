import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from backend.config import settings
from backend.core.database import get_db
from backend.core.identidade import canonicalizar, expandir_variacoes
from backend.core.security import criar_access_token, obter_usuario_atual
from backend.models import Agendamento, Carteira, NumeroRegistrado, Transacao, Usuario
from backend.schemas import (
    SolicitarCodigoRequest, Token, UsuarioAtualizar, UsuarioResposta, VerificarCodigoRequest
)
from backend.services import financas
from backend.services.memory_service import memory_service
from backend.services.whatsapp import whatsapp_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Autenticação"])


def _identidade_ou_400(telefone: str):
    identidade = canonicalizar(telefone)
    if identidade.desconhecida:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Telefone inválido"
        )
    return identidade


@router.post("/solicitar-codigo")
async def solicitar_codigo(dados: SolicitarCodigoRequest, db: Session = Depends(get_db)):
    """Envia um código de 6 dígitos pelo WhatsApp para login no portal"""

    identidade = _identidade_ou_400(dados.telefone)
    variacoes = list(expandir_variacoes(identidade))

    conhecido = (
        db.query(NumeroRegistrado).filter(NumeroRegistrado.telefone.in_(variacoes)).first()
        or db.query(Usuario).filter(Usuario.telefone.in_(variacoes)).first()
    )
    if not conhecido:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Número não encontrado. Envie uma mensagem para o Zela no WhatsApp primeiro."
        )

    codigo = f"{secrets.randbelow(10**6):06d}"
    await memory_service.salvar_codigo_verificacao(identidade.digitos, codigo)

    resultado = await whatsapp_service.enviar_mensagem(
        identidade.digitos,
        f"🔐 Seu código de acesso ao Zela: *{codigo}*\n\nEle expira em 5 minutos. Não compartilhe."
    )

    if not resultado.get("success"):
        logger.warning(f"[Auth] Falha ao enviar código para {identidade}: {resultado.get('error')}")
        if settings.DEBUG:
            return {"mensagem": "Código gerado (modo debug)", "codigo": codigo}
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Não foi possível enviar o código pelo WhatsApp"
        )

    return {"mensagem": "Código enviado pelo WhatsApp"}


@router.post("/verificar-codigo", response_model=Token)
async def verificar_codigo(dados: VerificarCodigoRequest, db: Session = Depends(get_db)):
    """Valida o código e retorna token JWT (cria o usuário no primeiro acesso)"""

    identidade = _identidade_ou_400(dados.telefone)

    if not await memory_service.verificar_codigo_verificacao(identidade.digitos, dados.codigo):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Código inválido ou expirado",
            headers={"WWW-Authenticate": "Bearer"},
        )

    usuario = db.query(Usuario).filter(
        Usuario.telefone.in_(list(expandir_variacoes(identidade)))
    ).first()

    if not usuario:
        usuario = Usuario(telefone=identidade.digitos, ativo=True)
        db.add(usuario)
        db.flush()
        financas.obter_carteira_padrao(db, identidade.digitos)
        db.commit()
        logger.info(f"[Auth] Novo usuário: {identidade}")
    elif not usuario.ativo:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Usuário inativo"
        )

    access_token = criar_access_token(data={"sub": identidade.digitos})

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    }


@router.get("/verify")
async def verificar_token(usuario_atual: Usuario = Depends(obter_usuario_atual)):
    """Confirma que o token ainda é válido"""
    return {"valid": True, "telefone": usuario_atual.telefone}


@router.get("/perfil", response_model=UsuarioResposta)
async def obter_perfil(usuario_atual: Usuario = Depends(obter_usuario_atual)):
    """Retorna dados do usuário logado"""
    return usuario_atual


@router.put("/perfil", response_model=UsuarioResposta)
async def atualizar_perfil(
    dados: UsuarioAtualizar,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Atualiza nome e email do usuário logado"""

    if dados.nome is not None:
        usuario_atual.nome = dados.nome
    if dados.email is not None:
        usuario_atual.email = dados.email

    db.commit()
    db.refresh(usuario_atual)

    return usuario_atual


@router.delete("/excluir-dados")
async def excluir_dados(
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Remove todos os dados do usuário (transações, agendamentos, carteiras e conta)"""

    telefone = usuario_atual.telefone
    variacoes = list(expandir_variacoes(telefone))

    removidos = {
        "agendamentos": db.query(Agendamento).filter(
            Agendamento.telefone.in_(variacoes)
        ).delete(synchronize_session=False),
        "transacoes": db.query(Transacao).filter(
            Transacao.telefone.in_(variacoes)
        ).delete(synchronize_session=False),
    }

    usuario_atual.carteira_padrao_id = None
    db.flush()
    db.delete(usuario_atual)

    removidos["carteiras"] = db.query(Carteira).filter(
        Carteira.telefone.in_(variacoes)
    ).delete(synchronize_session=False)
    db.query(NumeroRegistrado).filter(
        NumeroRegistrado.telefone.in_(variacoes)
    ).delete(synchronize_session=False)

    db.commit()
    await memory_service.limpar_contexto(canonicalizar(telefone).digitos)

    logger.info(f"[Auth] Dados excluídos para {telefone}: {removidos}")
    return {"mensagem": "Dados excluídos com sucesso", "removidos": removidos}
