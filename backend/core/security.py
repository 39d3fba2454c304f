from datetime import UTC, datetime, timedelta
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from backend.config import settings
from backend.core.database import get_db
from backend.core.identidade import canonicalizar, expandir_variacoes

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/verificar-codigo")


def verificar_codigo_hash(codigo: str, codigo_hash: str) -> bool:
    """Verifica se o código de login confere com o hash salvo"""
    return pwd_context.verify(codigo, codigo_hash)


def gerar_hash_codigo(codigo: str) -> str:
    """Gera hash do código de login"""
    return pwd_context.hash(codigo)


def criar_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Cria um token JWT"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


async def obter_usuario_atual(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
):
    """Obtém o usuário atual a partir do telefone no token"""
    from backend.models import Usuario

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Não foi possível validar as credenciais",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        telefone: str = payload.get("sub")
        if telefone is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    identidade = canonicalizar(telefone)
    if identidade.desconhecida:
        raise credentials_exception

    usuario = db.query(Usuario).filter(
        Usuario.telefone.in_(expandir_variacoes(identidade))
    ).first()

    if usuario is None:
        raise credentials_exception

    if not usuario.ativo:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Usuário inativo"
        )

    return usuario
