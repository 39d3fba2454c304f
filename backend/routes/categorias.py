from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from backend.core.database import get_db
from backend.core.identidade import canonicalizar, verificar_dono
from backend.core.security import obter_usuario_atual
from backend.models import Agendamento, Categoria, TipoTransacao, Transacao, Usuario
from backend.schemas import CategoriaAtualizar, CategoriaCriar, CategoriaResposta
from backend.services import financas

router = APIRouter(prefix="/api/categorias", tags=["Categorias"])

CATEGORIA_SUBSTITUTA = "outros"


def _visiveis(db: Session, usuario: Usuario):
    return db.query(Categoria).filter(or_(
        Categoria.padrao == True,  # noqa: E712
        Categoria.telefone.in_(financas.variacoes(usuario.telefone)),
    ))


def _obter_categoria(db: Session, categoria_id: int, usuario: Usuario, acao: str) -> Categoria:
    categoria = db.query(Categoria).filter(Categoria.id == categoria_id).first()

    if not categoria:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Categoria não encontrada"
        )

    if categoria.padrao:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Não é possível {acao} categorias padrão"
        )

    verificar_dono(categoria.telefone, usuario.telefone)
    return categoria


def _nome_em_uso(db: Session, usuario: Usuario, nome: str, tipo: TipoTransacao, ignorar_id: int | None = None) -> bool:
    query = _visiveis(db, usuario).filter(Categoria.nome == nome, Categoria.tipo == tipo)
    if ignorar_id is not None:
        query = query.filter(Categoria.id != ignorar_id)
    return query.first() is not None


@router.get("", response_model=list[CategoriaResposta])
async def listar_categorias(
    tipo: TipoTransacao = None,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Lista categorias (padrão + do usuário)"""

    query = _visiveis(db, usuario_atual)
    if tipo:
        query = query.filter(Categoria.tipo == tipo)

    return query.order_by(Categoria.padrao.desc(), Categoria.nome).all()


@router.post("", response_model=CategoriaResposta, status_code=status.HTTP_201_CREATED)
async def criar_categoria(
    categoria: CategoriaCriar,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Cria uma nova categoria personalizada"""

    if _nome_em_uso(db, usuario_atual, categoria.nome, categoria.tipo):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Categoria '{categoria.nome}' já existe para {categoria.tipo.value}"
        )

    nova_categoria = Categoria(
        telefone=canonicalizar(usuario_atual.telefone).digitos or usuario_atual.telefone,
        **categoria.model_dump(),
        padrao=False
    )

    db.add(nova_categoria)
    db.commit()
    db.refresh(nova_categoria)

    return nova_categoria


@router.put("/{categoria_id}", response_model=CategoriaResposta)
async def atualizar_categoria(
    categoria_id: int,
    dados: CategoriaAtualizar,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Atualiza uma categoria personalizada"""

    categoria = _obter_categoria(db, categoria_id, usuario_atual, "editar")
    campos = dados.model_dump(exclude_none=True)

    nome = campos.get("nome", categoria.nome).strip()
    tipo = campos.get("tipo", categoria.tipo)
    if _nome_em_uso(db, usuario_atual, nome, tipo, ignorar_id=categoria.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Categoria '{nome}' já existe para {tipo.value}"
        )

    nome_anterior = categoria.nome
    for campo, valor in campos.items():
        setattr(categoria, campo, valor)
    categoria.nome = nome

    if nome != nome_anterior:
        _renomear_em_registros(db, usuario_atual, categoria, nome_anterior, nome)

    db.commit()
    db.refresh(categoria)

    return categoria


@router.delete("/{categoria_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deletar_categoria(
    categoria_id: int,
    usuario_atual: Usuario = Depends(obter_usuario_atual),
    db: Session = Depends(get_db)
):
    """Deleta uma categoria personalizada; os registros dela passam para "outros" """

    categoria = _obter_categoria(db, categoria_id, usuario_atual, "remover")

    _renomear_em_registros(db, usuario_atual, categoria, categoria.nome, CATEGORIA_SUBSTITUTA)
    db.delete(categoria)
    db.commit()

    return None


def _renomear_em_registros(db: Session, usuario: Usuario, categoria: Categoria, de: str, para: str) -> None:
    """Leva transações e agendamentos do usuário de um nome de categoria para outro"""
    if _visiveis(db, usuario).filter(Categoria.nome == de, Categoria.id != categoria.id).first():
        return  # outra categoria visível continua com esse nome

    donos = financas.variacoes(usuario.telefone)
    db.query(Transacao).filter(
        Transacao.telefone.in_(donos),
        Transacao.categoria == de,
    ).update({"categoria": para}, synchronize_session=False)
    db.query(Agendamento).filter(
        Agendamento.telefone.in_(donos),
        Agendamento.categoria == de,
    ).update({"categoria": para}, synchronize_session=False)
