from backend.core.database import get_db, engine, SessionLocal
from backend.core.identidade import (
    IdentidadeTelefone,
    PropriedadeNegada,
    canonicalizar,
    corresponde,
    expandir_variacoes,
    verificar_dono
)
from backend.core.security import (
    verificar_codigo_hash,
    gerar_hash_codigo,
    criar_access_token,
    obter_usuario_atual
)
