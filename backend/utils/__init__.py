from backend.utils.formatters import fmt_valor, formatar_data_br, formatar_data_curta
from backend.utils.texto import normalizar
