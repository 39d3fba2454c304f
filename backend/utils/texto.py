"""
Normalização de texto para comparação por palavras-chave.
"""

import unicodedata


def normalizar(texto: str) -> str:
    """Minúsculas, sem acentos e com espaços colapsados"""
    texto = unicodedata.normalize("NFKD", texto)
    texto = texto.encode("ASCII", "ignore").decode("ASCII")
    return " ".join(texto.lower().split())
