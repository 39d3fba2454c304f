"""
Testes para normalização e comparação de telefones.
"""

import pytest

from backend.core.identidade import (
    IDENTIDADE_DESCONHECIDA,
    PropriedadeNegada,
    canonicalizar,
    corresponde,
    expandir_variacoes,
    verificar_dono,
)


FORMAS_VALIDAS = [
    "5561981474690",
    "+5561981474690",
    "whatsapp:+5561981474690",
    "WhatsApp:+55 (61) 98147-4690",
    "(61) 98147-4690",
    "61981474690",
    "556181474690",
    "6133334444",
]


class TestCanonicalizar:
    """Formas de entrada aceitas."""

    @pytest.mark.parametrize("raw", FORMAS_VALIDAS[:6])
    def test_formas_equivalentes(self, raw):
        """Todas as formas viram os mesmos dígitos com DDI."""
        assert canonicalizar(raw).digitos == "5561981474690"

    @pytest.mark.parametrize("raw", FORMAS_VALIDAS + ["", "abc", "123"])
    def test_idempotente(self, raw):
        """Canonicalizar os dígitos já canônicos não muda a identidade."""
        identidade = canonicalizar(raw)
        assert canonicalizar(identidade.digitos) == identidade

    def test_prefixo_transporte_marcado(self):
        assert canonicalizar("whatsapp:+5561981474690").tinha_prefixo is True
        assert canonicalizar("5561981474690").tinha_prefixo is False

    def test_fixo_sem_ddi(self):
        """Número de 10 dígitos recebe o DDI 55."""
        assert canonicalizar("6133334444").digitos == "556133334444"

    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", "123", "+44 20 7946 0958", "55619814746901234", 5561981474690])
    def test_entradas_invalidas(self, raw):
        """Entradas implausíveis viram a identidade desconhecida."""
        identidade = canonicalizar(raw)
        assert identidade is IDENTIDADE_DESCONHECIDA
        assert identidade.desconhecida
        assert str(identidade) == "desconhecido"

    def test_ddd_e_assinante(self):
        identidade = canonicalizar("5561981474690")
        assert identidade.ddd == "61"
        assert identidade.assinante == "981474690"


class TestVariacoes:
    """Expansão para formatos gravados no banco."""

    def test_celular_com_nono_digito(self):
        variacoes = expandir_variacoes(canonicalizar("5561981474690"))
        assert variacoes == {
            "5561981474690", "+5561981474690", "whatsapp:+5561981474690",
            "556181474690", "+556181474690", "whatsapp:+556181474690",
        }

    def test_celular_sem_nono_digito(self):
        variacoes = expandir_variacoes("556181474690")
        assert "5561981474690" in variacoes
        assert "556181474690" in variacoes

    def test_fixo_nao_ganha_nono_digito(self):
        """Assinante de 9 dígitos que não começa com 9 não tem alternativa."""
        variacoes = expandir_variacoes("5561381474690")
        assert len(variacoes) == 3

    def test_aceita_texto(self):
        """Aceita telefone como texto além de IdentidadeTelefone."""
        assert expandir_variacoes("whatsapp:+5561981474690") == expandir_variacoes(
            canonicalizar("5561981474690")
        )

    def test_desconhecido_nao_casa_com_ninguem(self):
        variacoes = expandir_variacoes("lixo")
        assert "5561981474690" not in variacoes
        assert "desconhecido" in variacoes


class TestCorrespondencia:
    """Comparação entre dono e chamador."""

    def test_mesmo_assinante_formatos_diferentes(self):
        assert corresponde("whatsapp:+5561981474690", "5561981474690")

    @pytest.mark.parametrize("dono, chamador", [
        ("556181474690", "5561981474690"),
        ("5561981474690", "556181474690"),
        ("whatsapp:+556181474690", "(61) 98147-4690"),
    ])
    def test_nono_digito(self, dono, chamador):
        """Com ou sem o nono dígito, nas duas ordens."""
        assert corresponde(dono, chamador)
        assert corresponde(chamador, dono)

    def test_assinantes_diferentes(self):
        assert not corresponde("5561981474690", "5511988887777")

    def test_desconhecido_nunca_corresponde(self):
        assert not corresponde("", "")
        assert not corresponde(None, "5561981474690")
        assert not corresponde("abc", "abc")

    def test_verificar_dono_permitido(self):
        verificar_dono("+5561981474690", "5561981474690")

    def test_verificar_dono_negado(self):
        with pytest.raises(PropriedadeNegada) as exc:
            verificar_dono("5511988887777", "5561981474690")
        assert exc.value.dono == "5511988887777"
