import pytest

from services.format_service import (
    formatar_cep, formatar_cnpj, formatar_data, formatar_moeda, nome_municipio, somente_digitos,
)


def test_formatar_cnpj():
    assert formatar_cnpj("12345678000195") == "12.345.678/0001-95"
    assert formatar_cnpj("12.345.678/0001-95") == "12.345.678/0001-95"


@pytest.mark.parametrize("value", ["", "123", "1234567800019", "123456780001955"])
def test_formatar_cnpj_other_lengths_unchanged(value):
    assert formatar_cnpj(value) == value


def test_formatar_cep():
    assert formatar_cep("01310100") == "01310-100"
    assert formatar_cep("1310100") == "1310100"
    assert formatar_cep("") == ""


def test_nome_municipio():
    assert nome_municipio("3106200") == "BELO HORIZONTE"
    assert nome_municipio("3550308") == "SÃO PAULO"
    assert nome_municipio("3509502") == "CAMPINAS"
    assert nome_municipio("2927408") == "SALVADOR"
    assert nome_municipio("9999999") == ""
    assert nome_municipio("") == ""


def test_somente_digitos():
    assert somente_digitos("12.345.678/0001-95") == "12345678000195"
    assert somente_digitos(None) == ""


def test_formatar_moeda():
    assert formatar_moeda(0) == "0,00"
    assert formatar_moeda(1234.5) == "1.234,50"
    assert formatar_moeda(1234567.891) == "1.234.567,89"


def test_formatar_data():
    assert formatar_data("2025-03-10T14:30:00-03:00") == "10/03/2025"
    assert formatar_data("2025-03-10") == "10/03/2025"
    assert formatar_data("10/03/2025") == "10/03/2025"
    assert formatar_data("") == ""
