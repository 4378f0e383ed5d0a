from datetime import date

import pytest

from services.report_service import (
    EMPRESA_NAO_IDENTIFICADA, extrair_tributos, gerar_relatorio_nfse, gerar_relatorio_tributos,
)


def test_extrair_tributos(sp_xml):
    tributos = extrair_tributos(sp_xml, "4521")
    assert tributos.valor_iss == 7.5
    assert tributos.valor_pis == 0.98
    assert tributos.valor_cofins == 4.5
    assert tributos.valor_irrf == 2.25
    assert tributos.valor_csll == 1.5
    assert tributos.valor_inss == 0.0


def test_extrair_tributos_matches_tags_ignoring_case():
    xml = "<nota><Tributos><iss>5.00</iss><Inss>11.00</Inss><ir>1.50</ir></Tributos></nota>"
    tributos = extrair_tributos(xml)
    assert tributos.valor_iss == 5.0
    assert tributos.valor_inss == 11.0
    assert tributos.valor_irrf == 1.5


@pytest.mark.parametrize("xml_content", [None, "", 42, "<nota><quebrada>", "isto não é xml"])
def test_extrair_tributos_unreadable_yields_zeros(xml_content):
    assert extrair_tributos(xml_content).model_dump() == {
        "valor_iss": 0.0, "valor_pis": 0.0, "valor_cofins": 0.0,
        "valor_inss": 0.0, "valor_irrf": 0.0, "valor_csll": 0.0,
    }


def _rows(sp_xml):
    return [
        {"numero_nfse": "4521", "data_emissao": date(2025, 3, 10), "fornecedor": "ACME",
         "cnpj_fornecedor": "12345678000195", "valor_total_nfse": 150.0,
         "empresa_tomadora": "CLIENTE SA", "cnpj_tomadora": "98765432000110",
         "xml_content": sp_xml},
        {"numero_nfse": "12", "data_emissao": None, "fornecedor": "OUTRO",
         "cnpj_fornecedor": "11222333000181", "valor_total_nfse": "50.00",
         "empresa_tomadora": None, "cnpj_tomadora": None,
         "xml_content": "<nota><quebrada>"},
        {"numero_nfse": "4522", "data_emissao": "2025-03-12", "fornecedor": "ACME",
         "cnpj_fornecedor": "12345678000195", "valor_total_nfse": 100.0,
         "empresa_tomadora": "CLIENTE SA", "cnpj_tomadora": "98765432000110",
         "xml_content": "<nota><vPis>1.00</vPis></nota>"},
    ]


def test_relatorio_tributos_groups_by_tomador(sp_xml):
    relatorio = gerar_relatorio_tributos(_rows(sp_xml), "2025-03-01", "2025-03-31", None)

    assert relatorio.total_nfses == 3
    assert [e.cnpj for e in relatorio.empresas] == ["98765432000110", ""]
    cliente, sem_empresa = relatorio.empresas

    assert cliente.nome == "CLIENTE SA"
    assert [n.numero for n in cliente.nfses] == ["4521", "4522"]
    assert cliente.nfses[0].data_emissao == "2025-03-10"
    assert cliente.totais.valor_servico == 250.0
    assert cliente.totais.valor_pis == pytest.approx(1.98)
    assert cliente.totais.valor_cofins == 4.5

    assert sem_empresa.nome == EMPRESA_NAO_IDENTIFICADA
    assert sem_empresa.nfses[0].data_emissao is None
    assert sem_empresa.nfses[0].valor_pis == 0.0
    assert sem_empresa.totais.valor_servico == 50.0


def test_relatorio_tributos_totais_gerais(sp_xml):
    relatorio = gerar_relatorio_tributos(_rows(sp_xml), "2025-03-01", "2025-03-31")
    t = relatorio.totais_gerais
    assert t.valor_servico == 300.0
    assert t.valor_pis == pytest.approx(1.98)
    assert t.valor_iss == 7.5
    assert t.valor_irrf == 2.25


def test_relatorio_tributos_sem_linhas():
    relatorio = gerar_relatorio_tributos([], "2025-03-01", "2025-03-31", "98765432000110")
    assert relatorio.empresa == "98765432000110"
    assert relatorio.empresas == []
    assert relatorio.total_nfses == 0
    assert relatorio.totais_gerais.valor_servico == 0.0


def test_relatorio_nfse(sp_xml):
    relatorio = gerar_relatorio_nfse(_rows(sp_xml), "2025-03-01", "2025-03-31")
    assert relatorio.total_nfses == 3
    assert relatorio.total_geral == 300.0
    assert [e.total for e in relatorio.empresas] == [250.0, 50.0]
    assert relatorio.empresas[0].nfses[1].data_emissao == "2025-03-12"
