import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from schemas.schemas import (
    EmpresaResumo, EmpresaTributos, NfseResumoLinha, NfseTributosLinha,
    RelatorioNfse, RelatorioTributos, TotaisTributos, TributosNfse,
)
from services.xml_service import NfseError, find_positive_ci, parse_xml_tree, to_float

logger = logging.getLogger(__name__)

# Looser than the DANFSe lookups: the report only trusts values > 0
TRIBUTO_ALIASES = {
    'valor_iss': ('vISSQN', 'vISS', 'ISSQN', 'ISS'),
    'valor_pis': ('vPis', 'vPIS', 'Pis', 'PIS'),
    'valor_cofins': ('vCofins', 'vCOFINS', 'Cofins', 'COFINS'),
    'valor_inss': ('vRetINSS', 'vINSS', 'INSS', 'RetINSS'),
    'valor_irrf': ('vRetIRRF', 'vIRRF', 'IRRF', 'IR'),
    'valor_csll': ('vRetCSLL', 'vCSLL', 'CSLL', 'RetCSLL'),
}

SEM_EMPRESA = 'sem_empresa'
EMPRESA_NAO_IDENTIFICADA = 'Empresa não identificada'


def extrair_tributos(xml_content: Any, nfse_id: str = '') -> TributosNfse:
    """Withheld taxes of one stored NFSe. Unreadable XML yields zeros."""
    if not isinstance(xml_content, (str, bytes)) or not xml_content:
        logger.warning(f"NFSe {nfse_id}: XML ausente ou em formato inesperado")
        return TributosNfse()
    try:
        root = parse_xml_tree(xml_content)
    except NfseError as e:
        logger.warning(f"NFSe {nfse_id}: erro ao processar XML: {e}")
        return TributosNfse()

    tributos = TributosNfse(**{
        campo: find_positive_ci(root, aliases) for campo, aliases in TRIBUTO_ALIASES.items()
    })
    logger.debug(f"NFSe {nfse_id}: tributos extraídos {tributos.model_dump()}")
    return tributos


def _valor(value) -> float:
    return to_float(value) or 0.0


def _texto(value) -> str:
    return '' if value is None else str(value)


def _data(value) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat() if hasattr(value, 'isoformat') else str(value)


def _somar(totais: TotaisTributos, valor_servico: float, tributos: TributosNfse):
    totais.valor_servico += valor_servico
    for campo in TRIBUTO_ALIASES:
        setattr(totais, campo, getattr(totais, campo) + getattr(tributos, campo))


def gerar_relatorio_tributos(rows: Iterable[Mapping[str, Any]], data_inicial: str,
                             data_final: str, empresa: Optional[str] = None) -> RelatorioTributos:
    """
    Group NFSe rows by tomador and total service value and withheld taxes.

    Each row carries numero_nfse, data_emissao, fornecedor, cnpj_fornecedor,
    valor_total_nfse, empresa_tomadora, cnpj_tomadora and xml_content, as
    selected from the nfse table. Groups keep the order of first appearance.
    """
    empresas: Dict[str, EmpresaTributos] = {}
    relatorio = RelatorioTributos(data_inicial=data_inicial, data_final=data_final,
                                  empresa=empresa)

    for row in rows:
        key = row.get('cnpj_tomadora') or SEM_EMPRESA
        if key not in empresas:
            empresas[key] = EmpresaTributos(
                nome=row.get('empresa_tomadora') or EMPRESA_NAO_IDENTIFICADA,
                cnpj=_texto(row.get('cnpj_tomadora')),
            )

        numero = _texto(row.get('numero_nfse'))
        tributos = extrair_tributos(row.get('xml_content'), numero)
        valor_servico = _valor(row.get('valor_total_nfse'))

        grupo = empresas[key]
        grupo.nfses.append(NfseTributosLinha(
            numero=numero,
            data_emissao=_data(row.get('data_emissao')),
            fornecedor=_texto(row.get('fornecedor')),
            cnpj_fornecedor=_texto(row.get('cnpj_fornecedor')),
            valor_servico=valor_servico,
            **tributos.model_dump(),
        ))
        _somar(grupo.totais, valor_servico, tributos)
        _somar(relatorio.totais_gerais, valor_servico, tributos)
        relatorio.total_nfses += 1

    relatorio.empresas = list(empresas.values())
    logger.info(f"Relatório de tributos: {relatorio.total_nfses} NFS-e, "
                f"{len(relatorio.empresas)} empresa(s)")
    return relatorio


def gerar_relatorio_nfse(rows: Iterable[Mapping[str, Any]], data_inicial: str,
                         data_final: str, empresa: Optional[str] = None) -> RelatorioNfse:
    """Same grouping as the tax report, service value only (no XML parsing)."""
    empresas: Dict[str, EmpresaResumo] = {}
    relatorio = RelatorioNfse(data_inicial=data_inicial, data_final=data_final, empresa=empresa)

    for row in rows:
        key = row.get('cnpj_tomadora') or SEM_EMPRESA
        if key not in empresas:
            empresas[key] = EmpresaResumo(
                nome=row.get('empresa_tomadora') or EMPRESA_NAO_IDENTIFICADA,
                cnpj=_texto(row.get('cnpj_tomadora')),
            )
        valor = _valor(row.get('valor_total_nfse'))
        grupo = empresas[key]
        grupo.nfses.append(NfseResumoLinha(
            numero=_texto(row.get('numero_nfse')),
            data_emissao=_data(row.get('data_emissao')),
            fornecedor=_texto(row.get('fornecedor')),
            cnpj_fornecedor=_texto(row.get('cnpj_fornecedor')),
            valor=valor,
        ))
        grupo.total += valor
        relatorio.total_geral += valor
        relatorio.total_nfses += 1

    relatorio.empresas = list(empresas.values())
    return relatorio
