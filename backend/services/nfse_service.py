"""
NFSe normalization.

Municipal NFSe layouts all loosely follow the national DPS/NFSe standard but
disagree on nesting and on which optional wrappers they carry. Instead of one
schema-aware parser, each layout seen in production is a (predicate,
extractor) pair in SHAPES, tried in a fixed order: several layouts are
structural subsets of others, so the more specific ones come first.
"""

import enum
import logging
import xml.etree.ElementTree as ET
from typing import Callable, NamedTuple, Optional

from schemas.schemas import CanonicalFiscalDocument, Prestador, Tomador
from services.format_service import formatar_cep, formatar_cnpj, nome_municipio
from services.xml_service import (
    UnrecognizedSchemaError, find_first_text, find_tag_value, first_amount,
    first_text, parse_xml_tree, text,
)

logger = logging.getLogger(__name__)

PIS_ALIASES = ('vPis', 'vPIS', 'pis', 'PIS')
COFINS_ALIASES = ('vCofins', 'vCOFINS', 'cofins', 'COFINS')
IR_ALIASES = ('vRetIRRF', 'vIRRF', 'vIR', 'ir', 'IR')
CSLL_ALIASES = ('vRetCSLL', 'vCSLL', 'csll', 'CSLL')
INSS_ALIASES = ('vRetINSS', 'vINSS', 'inss', 'INSS')


class MunicipalityShape(str, enum.Enum):
    barueri = "barueri"
    belo_horizonte = "belo_horizonte"
    sao_paulo = "sao_paulo"
    legacy_nfe = "legacy_nfe"
    root_nfe = "root_nfe"
    generic = "generic"


# ── Detection ─────────────────────────────────────────────────────────────────

def _inf_nfse(root: ET.Element) -> Optional[ET.Element]:
    return root.find('infNFSe') if root.tag == 'NFSe' else None


def _is_barueri(root: ET.Element) -> bool:
    inf = _inf_nfse(root)
    if inf is None:
        return False
    alt_layout = inf.find('DPS') is None or (
        inf.find('emit') is not None and inf.find('valores') is not None)
    return alt_layout and ('BARUERI' in text(inf, 'xLocEmi') or bool(text(inf, 'nNFSe')))


def _is_belo_horizonte(root: ET.Element) -> bool:
    inf = _inf_nfse(root)
    loc = text(inf, 'xLocEmi')
    return any(city in loc for city in ('BELO', 'HORIZONTE', 'BARUERI'))


def _is_sao_paulo(root: ET.Element) -> bool:
    inf = _inf_nfse(root)
    return inf is not None and inf.find('DPS') is not None and not _is_belo_horizonte(root)


def _is_legacy_nfe(root: ET.Element) -> bool:
    return root.tag == 'NFe'


def _is_root_nfe(root: ET.Element) -> bool:
    return root.tag == 'root' and root.find('Nfe') is not None


def _is_generic(root: ET.Element) -> bool:
    return _inf_nfse(root) is not None


# ── Extraction: national DPS/NFSe layouts ─────────────────────────────────────

class _DpsNodes(NamedTuple):
    inf: ET.Element
    emit: Optional[ET.Element]
    ender_nac: Optional[ET.Element]
    dps: Optional[ET.Element]
    prest: Optional[ET.Element]
    toma: Optional[ET.Element]
    serv: Optional[ET.Element]
    valores: Optional[ET.Element]


def _dps_nodes(root: ET.Element) -> _DpsNodes:
    inf = _inf_nfse(root)
    dps = inf.find('DPS/infDPS')
    valores = dps.find('valores') if dps is not None else None
    if valores is None:
        valores = inf.find('valores')
    return _DpsNodes(
        inf=inf,
        emit=inf.find('emit'),
        ender_nac=inf.find('emit/enderNac'),
        dps=dps,
        prest=dps.find('prest') if dps is not None else None,
        toma=dps.find('toma') if dps is not None else None,
        serv=dps.find('serv') if dps is not None else None,
        valores=valores,
    )


def _withholdings(root: ET.Element) -> dict:
    return {
        'pis': find_tag_value(root, PIS_ALIASES),
        'cofins': find_tag_value(root, COFINS_ALIASES),
        'inss': find_tag_value(root, INSS_ALIASES),
        'ir': find_tag_value(root, IR_ALIASES),
        'csll': find_tag_value(root, CSLL_ALIASES),
    }


def _dps_prestador(n: _DpsNodes, with_prest: bool, loc_fallback: bool) -> Prestador:
    prest = n.prest if with_prest else None
    c_mun = first_text(text(n.ender_nac, 'cMun'), text(prest, 'end/endNac/cMun'))
    municipio = nome_municipio(c_mun)
    if loc_fallback:
        municipio = first_text(municipio, text(n.inf, 'xLocEmi'))
    return Prestador(
        cnpj=formatar_cnpj(first_text(text(n.emit, 'CNPJ'), text(prest, 'CNPJ'))),
        razao_social=first_text(text(n.emit, 'xNome'), text(prest, 'xNome')),
        endereco=first_text(text(n.ender_nac, 'xLgr'), text(prest, 'end/xLgr')),
        numero=first_text(text(n.ender_nac, 'nro'), text(prest, 'end/nro')),
        complemento=first_text(text(n.ender_nac, 'xCpl'), text(prest, 'end/xCpl')),
        bairro=first_text(text(n.ender_nac, 'xBairro'), text(prest, 'end/xBairro')),
        cep=formatar_cep(first_text(text(n.ender_nac, 'CEP'), text(prest, 'end/endNac/CEP'))),
        municipio=municipio,
        uf=first_text(text(n.ender_nac, 'UF'), text(prest, 'end/endNac/UF')),
        inscricao_municipal=first_text(text(n.emit, 'IM'), text(prest, 'IM')),
        telefone=text(n.emit, 'fone'),
        email=text(n.emit, 'email'),
    )


def _dps_tomador(n: _DpsNodes, loc_fallback: bool) -> Tomador:
    municipio = nome_municipio(text(n.toma, 'end/endNac/cMun'))
    if loc_fallback:
        municipio = first_text(municipio, text(n.inf, 'xLocPrestacao'))
    return Tomador(
        cnpj=formatar_cnpj(text(n.toma, 'CNPJ')),
        razao_social=text(n.toma, 'xNome'),
        endereco=text(n.toma, 'end/xLgr'),
        numero=text(n.toma, 'end/nro'),
        bairro=text(n.toma, 'end/xBairro'),
        cep=formatar_cep(text(n.toma, 'end/endNac/CEP')),
        municipio=municipio,
        uf=text(n.toma, 'end/endNac/UF'),
        inscricao_municipal=text(n.toma, 'IM'),
    )


def _extract_barueri(root: ET.Element) -> CanonicalFiscalDocument:
    n = _dps_nodes(root)
    v = n.valores
    v_serv = find_first_text(root, 'vServ')
    v_issqn = find_first_text(root, 'vISSQN')
    outras = first_text(text(v, 'xOutInf'), text(n.inf, 'xOutInf'))
    return CanonicalFiscalDocument(
        numero_nfse=first_text(text(n.inf, 'nNFSe'), text(n.inf, 'nDFSe')),
        data_emissao=first_text(text(n.dps, 'dhEmi'), text(n.inf, 'dhEmi'), text(n.inf, 'dhProc')),
        codigo_verificacao=text(n.inf, 'cVerif'),
        prestador=_dps_prestador(n, with_prest=True, loc_fallback=True),
        tomador=_dps_tomador(n, loc_fallback=True),
        descricao_servicos=first_text(
            text(n.serv, 'cServ/xDescServ'), text(n.inf, 'xTribNac'), text(n.inf, 'xTribMun')),
        observacoes=outras,
        codigo_servico=text(n.serv, 'cServ/cTribNac'),
        valor_servicos=first_amount(
            v_serv, text(v, 'vServPrest/vServ'), text(v, 'vServ'), text(v, 'vBC')),
        base_calculo=first_amount(text(v, 'vBC'), v_serv, text(v, 'vServ')),
        aliquota=first_amount(text(v, 'pAliqAplic')),
        valor_iss=first_amount(v_issqn, text(v, 'vISSQN')),
        iss_retido=text(v, 'tpRetISSQN') == '1',
        valor_total_nota=first_amount(
            text(v, 'vLiq'), v_serv, text(v, 'vServ'), text(v, 'vBC')),
        outras_informacoes=outras,
        **_withholdings(root),
    )


def _extract_belo_horizonte(root: ET.Element) -> CanonicalFiscalDocument:
    n = _dps_nodes(root)
    v = n.valores
    v_serv = find_first_text(root, 'vServ')
    v_issqn = find_first_text(root, 'vISSQN')
    outras = first_text(text(v, 'xOutInf'), text(n.inf, 'xOutInf'))
    return CanonicalFiscalDocument(
        numero_nfse=text(n.inf, 'nNFSe'),
        data_emissao=first_text(text(n.dps, 'dhEmi'), text(n.inf, 'dhEmi')),
        codigo_verificacao=text(n.inf, 'cVerif'),
        prestador=_dps_prestador(n, with_prest=True, loc_fallback=False),
        tomador=_dps_tomador(n, loc_fallback=False),
        descricao_servicos=first_text(text(n.serv, 'cServ/xDescServ'), text(n.inf, 'xTribNac')),
        observacoes=outras,
        codigo_servico=text(n.serv, 'cServ/cTribNac'),
        valor_servicos=first_amount(v_serv, text(v, 'vServPrest/vServ'), text(v, 'vServ')),
        base_calculo=first_amount(text(v, 'vBC'), v_serv, text(v, 'vServ')),
        aliquota=first_amount(text(v, 'pAliqAplic')),
        valor_iss=first_amount(v_issqn, text(v, 'vISSQN')),
        iss_retido=text(v, 'tpRetISSQN') == '1',
        valor_total_nota=first_amount(text(v, 'vLiq'), v_serv, text(v, 'vServ')),
        outras_informacoes=outras,
        **_withholdings(root),
    )


def _extract_sao_paulo(root: ET.Element) -> CanonicalFiscalDocument:
    n = _dps_nodes(root)
    v = n.valores
    v_serv = find_first_text(root, 'vServ')
    serv_v_serv = text(n.serv, 'vServ')
    return CanonicalFiscalDocument(
        numero_nfse=text(n.inf, 'nNFSe'),
        data_emissao=first_text(text(n.dps, 'dhEmi'), text(n.inf, 'dhEmi')),
        codigo_verificacao=text(n.inf, 'cVerif'),
        prestador=_dps_prestador(n, with_prest=False, loc_fallback=False),
        tomador=_dps_tomador(n, loc_fallback=False),
        descricao_servicos=text(n.serv, 'cServ/xDescServ'),
        observacoes=text(v, 'xOutInf'),
        codigo_servico=text(n.serv, 'cServ/cTribNac'),
        valor_servicos=first_amount(
            v_serv, text(v, 'vServPrest/vServ'), text(v, 'vServ'), serv_v_serv),
        base_calculo=first_amount(text(v, 'vBC'), v_serv, text(v, 'vServ'), serv_v_serv),
        aliquota=first_amount(text(v, 'pAliqAplic')),
        valor_iss=first_amount(find_first_text(root, 'vISSQN')),
        iss_retido=text(v, 'tpRetISSQN') == '1',
        valor_total_nota=first_amount(text(v, 'vLiq'), v_serv, text(v, 'vServ'), serv_v_serv),
        outras_informacoes=text(v, 'xOutInf'),
        **_withholdings(root),
    )


def _extract_generic(root: ET.Element) -> CanonicalFiscalDocument:
    inf = _inf_nfse(root)
    emit = inf.find('emit')
    ender = inf.find('emit/enderNac')
    toma = inf.find('DPS/infDPS/toma')
    v = inf.find('valores')
    v_serv = find_first_text(root, 'vServ')
    outras = first_text(text(v, 'xOutInf'), text(inf, 'xOutInf'))
    return CanonicalFiscalDocument(
        numero_nfse=first_text(text(inf, 'nNFSe'), text(inf, 'nDFSe')),
        data_emissao=first_text(text(inf, 'dhEmi'), text(inf, 'dhProc')),
        codigo_verificacao=text(inf, 'cVerif'),
        prestador=Prestador(
            cnpj=formatar_cnpj(text(emit, 'CNPJ')),
            razao_social=text(emit, 'xNome'),
            endereco=text(ender, 'xLgr'),
            numero=text(ender, 'nro'),
            complemento=text(ender, 'xCpl'),
            bairro=text(ender, 'xBairro'),
            cep=formatar_cep(text(ender, 'CEP')),
            municipio=first_text(nome_municipio(text(ender, 'cMun')), text(inf, 'xLocEmi')),
            uf=text(ender, 'UF'),
            inscricao_municipal=text(emit, 'IM'),
            telefone=text(emit, 'fone'),
            email=text(emit, 'email'),
        ),
        tomador=Tomador(
            cnpj=formatar_cnpj(text(toma, 'CNPJ')),
            razao_social=text(toma, 'xNome'),
            endereco=text(toma, 'end/xLgr'),
            numero=text(toma, 'end/nro'),
            bairro=text(toma, 'end/xBairro'),
            cep=formatar_cep(text(toma, 'end/endNac/CEP')),
            municipio=first_text(
                nome_municipio(text(toma, 'end/endNac/cMun')), text(inf, 'xLocPrestacao')),
            uf=text(toma, 'end/endNac/UF'),
            inscricao_municipal=text(toma, 'IM'),
        ),
        descricao_servicos=first_text(
            text(inf, 'DPS/infDPS/serv/cServ/xDescServ'),
            text(inf, 'xTribNac'), text(inf, 'xTribMun')),
        observacoes=outras,
        codigo_servico=text(inf, 'DPS/infDPS/serv/cServ/cTribNac'),
        valor_servicos=first_amount(
            v_serv, text(v, 'vServPrest/vServ'), text(v, 'vServ'), text(v, 'vBC')),
        base_calculo=first_amount(text(v, 'vBC'), v_serv, text(v, 'vServ')),
        aliquota=first_amount(text(v, 'pAliqAplic')),
        valor_iss=first_amount(find_first_text(root, 'vISSQN'), text(v, 'vISSQN')),
        iss_retido=text(v, 'tpRetISSQN') == '1',
        valor_total_nota=first_amount(
            text(v, 'vLiq'), v_serv, text(v, 'vServ'), text(v, 'vBC')),
        outras_informacoes=outras,
        **_withholdings(root),
    )


# ── Extraction: legacy layouts ────────────────────────────────────────────────

def _extract_legacy_nfe(nfe: ET.Element) -> CanonicalFiscalDocument:
    """São Paulo 'NFe' layout (ChaveNFe, RazaoSocialPrestador, ...)."""
    chave = nfe.find('ChaveNFe')
    end_prest = nfe.find('EnderecoPrestador')
    end_toma = nfe.find('EnderecoTomador')
    valor_servicos = first_amount(text(nfe, 'ValorServicos'))
    return CanonicalFiscalDocument(
        numero_nfse=text(chave, 'NumeroNFe'),
        data_emissao=text(nfe, 'DataEmissaoNFe'),
        codigo_verificacao=text(chave, 'CodigoVerificacao'),
        prestador=Prestador(
            cnpj=formatar_cnpj(text(nfe, 'CPFCNPJPrestador/CNPJ')),
            razao_social=text(nfe, 'RazaoSocialPrestador'),
            endereco=text(end_prest, 'Logradouro'),
            numero=text(end_prest, 'NumeroEndereco'),
            complemento=text(end_prest, 'ComplementoEndereco'),
            bairro=text(end_prest, 'Bairro'),
            cep=formatar_cep(text(end_prest, 'CEP')),
            municipio=nome_municipio(text(end_prest, 'Cidade')),
            uf=text(end_prest, 'UF'),
            inscricao_municipal=text(chave, 'InscricaoPrestador'),
            email=text(nfe, 'EmailPrestador'),
        ),
        tomador=Tomador(
            cnpj=formatar_cnpj(text(nfe, 'CPFCNPJTomador/CNPJ')),
            razao_social=text(nfe, 'RazaoSocialTomador'),
            endereco=text(end_toma, 'Logradouro'),
            numero=text(end_toma, 'NumeroEndereco'),
            bairro=text(end_toma, 'Bairro'),
            cep=formatar_cep(text(end_toma, 'CEP')),
            municipio=nome_municipio(text(end_toma, 'Cidade')),
            uf=text(end_toma, 'UF'),
            inscricao_estadual=text(nfe, 'InscricaoEstadualTomador'),
        ),
        descricao_servicos=text(nfe, 'Discriminacao'),
        codigo_servico=text(nfe, 'CodigoServico'),
        valor_servicos=valor_servicos,
        base_calculo=valor_servicos,
        # AliquotaServicos is a fraction (0.05 = 5%)
        aliquota=first_amount(text(nfe, 'AliquotaServicos')) * 100,
        valor_iss=first_amount(text(nfe, 'ValorISS')),
        iss_retido=text(nfe, 'ISSRetido') == 'true',
        valor_total_nota=valor_servicos,
        outras_informacoes=text(nfe, 'Discriminacao'),
        **_withholdings(nfe),
    )


def _extract_root_nfe(root: ET.Element) -> CanonicalFiscalDocument:
    """root/Nfe layout (PrestadorServico, DeclaracaoPrestacaoServico, ValoresNfe)."""
    nfe = root.find('Nfe')
    inf = nfe.find('InfNFe')
    if inf is None:
        inf = nfe.find('infNFe')
    if inf is None:
        inf = ET.Element('InfNFe')

    prest = inf.find('PrestadorServico')
    decl = inf.find('DeclaracaoPrestacaoServico/InfDeclaracaoPrestacaoServico')
    valores = inf.find('ValoresNfe')
    toma = decl.find('TomadorServico') if decl is not None else None
    servico = decl.find('Servico') if decl is not None else None
    vs = servico.find('Valores') if servico is not None else None

    return CanonicalFiscalDocument(
        numero_nfse=text(inf, 'NumeroNfe'),
        data_emissao=text(inf, 'DataEmissao'),
        codigo_verificacao=text(inf, 'CodigoVerificacao'),
        prestador=Prestador(
            cnpj=formatar_cnpj(text(prest, 'IdentificacaoPrestador/CpfCnpj/Cnpj')),
            razao_social=text(prest, 'RazaoSocial'),
            endereco=text(prest, 'Endereco/Endereco'),
            numero=text(prest, 'Endereco/NumeroEndereco'),
            complemento=text(prest, 'Endereco/ComplementoEndereco'),
            bairro=text(prest, 'Endereco/Bairro'),
            cep=formatar_cep(text(prest, 'Endereco/Cep')),
            municipio=text(prest, 'Endereco/Cidade'),
            uf=text(prest, 'Endereco/Uf'),
            inscricao_municipal=text(prest, 'IdentificacaoPrestador/InscricaoMunicipal'),
            telefone=text(prest, 'Contato/Telefone'),
            email=text(prest, 'Contato/Email'),
        ),
        tomador=Tomador(
            cnpj=formatar_cnpj(text(toma, 'IdentificacaoTomador/CpfCnpj/Cnpj')),
            razao_social=text(toma, 'RazaoSocial'),
            endereco=text(toma, 'Endereco/Endereco'),
            numero=text(toma, 'Endereco/NumeroEndereco'),
            bairro=text(toma, 'Endereco/Bairro'),
            cep=formatar_cep(text(toma, 'Endereco/Cep')),
            municipio=text(toma, 'Endereco/Cidade'),
            uf=text(toma, 'Endereco/Uf'),
            inscricao_municipal=text(toma, 'IdentificacaoTomador/InscricaoMunicipal'),
            inscricao_estadual=text(toma, 'IdentificacaoTomador/InscricaoEstadual'),
        ),
        descricao_servicos=text(servico, 'Discriminacao'),
        codigo_servico=text(servico, 'CodigoServico'),
        valor_servicos=first_amount(text(vs, 'ValorServicos')),
        valor_deducoes=first_amount(text(vs, 'ValorDeducoes')),
        base_calculo=first_amount(text(valores, 'BaseCalculo'), text(vs, 'ValorServicos')),
        aliquota=first_amount(text(valores, 'Aliquota'), text(vs, 'Aliquota')),
        valor_iss=first_amount(text(valores, 'ValorIss'), text(vs, 'ValorIss')),
        iss_retido=text(servico, 'IssRetido') == '1',
        valor_total_nota=first_amount(
            text(valores, 'ValorLiquidoNfe'), text(vs, 'ValorServicos')),
        pis=first_amount(text(vs, 'ValorPis')),
        cofins=first_amount(text(vs, 'ValorCofins')),
        inss=first_amount(text(vs, 'ValorInss')),
        ir=first_amount(text(vs, 'ValorIr')),
        csll=first_amount(text(vs, 'ValorCsll')),
        outras_informacoes=text(servico, 'Discriminacao'),
    )


# ── Dispatch ──────────────────────────────────────────────────────────────────

class Shape(NamedTuple):
    shape: MunicipalityShape
    matches: Callable[[ET.Element], bool]
    extract: Callable[[ET.Element], CanonicalFiscalDocument]


SHAPES = (
    Shape(MunicipalityShape.barueri, _is_barueri, _extract_barueri),
    Shape(MunicipalityShape.belo_horizonte, _is_belo_horizonte, _extract_belo_horizonte),
    Shape(MunicipalityShape.sao_paulo, _is_sao_paulo, _extract_sao_paulo),
    Shape(MunicipalityShape.legacy_nfe, _is_legacy_nfe, _extract_legacy_nfe),
    Shape(MunicipalityShape.root_nfe, _is_root_nfe, _extract_root_nfe),
    Shape(MunicipalityShape.generic, _is_generic, _extract_generic),
)


def _match(root: ET.Element) -> Shape:
    for entry in SHAPES:
        if entry.matches(root):
            return entry
    raise UnrecognizedSchemaError(
        f"Estrutura XML não reconhecida (raiz <{root.tag}>) - "
        "não é possível processar este formato de NFSe")


def detect_shape(root: ET.Element) -> MunicipalityShape:
    return _match(root).shape


def extract_document(root: ET.Element) -> CanonicalFiscalDocument:
    entry = _match(root)
    logger.info(f"NFSe layout detectado: {entry.shape.value}")
    return entry.extract(root)


def normalize_nfse(raw: str | bytes) -> CanonicalFiscalDocument:
    """
    Decode, parse and normalize one NFSe XML.

    Raises MalformedInputError when the input is not XML (plain or base64)
    and UnrecognizedSchemaError when no known layout matches.
    """
    root = parse_xml_tree(raw)
    doc = extract_document(root)
    logger.info(f"NFSe {doc.numero_nfse or '?'} normalizada: "
                f"prestador={doc.prestador.cnpj or '?'} total={doc.valor_total_nota:.2f}")
    return doc
