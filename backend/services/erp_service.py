"""
Vendor pre-registration on the TOTVS RM ERP.

The ERP exposes a WSDL-less SOAP 1.1 data server; "SaveRecord" on the
FinCFODataBr data server creates a CFO (customer/vendor). The record itself
travels as a second XML document inside a CDATA section of the envelope.
"""

import re
import httpx
import logging
from datetime import date
from typing import Optional, Tuple
from xml.sax.saxutils import escape, unescape

from config import (ERP_SOAP_ENDPOINT, ERP_USERNAME, ERP_PASSWORD, ERP_TIMEOUT,
                    ERP_USER_AGENT, ERP_DEFAULTS)
from schemas.schemas import CNPJData, ERPResult
from services.cnpj_service import CNPJLookupError, consultar_cnpj
from services.format_service import formatar_cep, formatar_cnpj, somente_digitos
from services.soap_debug_log import SoapDebugLog

logger = logging.getLogger(__name__)

_ENTITIES = {'"': "&quot;", "'": "&apos;"}

_FAULT_MARKERS = ("soap:Fault", "s:Fault", "SOAP-ENV:Fault", "faultstring")
_FAULT_RE = re.compile(r"<faultstring[^>]*>(.*?)</faultstring>", re.DOTALL)
_RESULT_RE = re.compile(
    r"<(?:\w+:)?SaveRecordResult[^>]*>(.*?)</(?:\w+:)?SaveRecordResult>", re.DOTALL)
_CODCFO_RE = re.compile(r"<CODCFO>(\d+)</CODCFO>")

MSG_SUCESSO = "Pré-cadastro realizado com sucesso no ERP"
MSG_NAO_ENCONTRADO = "Serviço do ERP não encontrado (HTTP 404). Verifique o endereço configurado."
MSG_AUTENTICACAO = "Falha de autenticação no ERP. Verifique usuário e senha."
MSG_ERRO_SERVIDOR = "Erro interno no servidor do ERP. Tente novamente mais tarde."
MSG_TIMEOUT = "Tempo limite excedido. O ERP pode estar temporariamente indisponível."
MSG_CONEXAO = "Erro de conexão com o ERP. Verifique sua internet e tente novamente."


def _esc(value) -> str:
    return escape(str(value or ""), _ENTITIES)


def _fcfo_fields(cnpj_data: CNPJData, hoje: str) -> list:
    d = ERP_DEFAULTS
    return [
        ("CODEXTERNO", "00000000"),
        ("CODCOLIGADA", d["CODCOLIGADA"]),
        ("CODCFO", "-1"),
        ("NOMEFANTASIA", cnpj_data.fantasia or cnpj_data.nome),
        ("NOME", cnpj_data.nome),
        ("CGCCFO", formatar_cnpj(cnpj_data.cnpj)),
        ("PAGREC", d["PAGREC"]),
        ("RUA", cnpj_data.logradouro),
        ("NUMERO", cnpj_data.numero),
        ("BAIRRO", cnpj_data.bairro),
        ("CIDADE", cnpj_data.municipio),
        ("CODETD", cnpj_data.uf),
        ("CEP", formatar_cep(cnpj_data.cep)),
        ("TELEFONE", cnpj_data.telefone),
        ("EMAIL", cnpj_data.email),
        ("CONTATO", cnpj_data.nome),
        ("ATIVO", d["ATIVO"]),
        ("LIMITECREDITO", d["LIMITECREDITO"]),
        ("DATAULTALTERACAO", hoje),
        ("DATACRIACAO", hoje),
        ("DATAULTMOVIMENTO", hoje),
        ("VALOROP1", d["VALOROP1"]),
        ("VALOROP2", d["VALOROP2"]),
        ("VALOROP3", d["VALOROP3"]),
        ("PATRIMONIO", d["PATRIMONIO"]),
        ("NUMFUNCIONARIOS", d["NUMFUNCIONARIOS"]),
        ("CODMUNICIPIO", cnpj_data.codigo_municipio),
        ("INSCRMUNICIPAL", cnpj_data.inscricao_municipal),
        ("PESSOAFISOUJUR", "J"),
        ("PAIS", d["PAIS"]),
        ("CONTRIBUINTE", d["CONTRIBUINTE"]),
        ("CFOIMOB", d["CFOIMOB"]),
        ("VALFRETE", d["VALFRETE"]),
        ("TPTOMADOR", d["TPTOMADOR"]),
        ("CONTRIBUINTEISS", d["CONTRIBUINTEISS"]),
        ("NUMDEPENDENTES", d["NUMDEPENDENTES"]),
        ("USUARIOALTERACAO", d["USUARIOALTERACAO"]),
        ("ORGAOPUBLICO", d["ORGAOPUBLICO"]),
        ("IDCFO", ""),
        ("VROUTRASDEDUCOESIRRF", d["VROUTRASDEDUCOESIRRF"]),
        ("CODRECEITA", d["CODRECEITA"]),
        ("RAMOATIV", d["RAMOATIV"]),
        ("OPTANTEPELOSIMPLES", d["OPTANTEPELOSIMPLES"]),
        ("TIPORUA", d["TIPORUA"]),
        ("TIPOBAIRRO", d["TIPOBAIRRO"]),
        ("REGIMEISS", d["REGIMEISS"]),
        ("RETENCAOISS", d["RETENCAOISS"]),
        ("USUARIOCRIACAO", d["USUARIOCRIACAO"]),
        ("PORTE", d["PORTE"]),
        ("TIPOOPCOMBUSTIVEL", d["TIPOOPCOMBUSTIVEL"]),
        ("IDPAIS", d["IDPAIS"]),
        ("NACIONALIDADE", d["NACIONALIDADE"]),
        ("CALCULAAVP", d["CALCULAAVP"]),
        ("RECCREATEDBY", d["RECCREATEDBY"]),
        ("RECCREATEDON", hoje),
        ("RECMODIFIEDBY", d["RECMODIFIEDBY"]),
        ("RECMODIFIEDON", hoje),
        ("TIPORENDIMENTO", d["TIPORENDIMENTO"]),
        ("FORMATRIBUTACAO", d["FORMATRIBUTACAO"]),
        ("SITUACAONIF", d["SITUACAONIF"]),
        ("ISTOTVSMESSAGE", d["ISTOTVSMESSAGE"]),
        ("INOVAR_AUTO", d["INOVAR_AUTO"]),
        ("APLICFORMULA", d["APLICFORMULA"]),
        ("CODCFOCOLINTEGRACAO", d["CODCFOCOLINTEGRACAO"]),
        ("DIGVERIFICDEBAUTOMATICO", d["DIGVERIFICDEBAUTOMATICO"]),
        ("ENTIDADEEXECUTORAPAA", d["ENTIDADEEXECUTORAPAA"]),
        ("APOSENTADOOUPENSIONISTA", d["APOSENTADOOUPENSIONISTA"]),
        ("SOCIOCOOPERADO", d["SOCIOCOOPERADO"]),
    ]


def build_inner_xml(cnpj_data: CNPJData, hoje: Optional[date] = None) -> str:
    """The FinCFOBR record carried inside the envelope's CDATA section."""
    dia = (hoje or date.today()).isoformat()
    fcfo = "\n".join(f"    <{tag}>{_esc(value)}</{tag}>"
                     for tag, value in _fcfo_fields(cnpj_data, dia))
    return f"""<FinCFOBR>
  <FCFO>
{fcfo}
  </FCFO>
  <FCFOCOMPL>
    <CODCOLIGADA>{_esc(ERP_DEFAULTS["CODCOLIGADA"])}</CODCOLIGADA>
    <CODCFO>-1</CODCFO>
    <NAOUSARCALCSIMPIRPF>{_esc(ERP_DEFAULTS["NAOUSARCALCSIMPIRPF"])}</NAOUSARCALCSIMPIRPF>
  </FCFOCOMPL>
</FinCFOBR>"""


def build_soap_envelope(cnpj_data: CNPJData, hoje: Optional[date] = None,
                        username: str = ERP_USERNAME) -> str:
    inner = build_inner_xml(cnpj_data, hoje)
    return f"""<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/" xmlns:tot="http://www.totvs.com/">
   <soapenv:Header/>
   <soapenv:Body>
      <tot:SaveRecord>
         <tot:DataServerName>FinCFODataBr</tot:DataServerName>
         <tot:XML><![CDATA[{inner}]]></tot:XML>
         <tot:Contexto>CODCOLIGADA={_esc(ERP_DEFAULTS["CODCOLIGADA"])};CODUSUARIO='{escape(username)}';CODSISTEMA=F</tot:Contexto>
      </tot:SaveRecord>
   </soapenv:Body>
</soapenv:Envelope>"""


def parse_soap_response(body: str) -> Tuple[bool, str, Optional[str]]:
    """Scan a 2xx ERP reply: (success, message, erp_code)."""
    if any(marker in body for marker in _FAULT_MARKERS):
        m = _FAULT_RE.search(body)
        fault = unescape(m.group(1).strip()) if m else "Erro desconhecido no ERP"
        return False, f"Erro do ERP: {fault}", None

    erp_code = None
    m = _RESULT_RE.search(body)
    if m:
        parts = unescape(m.group(1).strip()).split(";")
        if len(parts) >= 2 and parts[1].strip():
            erp_code = parts[1].strip()
    if erp_code is None:
        m = _CODCFO_RE.search(body)
        if m:
            erp_code = m.group(1)
    return True, MSG_SUCESSO, erp_code


def message_for_status(status_code: int) -> str:
    if status_code == 404:
        return MSG_NAO_ENCONTRADO
    if status_code in (401, 403):
        return MSG_AUTENTICACAO
    if status_code >= 500:
        return MSG_ERRO_SERVIDOR
    return f"Erro na requisição ERP: HTTP {status_code}"


class ERPService:
    """Sends pre-registrations to the ERP; every attempt lands in `debug_log`."""

    def __init__(self, debug_log: SoapDebugLog,
                 endpoint: str = ERP_SOAP_ENDPOINT,
                 username: str = ERP_USERNAME,
                 password: str = ERP_PASSWORD,
                 timeout: float = ERP_TIMEOUT,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.debug_log = debug_log
        self.endpoint = endpoint
        self.username = username
        self._password = password
        self.timeout = timeout
        self._transport = transport

    async def realizar_pre_cadastro(self, cnpj_data: CNPJData) -> ERPResult:
        logger.info(f"Pré-cadastro no ERP: {cnpj_data.nome} ({cnpj_data.cnpj})")
        envelope = build_soap_envelope(cnpj_data, username=self.username)
        status_code: Optional[int] = None
        body = ""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport,
                                         auth=(self.username, self._password)) as client:
                resp = await client.post(
                    self.endpoint,
                    content=envelope.encode("utf-8"),
                    headers={
                        "Content-Type": "text/xml; charset=utf-8",
                        "SOAPAction": "",
                        "User-Agent": ERP_USER_AGENT,
                    },
                )
            status_code, body = resp.status_code, resp.text
            logger.info(f"Resposta do ERP (status {status_code}): {body[:500]}")

            if resp.is_success:
                success, message, erp_code = parse_soap_response(body)
            else:
                success, message, erp_code = False, message_for_status(status_code), None
        except httpx.TimeoutException:
            logger.warning(f"ERP timeout — CNPJ {cnpj_data.cnpj}")
            success, message, erp_code = False, MSG_TIMEOUT, None
        except httpx.HTTPError as e:
            logger.error(f"ERP connection error: {e}")
            success, message, erp_code = False, MSG_CONEXAO, None

        self.debug_log.registrar(
            cnpj_data.cnpj, self.endpoint, envelope,
            status_code=status_code, response=body, success=success, message=message,
        )
        if success:
            logger.info(f"Pré-cadastro concluído. Código ERP: {erp_code or 'não informado'}")
        else:
            logger.warning(f"Pré-cadastro falhou para {cnpj_data.cnpj}: {message}")
        return ERPResult(success=success, message=message, erp_code=erp_code)

    async def pre_cadastrar_cnpj(self, cnpj: str) -> ERPResult:
        """Look the CNPJ up on ReceitaWS, then pre-register it on the ERP."""
        try:
            cnpj_data = await consultar_cnpj(cnpj, transport=self._transport)
        except CNPJLookupError as e:
            logger.warning(f"Consulta do CNPJ {somente_digitos(cnpj)} falhou: {e}")
            return ERPResult(success=False, message=str(e))
        return await self.realizar_pre_cadastro(cnpj_data)
