import os
from dotenv import load_dotenv

load_dotenv()
ERP_SOAP_ENDPOINT = os.getenv(
    "ERP_SOAP_ENDPOINT", "https://erp.example.com.br:8051/wsDataServer/IwsDataServer")
ERP_USERNAME = os.getenv("ERP_USERNAME", "")
ERP_PASSWORD = os.getenv("ERP_PASSWORD", "")
ERP_TIMEOUT = float(os.getenv("ERP_TIMEOUT", 30))  # seconds
ERP_USER_AGENT = os.getenv("ERP_USER_AGENT", "SimpleDFe/1.0")
RECEITA_WS_API = os.getenv("RECEITA_WS_API", "https://www.receitaws.com.br/v1/cnpj")
CNPJ_TIMEOUT = float(os.getenv("CNPJ_TIMEOUT", 10))  # seconds
SOAP_DEBUG_LOG_SIZE = int(os.getenv("SOAP_DEBUG_LOG_SIZE", 10))

# Static values of the FinCFOBR payload (TOTVS RM "FinCFODataBr" data server)
ERP_DEFAULTS = {
    "CODCOLIGADA": os.getenv("ERP_CODCOLIGADA", "1"),
    "PAGREC": "2",  # 2 = fornecedor
    "ATIVO": "1",
    "LIMITECREDITO": "0",
    "VALOROP1": "0",
    "VALOROP2": "0",
    "VALOROP3": "0",
    "PATRIMONIO": "0",
    "NUMFUNCIONARIOS": "0",
    "PAIS": "BRASIL",
    "CONTRIBUINTE": "0",
    "CFOIMOB": "0",
    "VALFRETE": "0",
    "TPTOMADOR": "0",
    "CONTRIBUINTEISS": "0",
    "NUMDEPENDENTES": "0",
    "USUARIOALTERACAO": os.getenv("ERP_USUARIO_ALTERACAO", os.getenv("ERP_USUARIO_SERVICO", "srvtotvsautboffice")),
    "ORGAOPUBLICO": "0",
    "VROUTRASDEDUCOESIRRF": "0",
    "CODRECEITA": "0000",
    "RAMOATIV": "4",
    "OPTANTEPELOSIMPLES": "1",
    "TIPORUA": "1",
    "TIPOBAIRRO": "14",
    "REGIMEISS": "N",
    "RETENCAOISS": "0",
    "USUARIOCRIACAO": os.getenv("ERP_USUARIO_SERVICO", "srvtotvsautboffice"),
    "PORTE": "3",
    "TIPOOPCOMBUSTIVEL": "3",
    "IDPAIS": "1",
    "NACIONALIDADE": "0",
    "CALCULAAVP": "0",
    "RECCREATEDBY": os.getenv("ERP_USUARIO_SERVICO", "srvtotvsautboffice"),
    "RECMODIFIEDBY": os.getenv("ERP_USUARIO_SERVICO", "srvtotvsautboffice"),
    "TIPORENDIMENTO": "000",
    "FORMATRIBUTACAO": "00",
    "SITUACAONIF": "0",
    "ISTOTVSMESSAGE": "0",
    "INOVAR_AUTO": "0",
    "APLICFORMULA": "F",
    "CODCFOCOLINTEGRACAO": "0",
    "DIGVERIFICDEBAUTOMATICO": "1",
    "ENTIDADEEXECUTORAPAA": "0",
    "APOSENTADOOUPENSIONISTA": "0",
    "SOCIOCOOPERADO": "0",
    "NAOUSARCALCSIMPIRPF": "NUNCA",
}
