import httpx
import logging
from typing import Optional
from config import RECEITA_WS_API, CNPJ_TIMEOUT, ERP_USER_AGENT
from schemas.schemas import CNPJData
from services.format_service import somente_digitos

logger = logging.getLogger(__name__)


class CNPJLookupError(Exception):
    pass


_FIELDS = ("nome", "fantasia", "logradouro", "numero", "bairro", "municipio", "uf",
           "cep", "telefone", "email", "situacao", "status", "codigo_municipio",
           "inscricao_municipal")


async def consultar_cnpj(cnpj: str,
                         transport: Optional[httpx.AsyncBaseTransport] = None) -> CNPJData:
    """Look a company up on ReceitaWS. Raises CNPJLookupError on any failure."""
    clean = somente_digitos(cnpj)
    if len(clean) != 14:
        raise CNPJLookupError("CNPJ deve ter 14 dígitos")

    logger.info(f"Consultando CNPJ {clean}")
    try:
        async with httpx.AsyncClient(timeout=CNPJ_TIMEOUT, transport=transport) as client:
            resp = await client.get(
                f"{RECEITA_WS_API}/{clean}",
                headers={"Accept": "application/json", "User-Agent": ERP_USER_AGENT},
            )
    except httpx.TimeoutException as e:
        logger.warning(f"ReceitaWS timeout — CNPJ {clean}")
        raise CNPJLookupError("Tempo limite excedido ao consultar o CNPJ") from e
    except httpx.HTTPError as e:
        logger.error(f"ReceitaWS error: {e}")
        raise CNPJLookupError(f"Erro de conexão ao consultar o CNPJ: {e}") from e

    if resp.status_code == 429:
        raise CNPJLookupError("Muitas consultas realizadas. Tente novamente em alguns minutos.")
    if not resp.is_success:
        raise CNPJLookupError(f"Erro na consulta: {resp.status_code}")

    try:
        data = resp.json()
    except ValueError as e:
        raise CNPJLookupError("Resposta inválida da consulta de CNPJ") from e
    if not isinstance(data, dict):
        raise CNPJLookupError("Resposta inválida da consulta de CNPJ")

    if data.get("status") == "ERROR":
        raise CNPJLookupError(data.get("message") or "CNPJ não encontrado")

    logger.info(f"CNPJ {clean}: {data.get('nome')} ({data.get('situacao')})")
    return CNPJData(cnpj=clean, **{k: str(data.get(k) or "") for k in _FIELDS})
