import re
from datetime import datetime

# IBGE municipality codes seen on the NFSe layouts we receive
_MUNICIPIOS_IBGE = {
    '3106200': 'BELO HORIZONTE',
    '3550308': 'SÃO PAULO',
    '3509502': 'CAMPINAS',
    '2927408': 'SALVADOR',
}


def somente_digitos(value: str | None) -> str:
    return re.sub(r'\D', '', value or '')


def formatar_cnpj(cnpj: str) -> str:
    """'12345678000195' -> '12.345.678/0001-95'. Other lengths are returned unchanged."""
    digits = somente_digitos(cnpj)
    if len(digits) == 14:
        return f'{digits[:2]}.{digits[2:5]}.{digits[5:8]}/{digits[8:12]}-{digits[12:]}'
    return cnpj


def formatar_cep(cep: str) -> str:
    """'01310100' -> '01310-100'. Other lengths are returned unchanged."""
    digits = somente_digitos(cep)
    if len(digits) == 8:
        return f'{digits[:5]}-{digits[5:]}'
    return cep


def nome_municipio(codigo: str) -> str:
    return _MUNICIPIOS_IBGE.get((codigo or '').strip(), '')


def formatar_moeda(value: float) -> str:
    """pt-BR money without the currency symbol: 1234.5 -> '1.234,50'."""
    return f'{value:,.2f}'.replace(',', '_').replace('.', ',').replace('_', '.')


def formatar_data(value: str) -> str:
    """ISO date/datetime -> 'dd/mm/aaaa'. Unparseable input is returned as received."""
    if not value:
        return ''
    try:
        return datetime.fromisoformat(value.strip()[:19]).strftime('%d/%m/%Y')
    except ValueError:
        return value
