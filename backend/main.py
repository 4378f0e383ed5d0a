"""
Linha de comando do normalizador de NFS-e e do pré-cadastro no ERP.

Exemplos:
  python main.py normalizar nota.xml
  python main.py danfse nota.xml -o danfse.pdf
  python main.py tributos nota1.xml nota2.xml --inicio 2025-01-01 --fim 2025-01-31 --pdf tributos.pdf
  python main.py pre-cadastro 12.345.678/0001-95
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from services.erp_service import ERPService
from services.format_service import somente_digitos
from services.nfse_service import normalize_nfse
from services.pdf_service import render_danfse, render_relatorio_tributos
from services.report_service import gerar_relatorio_tributos
from services.soap_debug_log import SoapDebugLog
from services.xml_service import NfseError

logging.basicConfig(level=logging.INFO,
                    format="%(asctime)s  %(levelname)s  %(name)s — %(message)s")
logger = logging.getLogger(__name__)


def cmd_normalizar(args) -> int:
    doc = normalize_nfse(Path(args.arquivo).read_bytes())
    print(doc.model_dump_json(indent=2))
    return 0


def cmd_danfse(args) -> int:
    doc = normalize_nfse(Path(args.arquivo).read_bytes())
    saida = Path(args.output or f"danfse_{doc.numero_nfse or Path(args.arquivo).stem}.pdf")
    saida.write_bytes(render_danfse(doc))
    logger.info(f"DANFSe gravada em {saida}")
    return 0


def cmd_tributos(args) -> int:
    rows = []
    for arquivo in args.arquivos:
        path = Path(arquivo)
        row = {"numero_nfse": path.stem, "xml_content": path.read_bytes(),
               "cnpj_tomadora": args.empresa}
        try:
            doc = normalize_nfse(row["xml_content"])
        except NfseError as e:
            # the report still lists the file, with zeroed taxes
            logger.warning(f"{path.name}: {e}")
        else:
            row.update({
                "numero_nfse": doc.numero_nfse or path.stem,
                "data_emissao": doc.data_emissao or None,
                "fornecedor": doc.prestador.razao_social,
                "cnpj_fornecedor": doc.prestador.cnpj,
                "valor_total_nfse": doc.valor_total_nota,
                "empresa_tomadora": doc.tomador.razao_social,
                "cnpj_tomadora": somente_digitos(doc.tomador.cnpj) or args.empresa,
            })
        rows.append(row)
    relatorio = gerar_relatorio_tributos(rows, args.inicio, args.fim, args.empresa)
    if args.pdf:
        Path(args.pdf).write_bytes(render_relatorio_tributos(relatorio))
        logger.info(f"Relatório gravado em {args.pdf}")
    print(relatorio.model_dump_json(indent=2))
    return 0


def cmd_pre_cadastro(args) -> int:
    debug_log = SoapDebugLog()
    service = ERPService(debug_log)
    result = asyncio.run(service.pre_cadastrar_cnpj(args.cnpj))
    print(result.model_dump_json(indent=2))
    if args.debug:
        for entry in debug_log.listar(args.cnpj):
            print(entry.model_dump_json(indent=2))
    return 0 if result.success else 1


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="NFS-e: normalização, DANFSe, relatórios e pré-cadastro no ERP")
    sub = p.add_subparsers(dest="comando", required=True)

    s = sub.add_parser("normalizar", help="Imprime a NFS-e normalizada em JSON")
    s.add_argument("arquivo", help="XML da NFS-e (texto ou base64)")
    s.set_defaults(func=cmd_normalizar)

    s = sub.add_parser("danfse", help="Gera o PDF da DANFSe")
    s.add_argument("arquivo", help="XML da NFS-e (texto ou base64)")
    s.add_argument("-o", "--output", default=None, help="Arquivo PDF de saída")
    s.set_defaults(func=cmd_danfse)

    s = sub.add_parser("tributos", help="Relatório de tributos retidos")
    s.add_argument("arquivos", nargs="+", help="XMLs de NFS-e")
    s.add_argument("--inicio", default="", help="Data inicial AAAA-MM-DD")
    s.add_argument("--fim", default="", help="Data final AAAA-MM-DD")
    s.add_argument("--empresa", default=None, help="CNPJ da empresa tomadora")
    s.add_argument("--pdf", default=None, help="Grava também o relatório em PDF")
    s.set_defaults(func=cmd_tributos)

    s = sub.add_parser("pre-cadastro", help="Consulta o CNPJ e pré-cadastra o fornecedor no ERP")
    s.add_argument("cnpj")
    s.add_argument("--debug", action="store_true", help="Mostra o envelope SOAP e a resposta")
    s.set_defaults(func=cmd_pre_cadastro)
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except NfseError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
