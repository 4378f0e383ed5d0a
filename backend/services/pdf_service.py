"""
PDF rendering using PyMuPDF (fitz).

  1. DANFSe: fixed-position A4 layout of a normalized NFSe.
  2. Relatório de tributos: A4 landscape table of withheld taxes per tomador.

Layout coordinates are in millimetres and converted to PDF points on draw.
"""

import logging
from typing import List, Optional
import fitz  # PyMuPDF

from schemas.schemas import CanonicalFiscalDocument, RelatorioTributos
from services.format_service import formatar_cnpj, formatar_data, formatar_moeda
from services.nfse_service import normalize_nfse

logger = logging.getLogger(__name__)

_PT_PER_MM = 72 / 25.4
_FONT = "helv"
_FONT_BOLD = "hebo"


class _Canvas:
    """jsPDF-like drawing helper: mm coordinates, baseline text."""

    def __init__(self, page: fitz.Page):
        self.page = page

    @staticmethod
    def _p(x: float, y: float) -> fitz.Point:
        return fitz.Point(x * _PT_PER_MM, y * _PT_PER_MM)

    def rect(self, x: float, y: float, w: float, h: float):
        self.page.draw_rect(fitz.Rect(self._p(x, y), self._p(x + w, y + h)),
                            color=(0, 0, 0), width=0.5)

    def line(self, x1: float, y1: float, x2: float, y2: float):
        self.page.draw_line(self._p(x1, y1), self._p(x2, y2), color=(0, 0, 0), width=0.5)

    def text(self, s: str, x: float, y: float, size: float = 7,
             bold: bool = False, align: str = "left"):
        font = _FONT_BOLD if bold else _FONT
        if align == "center":
            x -= fitz.get_text_length(s, fontname=font, fontsize=size) / _PT_PER_MM / 2
        self.page.insert_text(self._p(x, y), s, fontsize=size, fontname=font)

    def label(self, caption: str, value: str, x: float, value_x: float, y: float):
        self.text(caption, x, y, bold=True)
        self.text(value, value_x, y)

    def textbox(self, s: str, x: float, y: float, w: float, h: float, size: float = 7,
                bold: bool = False, align: str = "left", lineheight: Optional[float] = None) -> list:
        """Word-wrapped text inside a box. Returns the lines that did not fit."""
        writer = fitz.TextWriter(self.page.rect)
        rest = writer.fill_textbox(
            fitz.Rect(self._p(x, y), self._p(x + w, y + h)), s,
            font=fitz.Font(_FONT_BOLD if bold else _FONT), fontsize=size, lineheight=lineheight,
            align=fitz.TEXT_ALIGN_CENTER if align == "center" else fitz.TEXT_ALIGN_LEFT,
            warn=None,
        )
        writer.write_text(self.page)
        return rest


# ── DANFSe ────────────────────────────────────────────────────────────────────

_LARGURA, _ALTURA, _MARGEM = 210, 297, 10
_CONTEUDO = _LARGURA - 2 * _MARGEM
_X0 = _MARGEM + 5
_CAIXA = _CONTEUDO - 10


def _na(value: str) -> str:
    return value or "N/A"


def _cabecalho(c: _Canvas, doc: CanonicalFiscalDocument, y: float) -> float:
    altura = 25
    c.rect(_X0, y, _CAIXA, altura)
    esquerda = _CAIXA * 0.65
    c.text("NOTA FISCAL DE SERVIÇOS ELETRÔNICA", _X0 + esquerda / 2, y + 13,
           size=11, bold=True, align="center")

    sep = _X0 + esquerda
    linha = altura / 3
    c.line(sep, y, sep, y + altura)
    c.line(sep, y + linha, _X0 + _CAIXA, y + linha)
    c.line(sep, y + 2 * linha, _X0 + _CAIXA, y + 2 * linha)

    c.text("Número da NFS-e:", sep + 2, y + 4, bold=True)
    c.text(doc.numero_nfse, sep + 2, y + 7)
    c.text("Data e Hora de Emissão:", sep + 2, y + linha + 3, bold=True)
    c.text(formatar_data(doc.data_emissao), sep + 2, y + linha + 6)
    c.text("Código de Verificação:", sep + 2, y + 2 * linha + 3, bold=True)
    c.text(_na(doc.codigo_verificacao), sep + 2, y + 2 * linha + 6)
    return y + altura


def _prestador(c: _Canvas, doc: CanonicalFiscalDocument, y: float) -> float:
    p = doc.prestador
    c.rect(_X0, y, _CAIXA, 40)
    c.text("PRESTADOR DE SERVIÇOS", _LARGURA / 2, y + 4, size=9, bold=True, align="center")

    razao = p.razao_social or "N/A"
    if len(razao) > 70:
        razao = razao[:70] + "..."
    endereco = f"{p.endereco}, {p.numero}" if p.endereco and p.numero else (p.endereco or p.numero)

    c.label("CPF/CNPJ:", _na(p.cnpj), _MARGEM + 8, _MARGEM + 28, y + 9)
    c.label("Inscrição Municipal:", _na(p.inscricao_municipal), _MARGEM + 110, _MARGEM + 155, y + 9)
    c.label("Razão Social:", razao, _MARGEM + 8, _MARGEM + 33, y + 14)
    c.label("Endereço:", _na(endereco), _MARGEM + 8, _MARGEM + 26, y + 19)
    c.label("CEP:", _na(p.cep), _MARGEM + 8, _MARGEM + 18, y + 24)
    c.label("Bairro:", _na(p.bairro), _MARGEM + 45, _MARGEM + 58, y + 24)
    c.label("Município:", _na(p.municipio), _MARGEM + 8, _MARGEM + 26, y + 29)
    c.label("Estado:", _na(p.uf), _MARGEM + 120, _MARGEM + 135, y + 29)
    c.label("E-mail:", _na(p.email), _MARGEM + 8, _MARGEM + 22, y + 34)
    return y + 40


def _tomador(c: _Canvas, doc: CanonicalFiscalDocument, y: float) -> float:
    t = doc.tomador
    c.rect(_X0, y, _CAIXA, 30)
    c.text("TOMADOR DE SERVIÇOS", _LARGURA / 2, y + 4, size=9, bold=True, align="center")

    endereco = t.endereco
    if t.numero:
        endereco += f", {t.numero}"
    if t.bairro:
        endereco += f" - {t.bairro}"

    c.label("CPF/CNPJ:", _na(t.cnpj), _MARGEM + 8, _MARGEM + 28, y + 9)
    if t.inscricao_municipal:
        c.label("Inscrição Municipal:", t.inscricao_municipal, _MARGEM + 110, _MARGEM + 155, y + 9)
    c.label("Razão Social:", _na(t.razao_social), _MARGEM + 8, _MARGEM + 33, y + 14)
    c.label("Endereço:", _na(endereco), _MARGEM + 8, _MARGEM + 26, y + 19)
    c.label("CEP:", _na(t.cep), _MARGEM + 8, _MARGEM + 18, y + 24)
    c.label("Município:", _na(t.municipio), _MARGEM + 45, _MARGEM + 65, y + 24)
    c.label("Estado:", _na(t.uf), _MARGEM + 140, _MARGEM + 155, y + 24)
    return y + 30


def _descricao(c: _Canvas, doc: CanonicalFiscalDocument, y: float) -> float:
    c.rect(_X0, y, _CAIXA, 50)
    c.text("DESCRIÇÃO DOS SERVIÇOS", _LARGURA / 2, y + 4, size=9, bold=True, align="center")
    descricao = doc.descricao_servicos or "Descrição não informada"
    texto = f"{doc.codigo_servico} - {descricao}" if doc.codigo_servico else descricao
    # room for 7 lines at 3.5 mm
    c.textbox(texto, _MARGEM + 8, y + 6, _CONTEUDO - 20, 25, size=6, lineheight=1.65)
    return y + 50


def _tabela(c: _Canvas, y: float, cabecalhos: List[str], valores: List[str]) -> float:
    coluna = _CAIXA / len(cabecalhos)
    for i, (cabecalho, valor) in enumerate(zip(cabecalhos, valores)):
        x = _X0 + i * coluna
        c.rect(x, y, coluna, 8)
        c.textbox(cabecalho, x + 1, y + 1, coluna - 2, 7, size=5, bold=True, align="center")
        c.rect(x, y + 8, coluna, 8)
        c.text(valor, x + coluna / 2, y + 13, size=5, align="center")
    return y + 16


def _valores(c: _Canvas, doc: CanonicalFiscalDocument, y: float) -> float:
    c.rect(_X0, y, _CAIXA, 12)
    c.text(f"VALOR TOTAL DA NOTA - R$ {formatar_moeda(doc.valor_total_nota)}",
           _LARGURA / 2, y + 8, size=11, bold=True, align="center")
    y += 12

    retencoes = doc.total_retencoes
    y = _tabela(
        c, y,
        ["Valor Retenções (R$)", "Base Cálculo ISS (R$)", "Valor Líquido (R$)",
         "Alíquota ISS (%)", "ISS Retido", "Valor do ISS (R$)"],
        [formatar_moeda(retencoes), formatar_moeda(doc.base_calculo),
         formatar_moeda(doc.valor_total_nota - retencoes), f"{doc.aliquota:.2f}",
         "Sim" if doc.iss_retido else "Não", formatar_moeda(doc.valor_iss)],
    )
    return _tabela(
        c, y,
        ["PIS (R$)", "COFINS (R$)", "INSS (R$)", "IR (R$)", "CSLL (R$)"],
        [formatar_moeda(v) for v in (doc.pis, doc.cofins, doc.inss, doc.ir, doc.csll)],
    )


def _outras(c: _Canvas, doc: CanonicalFiscalDocument, y: float) -> float:
    c.rect(_X0, y, _CAIXA, 25)
    c.text("OUTRAS INFORMAÇÕES", _LARGURA / 2, y + 4, size=9, bold=True, align="center")
    if doc.outras_informacoes:
        # room for 3 lines at 4 mm
        c.textbox(doc.outras_informacoes, _MARGEM + 8, y + 6, _CONTEUDO - 20, 13,
                  size=6, lineheight=1.9)
    return y + 25


def render_danfse(doc: CanonicalFiscalDocument) -> bytes:
    """Draw the DANFSe for a normalized NFSe and return the PDF bytes."""
    pdf = fitz.open()
    paper = fitz.paper_rect("a4")
    c = _Canvas(pdf.new_page(width=paper.width, height=paper.height))

    c.rect(_MARGEM, _MARGEM, _CONTEUDO, _ALTURA - 2 * _MARGEM)
    y = _MARGEM + 5
    for section in (_cabecalho, _prestador, _tomador, _descricao, _valores, _outras):
        y = section(c, doc, y)

    data = pdf.tobytes()
    pdf.close()
    logger.info(f"DANFSe {doc.numero_nfse or '?'} gerada: {len(data)} bytes")
    return data


def generate_danfse(raw: str | bytes) -> bytes:
    """Normalize a raw NFSe XML and render it. Normalization errors propagate."""
    return render_danfse(normalize_nfse(raw))


# ── Relatório de tributos ─────────────────────────────────────────────────────

_COLUNAS = [
    ("Número", 22), ("Emissão", 20), ("Fornecedor", 62), ("CNPJ", 34), ("Serviço", 24),
    ("ISS", 18), ("PIS", 16), ("COFINS", 18), ("INSS", 16), ("IRRF", 16), ("CSLL", 16),
]
_LINHA = 5


def _linha_relatorio(c: _Canvas, y: float, valores: List[str], bold: bool = False):
    x = 10
    for (_, largura), valor in zip(_COLUNAS, valores):
        limite = int(largura / 1.6)  # ~chars per mm at 6pt
        if len(valor) > limite:
            valor = valor[:limite - 1] + "."
        c.text(valor, x + 1, y, size=6, bold=bold)
        x += largura


def render_relatorio_tributos(relatorio: RelatorioTributos) -> bytes:
    pdf = fitz.open()
    paper = fitz.paper_rect("a4-l")
    altura_util = paper.height / _PT_PER_MM - 15

    def nova_pagina() -> tuple:
        c = _Canvas(pdf.new_page(width=paper.width, height=paper.height))
        c.text("RELATÓRIO DE TRIBUTOS - NFS-e", paper.width / _PT_PER_MM / 2, 14,
               size=12, bold=True, align="center")
        c.text(f"Período: {formatar_data(relatorio.data_inicial)} a "
               f"{formatar_data(relatorio.data_final)}  |  NFS-e: {relatorio.total_nfses}",
               10, 21, size=8)
        _linha_relatorio(c, 28, [nome for nome, _ in _COLUNAS], bold=True)
        c.line(10, 29.5, 10 + sum(w for _, w in _COLUNAS), 29.5)
        return c, 34

    c, y = nova_pagina()
    for empresa in relatorio.empresas:
        if y > altura_util - 2 * _LINHA:
            c, y = nova_pagina()
        c.text(f"{empresa.nome} - {formatar_cnpj(empresa.cnpj) or 'sem CNPJ'}", 10, y,
               size=8, bold=True)
        y += _LINHA
        for n in empresa.nfses:
            if y > altura_util:
                c, y = nova_pagina()
            _linha_relatorio(c, y, [
                n.numero, formatar_data(n.data_emissao or ""), n.fornecedor,
                formatar_cnpj(n.cnpj_fornecedor), formatar_moeda(n.valor_servico),
                formatar_moeda(n.valor_iss), formatar_moeda(n.valor_pis),
                formatar_moeda(n.valor_cofins), formatar_moeda(n.valor_inss),
                formatar_moeda(n.valor_irrf), formatar_moeda(n.valor_csll),
            ])
            y += _LINHA
        t = empresa.totais
        _linha_relatorio(c, y, [
            "Subtotal", "", "", "", formatar_moeda(t.valor_servico), formatar_moeda(t.valor_iss),
            formatar_moeda(t.valor_pis), formatar_moeda(t.valor_cofins),
            formatar_moeda(t.valor_inss), formatar_moeda(t.valor_irrf),
            formatar_moeda(t.valor_csll),
        ], bold=True)
        y += _LINHA * 2

    if y > altura_util:
        c, y = nova_pagina()
    t = relatorio.totais_gerais
    _linha_relatorio(c, y, [
        "TOTAL GERAL", "", "", "", formatar_moeda(t.valor_servico), formatar_moeda(t.valor_iss),
        formatar_moeda(t.valor_pis), formatar_moeda(t.valor_cofins), formatar_moeda(t.valor_inss),
        formatar_moeda(t.valor_irrf), formatar_moeda(t.valor_csll),
    ], bold=True)

    data = pdf.tobytes()
    logger.info(f"Relatório de tributos gerado: {pdf.page_count} página(s), {len(data)} bytes")
    pdf.close()
    return data
