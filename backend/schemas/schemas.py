from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class Prestador(BaseModel):
    cnpj: str = ""
    razao_social: str = ""
    endereco: str = ""
    numero: str = ""
    complemento: str = ""
    bairro: str = ""
    cep: str = ""
    municipio: str = ""
    uf: str = ""
    inscricao_municipal: str = ""
    inscricao_estadual: str = ""
    telefone: str = ""
    email: str = ""


class Tomador(BaseModel):
    cnpj: str = ""
    razao_social: str = ""
    endereco: str = ""
    numero: str = ""
    bairro: str = ""
    cep: str = ""
    municipio: str = ""
    uf: str = ""
    inscricao_municipal: str = ""
    inscricao_estadual: str = ""


class CanonicalFiscalDocument(BaseModel):
    """Normalized NFSe, independent of the issuing municipality's layout."""
    numero_nfse: str = ""
    data_emissao: str = ""
    codigo_verificacao: str = ""
    prestador: Prestador = Field(default_factory=Prestador)
    tomador: Tomador = Field(default_factory=Tomador)
    descricao_servicos: str = ""
    observacoes: str = ""
    codigo_servico: str = ""
    valor_servicos: float = 0.0
    valor_deducoes: float = 0.0
    base_calculo: float = 0.0
    aliquota: float = 0.0
    valor_iss: float = 0.0
    iss_retido: bool = False
    valor_total_nota: float = 0.0
    pis: float = 0.0
    cofins: float = 0.0
    inss: float = 0.0
    ir: float = 0.0
    csll: float = 0.0
    outras_informacoes: str = ""

    @property
    def total_retencoes(self) -> float:
        return self.pis + self.cofins + self.inss + self.ir + self.csll


class CNPJData(BaseModel):
    cnpj: str
    nome: str = ""
    fantasia: str = ""
    logradouro: str = ""
    numero: str = ""
    bairro: str = ""
    municipio: str = ""
    uf: str = ""
    cep: str = ""
    telefone: str = ""
    email: str = ""
    situacao: str = ""
    status: str = ""
    codigo_municipio: str = ""
    inscricao_municipal: str = ""


class ERPResult(BaseModel):
    success: bool
    message: str
    erp_code: Optional[str] = None


class SoapDebugEntry(BaseModel):
    timestamp: datetime
    cnpj: str
    endpoint: str
    request: str
    status_code: Optional[int] = None
    response: str = ""
    success: bool = False
    message: str = ""


# ── Relatórios ────────────────────────────────────────────────────────────────

class TributosNfse(BaseModel):
    valor_iss: float = 0.0
    valor_pis: float = 0.0
    valor_cofins: float = 0.0
    valor_inss: float = 0.0
    valor_irrf: float = 0.0
    valor_csll: float = 0.0


class TotaisTributos(TributosNfse):
    valor_servico: float = 0.0


class NfseTributosLinha(TributosNfse):
    numero: str = ""
    data_emissao: Optional[str] = None
    fornecedor: str = ""
    cnpj_fornecedor: str = ""
    valor_servico: float = 0.0


class EmpresaTributos(BaseModel):
    nome: str
    cnpj: str = ""
    nfses: List[NfseTributosLinha] = []
    totais: TotaisTributos = Field(default_factory=TotaisTributos)


class RelatorioTributos(BaseModel):
    data_inicial: str
    data_final: str
    empresa: Optional[str] = None
    empresas: List[EmpresaTributos] = []
    totais_gerais: TotaisTributos = Field(default_factory=TotaisTributos)
    total_nfses: int = 0


class NfseResumoLinha(BaseModel):
    numero: str = ""
    data_emissao: Optional[str] = None
    fornecedor: str = ""
    cnpj_fornecedor: str = ""
    valor: float = 0.0


class EmpresaResumo(BaseModel):
    nome: str
    cnpj: str = ""
    nfses: List[NfseResumoLinha] = []
    total: float = 0.0


class RelatorioNfse(BaseModel):
    data_inicial: str
    data_final: str
    empresa: Optional[str] = None
    empresas: List[EmpresaResumo] = []
    total_geral: float = 0.0
    total_nfses: int = 0
