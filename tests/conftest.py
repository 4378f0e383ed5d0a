import pytest

SAO_PAULO_XML = """<?xml version="1.0" encoding="UTF-8"?>
<NFSe xmlns="http://www.sped.fazenda.gov.br/nfse" versao="1.00">
  <infNFSe Id="NFS35503082212345678000195000000000452125031234567890">
    <xLocEmi>São Paulo</xLocEmi>
    <xLocPrestacao>São Paulo</xLocPrestacao>
    <nNFSe>4521</nNFSe>
    <cVerif>AB12CD34</cVerif>
    <emit>
      <CNPJ>12345678000195</CNPJ>
      <IM>12345</IM>
      <xNome>ACME SERVICOS LTDA</xNome>
      <enderNac>
        <xLgr>AV PAULISTA</xLgr>
        <nro>1000</nro>
        <xBairro>BELA VISTA</xBairro>
        <cMun>3550308</cMun>
        <UF>SP</UF>
        <CEP>01310100</CEP>
      </enderNac>
      <fone>1133334444</fone>
      <email>contato@acme.com.br</email>
    </emit>
    <DPS versao="1.00">
      <infDPS>
        <dhEmi>2025-03-10T14:30:00-03:00</dhEmi>
        <toma>
          <CNPJ>98765432000110</CNPJ>
          <xNome>CLIENTE SA</xNome>
          <end>
            <endNac><cMun>3509502</cMun><CEP>13010000</CEP><UF>SP</UF></endNac>
            <xLgr>RUA A</xLgr>
            <nro>10</nro>
            <xBairro>CENTRO</xBairro>
          </end>
        </toma>
        <serv>
          <cServ><cTribNac>010101</cTribNac><xDescServ>Consultoria em sistemas</xDescServ></cServ>
        </serv>
        <valores>
          <vServPrest><vServ>150.00</vServ></vServPrest>
          <trib>
            <tribMun><tribISSQN>1</tribISSQN><vISSQN>7.50</vISSQN></tribMun>
            <tribFed>
              <piscofins><vPis>0.98</vPis><vCofins>4.50</vCofins></piscofins>
              <vRetIRRF>2.25</vRetIRRF>
              <vRetCSLL>1.50</vRetCSLL>
            </tribFed>
          </trib>
        </valores>
      </infDPS>
    </DPS>
  </infNFSe>
</NFSe>
"""

BELO_HORIZONTE_XML = """<NFSe xmlns="http://www.sped.fazenda.gov.br/nfse">
  <infNFSe>
    <xLocEmi>BELO HORIZONTE</xLocEmi>
    <nNFSe>310</nNFSe>
    <cVerif>BH310</cVerif>
    <emit>
      <CNPJ>11222333000181</CNPJ>
      <xNome>MINAS TECH LTDA</xNome>
      <enderNac><cMun>3106200</cMun><UF>MG</UF><CEP>30130000</CEP></enderNac>
    </emit>
    <DPS>
      <infDPS>
        <dhEmi>2025-02-01T08:00:00-03:00</dhEmi>
        <toma><CNPJ>98765432000110</CNPJ><xNome>CLIENTE SA</xNome></toma>
        <serv><cServ><cTribNac>170101</cTribNac><xDescServ>Treinamento</xDescServ></cServ></serv>
        <valores>
          <vServPrest><vServ>1000.00</vServ></vServPrest>
          <vBC>1000.00</vBC>
          <pAliqAplic>5.00</pAliqAplic>
          <vISSQN>50.00</vISSQN>
          <tpRetISSQN>1</tpRetISSQN>
          <vLiq>950.00</vLiq>
        </valores>
      </infDPS>
    </DPS>
  </infNFSe>
</NFSe>
"""

BARUERI_XML = """<NFSe>
  <infNFSe>
    <xLocEmi>BARUERI</xLocEmi>
    <xLocPrestacao>SANTANA DE PARNAIBA</xLocPrestacao>
    <nNFSe>7788</nNFSe>
    <dhProc>2025-04-02T11:00:00-03:00</dhProc>
    <xTribNac>Serviço de limpeza</xTribNac>
    <emit>
      <CNPJ>22333444000155</CNPJ>
      <xNome>LIMPA BEM LTDA</xNome>
      <enderNac><xLgr>AL RIO NEGRO</xLgr><nro>500</nro><cMun>3505708</cMun><UF>SP</UF></enderNac>
    </emit>
    <valores>
      <vBC>500.00</vBC>
      <vISSQN>10.00</vISSQN>
      <vLiq>480.00</vLiq>
      <xOutInf>Retenção conforme contrato</xOutInf>
    </valores>
  </infNFSe>
</NFSe>
"""

GENERIC_XML = """<NFSe>
  <infNFSe>
    <xLocEmi>Salvador</xLocEmi>
    <nDFSe>77</nDFSe>
    <dhProc>2025-05-20T16:45:00-03:00</dhProc>
    <emit>
      <CNPJ>33444555000166</CNPJ>
      <xNome>BAHIA SERVICOS</xNome>
      <enderNac><cMun>2927408</cMun><UF>BA</UF></enderNac>
    </emit>
    <valores>
      <vServ>300.00</vServ>
      <vLiq>290.00</vLiq>
    </valores>
  </infNFSe>
</NFSe>
"""

LEGACY_NFE_XML = """<NFe xmlns="http://www.prefeitura.sp.gov.br/nfe">
  <ChaveNFe>
    <InscricaoPrestador>39616924</InscricaoPrestador>
    <NumeroNFe>1042</NumeroNFe>
    <CodigoVerificacao>XYZ98765</CodigoVerificacao>
  </ChaveNFe>
  <DataEmissaoNFe>2024-11-05T10:00:00</DataEmissaoNFe>
  <CPFCNPJPrestador><CNPJ>12345678000195</CNPJ></CPFCNPJPrestador>
  <RazaoSocialPrestador>ACME SERVICOS LTDA</RazaoSocialPrestador>
  <EnderecoPrestador>
    <Logradouro>AV PAULISTA</Logradouro>
    <NumeroEndereco>1000</NumeroEndereco>
    <Cidade>3550308</Cidade>
    <UF>SP</UF>
    <CEP>01310100</CEP>
  </EnderecoPrestador>
  <CPFCNPJTomador><CNPJ>98765432000110</CNPJ></CPFCNPJTomador>
  <RazaoSocialTomador>CLIENTE SA</RazaoSocialTomador>
  <ValorServicos>2000.00</ValorServicos>
  <CodigoServico>02800</CodigoServico>
  <AliquotaServicos>0.05</AliquotaServicos>
  <ValorISS>100.00</ValorISS>
  <ISSRetido>true</ISSRetido>
  <Discriminacao>Desenvolvimento de software</Discriminacao>
</NFe>
"""

ROOT_NFE_XML = """<root>
  <Nfe>
    <InfNFe>
      <NumeroNfe>889</NumeroNfe>
      <CodigoVerificacao>K7L8</CodigoVerificacao>
      <DataEmissao>2025-01-20T09:15:00</DataEmissao>
      <ValoresNfe>
        <BaseCalculo>200.50</BaseCalculo>
        <Aliquota>2.00</Aliquota>
        <ValorIss>4.01</ValorIss>
        <ValorLiquidoNfe>200.50</ValorLiquidoNfe>
      </ValoresNfe>
      <PrestadorServico>
        <IdentificacaoPrestador>
          <CpfCnpj><Cnpj>11222333000181</Cnpj></CpfCnpj>
          <InscricaoMunicipal>555</InscricaoMunicipal>
        </IdentificacaoPrestador>
        <RazaoSocial>BETA LTDA</RazaoSocial>
        <Endereco>
          <Endereco>RUA B</Endereco>
          <NumeroEndereco>20</NumeroEndereco>
          <Bairro>CENTRO</Bairro>
          <Cidade>Barueri</Cidade>
          <Uf>SP</Uf>
          <Cep>06401000</Cep>
        </Endereco>
      </PrestadorServico>
      <DeclaracaoPrestacaoServico>
        <InfDeclaracaoPrestacaoServico>
          <Servico>
            <Valores>
              <ValorServicos>200.50</ValorServicos>
              <ValorPis>1.30</ValorPis>
            </Valores>
            <IssRetido>2</IssRetido>
            <CodigoServico>7.10</CodigoServico>
            <Discriminacao>Manutenção predial</Discriminacao>
          </Servico>
          <TomadorServico>
            <IdentificacaoTomador><CpfCnpj><Cnpj>98765432000110</Cnpj></CpfCnpj></IdentificacaoTomador>
            <RazaoSocial>CLIENTE SA</RazaoSocial>
          </TomadorServico>
        </InfDeclaracaoPrestacaoServico>
      </DeclaracaoPrestacaoServico>
    </InfNFe>
  </Nfe>
</root>
"""


@pytest.fixture
def sp_xml():
    return SAO_PAULO_XML


@pytest.fixture
def bh_xml():
    return BELO_HORIZONTE_XML


@pytest.fixture
def barueri_xml():
    return BARUERI_XML


@pytest.fixture
def generic_xml():
    return GENERIC_XML


@pytest.fixture
def legacy_nfe_xml():
    return LEGACY_NFE_XML


@pytest.fixture
def root_nfe_xml():
    return ROOT_NFE_XML
