import base64

import pytest

from services.nfse_service import COFINS_ALIASES, PIS_ALIASES, normalize_nfse
from services.xml_service import (
    MalformedInputError, decode_xml_input, find_tag_value, first_amount,
    parse_xml_tree, text, to_float,
)


def test_base64_input_normalizes_like_plain_xml(sp_xml):
    encoded = base64.b64encode(sp_xml.encode("utf-8")).decode("ascii")
    assert normalize_nfse(encoded).model_dump() == normalize_nfse(sp_xml).model_dump()


def test_base64_with_line_breaks_is_accepted(sp_xml):
    encoded = base64.encodebytes(sp_xml.encode("utf-8")).decode("ascii")
    assert "\n" in encoded.strip()
    assert normalize_nfse(encoded).numero_nfse == "4521"


def test_bytes_input_is_decoded_as_utf8(sp_xml):
    doc = normalize_nfse(sp_xml.encode("utf-8"))
    assert doc.prestador.municipio == "SÃO PAULO"


def test_bom_and_control_characters_are_removed():
    raw = "\ufeff  <nota><obs>linha\x01um\x1f</obs></nota>"
    assert decode_xml_input(raw) == "<nota><obs>linhaum</obs></nota>"


def test_bom_inside_base64_payload_is_removed():
    encoded = base64.b64encode("\ufeff<nota/>".encode("utf-8")).decode("ascii")
    assert decode_xml_input(encoded) == "<nota/>"


def test_namespaces_are_stripped(sp_xml):
    root = parse_xml_tree(sp_xml)
    assert root.tag == "NFSe"
    assert text(root, "infNFSe/nNFSe") == "4521"


@pytest.mark.parametrize("raw", [
    "isto não é xml",
    "not an xml document!!",
    "",
    "<nota><aberta></nota>",
    b"\xff\xfe<nota/>",
    base64.b64encode(b"\xff\xfe\xfd").decode("ascii"),
])
def test_malformed_input(raw):
    with pytest.raises(MalformedInputError):
        parse_xml_tree(raw)


def test_recursive_lookup_finds_uppercase_tag_at_any_depth():
    root = parse_xml_tree("<a><b><c><d><COFINS>12.34</COFINS></d></c></b></a>")
    assert find_tag_value(root, COFINS_ALIASES) == 12.34


def test_recursive_lookup_ignores_case_on_second_pass():
    root = parse_xml_tree("<a><x><Cofins>3.00</Cofins></x></a>")
    assert find_tag_value(root, COFINS_ALIASES) == 3.0


def test_recursive_lookup_skips_zero_values():
    root = parse_xml_tree("<a><vPis>0.00</vPis><y><PIS>7.00</PIS></y></a>")
    assert find_tag_value(root, PIS_ALIASES) == 7.0


def test_recursive_lookup_defaults_to_zero():
    root = parse_xml_tree("<a><b>1</b></a>")
    assert find_tag_value(root, PIS_ALIASES) == 0.0


def test_first_amount_takes_first_parseable_candidate():
    assert first_amount("", "abc", "12.5", "99") == 12.5
    assert first_amount("0", "10") == 0.0
    assert first_amount("nan", "3") == 3.0
    assert first_amount("", None) == 0.0


def test_first_amount_clamps_negatives():
    assert first_amount("-5.00", "10") == 0.0


def test_to_float():
    assert to_float(" 1.5 ") == 1.5
    assert to_float("1,5") is None
    assert to_float("inf") is None
    assert to_float(None) is None


def test_base64_decodes_to_same_text_as_plain_input():
    xml = '\n  <?xml version="1.0"?>\n<nota><n>1</n></nota>\n'
    encoded = base64.b64encode(xml.encode("utf-8")).decode("ascii")
    assert decode_xml_input(encoded) == decode_xml_input(xml)
    assert text(parse_xml_tree(encoded), "n") == "1"
