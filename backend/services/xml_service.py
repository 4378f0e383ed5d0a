"""
Raw XML handling shared by the NFSe normalizer and the tax reports.

Stored NFSe blobs arrive either as plain XML or base64, sometimes with a BOM
or control characters picked up along the way. Everything here works on
namespace-free trees: tags are reduced to their local names right after
parsing, so lookups use plain paths like 'infNFSe/DPS/infDPS'.
"""

import base64
import binascii
import logging
import math
import re
import xml.etree.ElementTree as ET
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]')
_BOM = '\ufeff'


class NfseError(Exception):
    """Base error for NFSe normalization."""


class MalformedInputError(NfseError):
    """Raw input could not be decoded or parsed as XML."""


class UnrecognizedSchemaError(NfseError):
    """XML parsed fine but matches none of the known NFSe layouts."""


def decode_xml_input(raw: str | bytes) -> str:
    """Return clean XML text from plain or base64-encoded input."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise MalformedInputError(f'Conteúdo não está em UTF-8: {e}') from e

    text = (raw or '').strip().lstrip(_BOM).strip()
    if not text.startswith('<'):
        try:
            decoded = base64.b64decode(''.join(text.split()), validate=True).decode('utf-8')
        except (binascii.Error, ValueError) as e:
            raise MalformedInputError(f'Conteúdo não é XML nem base64 válido: {e}') from e
        text = decoded.strip().lstrip(_BOM).strip()

    return _CONTROL_CHARS.sub('', text)


def _local(tag) -> str:
    if not isinstance(tag, str):
        return ''
    return tag.split('}', 1)[-1] if '}' in tag else tag


def parse_xml_tree(raw: str | bytes) -> ET.Element:
    """Decode and parse raw input into a namespace-free element tree."""
    text = decode_xml_input(raw)
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise MalformedInputError(f'XML inválido: {e}') from e

    for el in root.iter():
        el.tag = _local(el.tag)
    return root


# ── Lookups ───────────────────────────────────────────────────────────────────

def text(el: Optional[ET.Element], path: str = '') -> str:
    """Stripped text of el/path, '' when the node or its text is missing."""
    if el is None:
        return ''
    node = el.find(path) if path else el
    if node is None or node.text is None:
        return ''
    return node.text.strip()


def first_text(*candidates: str) -> str:
    for value in candidates:
        if value:
            return value
    return ''


def to_float(val) -> Optional[float]:
    if val is None:
        return None
    try:
        number = float(str(val).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def first_amount(*candidates: str) -> float:
    """First candidate that parses as a number; negatives clamp to 0."""
    for value in candidates:
        number = to_float(value) if value else None
        if number is not None:
            return max(number, 0.0)
    return 0.0


def find_first_text(root: ET.Element, tag: str) -> str:
    """Text of the first element named `tag` anywhere under root, document order."""
    for el in root.iter(tag):
        value = text(el)
        if value:
            return value
    return ''


def find_tag_value(root: ET.Element, aliases: Iterable[str]) -> float:
    """
    Look a tax amount up anywhere in the tree by tag alias.

    Aliases are tried in order with an exact tag match, then again ignoring
    case; the first alias that yields a non-zero amount wins.
    """
    aliases = list(aliases)
    for case_sensitive in (True, False):
        for alias in aliases:
            value = _search(root, alias, case_sensitive)
            if value:
                logger.debug(f'Tributo encontrado via <{alias}>: {value}')
                return value
    return 0.0


def _search(root: ET.Element, alias: str, case_sensitive: bool) -> float:
    wanted = alias if case_sensitive else alias.lower()
    for el in root.iter():
        tag = el.tag if case_sensitive else el.tag.lower()
        if tag != wanted:
            continue
        number = to_float(text(el))
        if number and number > 0:
            return number
    return 0.0


def find_positive_ci(root: ET.Element, aliases: Iterable[str]) -> float:
    """Case-insensitive alias search keeping only values > 0 (report extraction)."""
    for alias in aliases:
        value = _search(root, alias, case_sensitive=False)
        if value > 0:
            return value
    return 0.0
