from __future__ import annotations

import codecs
import logging
import re
from typing import Optional

from site_news_scraper.errors import DecodingFailed

logger = logging.getLogger(__name__)


META_SCAN_BYTES = 2048

_BOMS = (
    (codecs.BOM_UTF8, "utf-8"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
)

_HEADER_CHARSET_RE = re.compile(r"charset=([^;\s]+)", re.IGNORECASE)
_META_CHARSET_RE = re.compile(r"""<meta[^>]+charset=["']?([^"'\s/>;]+)""", re.IGNORECASE)
_META_HTTP_EQUIV_RE = re.compile(
    r"""<meta[^>]+http-equiv=["']?content-type["']?[^>]+content=[^>]*charset=([^"'\s;>]+)""",
    re.IGNORECASE,
)

# GB2312 and GBK are both subsets of GB18030.
_WIDENED = {
    "gb2312": "gb18030",
    "gbk": "gb18030",
}


def normalize_charset(label: str | None) -> Optional[str]:
    """Map a declared charset label to a Python codec name, or None if unknown."""

    if not label:
        return None
    label = label.strip().strip("\"'").lower()
    if not label:
        return None
    try:
        name = codecs.lookup(label).name
    except LookupError:
        return None
    return _WIDENED.get(name, name)


def charset_from_content_type(content_type: str | None) -> Optional[str]:
    if not content_type:
        return None
    m = _HEADER_CHARSET_RE.search(content_type)
    if not m:
        return None
    return normalize_charset(m.group(1))


def charset_from_bom(data: bytes) -> Optional[str]:
    if len(data) < 2:
        return None
    for bom, name in _BOMS:
        if data.startswith(bom):
            return name
    return None


def charset_from_meta(data: bytes) -> Optional[str]:
    head = data[:META_SCAN_BYTES].decode("utf-8", errors="ignore")
    for pattern in (_META_CHARSET_RE, _META_HTTP_EQUIV_RE):
        m = pattern.search(head)
        if m:
            found = normalize_charset(m.group(1))
            if found:
                return found
    return None


def candidate_encodings(data: bytes, content_type: str | None = None) -> list[str]:
    """Header charset, BOM, ``<meta>`` declaration, then UTF-8, without repeats."""

    out: list[str] = []
    for enc in (
        charset_from_content_type(content_type),
        charset_from_bom(data),
        charset_from_meta(data),
        "utf-8",
    ):
        if enc and enc not in out:
            out.append(enc)
    return out


def _strip_bom(data: bytes, encoding: str) -> bytes:
    for bom, name in _BOMS:
        if name == encoding and data.startswith(bom):
            return data[len(bom):]
    return data


def decode_markup(data: bytes, content_type: str | None = None, url: str | None = None) -> str:
    """Decode ``data`` with the first candidate encoding that succeeds strictly.

    Raises DecodingFailed naming the most authoritative candidate when none do.
    """

    candidates = candidate_encodings(data, content_type)
    for enc in candidates:
        try:
            text = _strip_bom(data, enc).decode(enc)
        except (UnicodeDecodeError, LookupError):
            logger.debug("Decoding %s as %s failed", url or "<payload>", enc)
            continue
        return text.lstrip("\ufeff")
    raise DecodingFailed(candidates[0], url)
