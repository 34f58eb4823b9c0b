"""Locate JavaScript object literals and data scripts inside page text."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

DATAPICKUP_SCRIPT = re.compile(r"datapickupv5\.php", re.IGNORECASE)
QUOTES = ("'", '"')


def extract_js_object(text: Optional[str], variable_path: str) -> Optional[str]:
    """Return the balanced ``{...}`` literal assigned to ``variable_path``.

    The first case-insensitive occurrence of the path is taken, then the
    next ``=`` and the next ``{`` after it. Braces inside single- or
    double-quoted strings do not count. A quote preceded by one backslash
    does not close its string; runs of backslashes are not interpreted.
    """
    if not text or not variable_path:
        return None
    match = re.search(re.escape(variable_path), text, flags=re.IGNORECASE)
    if match is None:
        return None
    equals = text.find("=", match.start())
    if equals < 0:
        return None
    start = text.find("{", equals)
    if start < 0:
        return None
    return read_balanced_braces(text, start)


def read_balanced_braces(text: str, start: int) -> Optional[str]:
    """Scan from the ``{`` at ``start`` to its matching ``}`` inclusive."""
    depth = 0
    quote: Optional[str] = None
    for index in range(start, len(text)):
        char = text[index]
        if quote is not None:
            if char == quote and text[index - 1] != "\\":
                quote = None
            continue
        if char in QUOTES:
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def find_datapickup_url(html: Optional[str], base_url: str) -> Optional[str]:
    """Return the absolute URL of the venue's ``datapickupv5.php`` script."""
    if not html:
        return None
    soup = BeautifulSoup(html, "html.parser")
    for script in soup.find_all("script", src=True):
        src = str(script["src"]).strip()
        if DATAPICKUP_SCRIPT.search(src):
            return urljoin(base_url.rstrip("/") + "/", src)
    return None
