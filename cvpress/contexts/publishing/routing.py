"""
Landing page routing.

The landing page redirects client-side; this module is the same rule in
Python so the preview server and the tests can exercise it. Keep the two in
step with templates/index.html.jinja.

Rule:
1. ``?lang=<code>`` naming a published language redirects to ``<code>.pdf``
2. Otherwise, only when auto-detection is opted in, the first client
   language preference that is published wins
3. Otherwise the selection page is shown
"""

from typing import Iterable, List, Optional
from urllib.parse import parse_qs

LANG_PARAM = "lang"


def match_language(tag: str, languages: Iterable[str]) -> Optional[str]:
    """
    Match a language tag against published language codes.

    Exact match first, then the primary subtag ("pt-BR" -> "pt").
    """
    if not tag:
        return None
    available = [code.lower() for code in languages]
    tag = tag.strip().lower()
    if tag in available:
        return tag
    primary = tag.split("-")[0]
    return primary if primary in available else None


def parse_accept_language(header: Optional[str]) -> List[str]:
    """
    Parse an Accept-Language header into tags ordered by preference.

    Example:
        >>> parse_accept_language("pt-BR,pt;q=0.9,en;q=0.8")
        ['pt-br', 'pt', 'en']
    """
    if not header:
        return []

    weighted = []
    for position, part in enumerate(header.split(",")):
        pieces = [p.strip() for p in part.split(";")]
        tag = pieces[0].lower()
        if not tag or tag == "*":
            continue
        quality = 1.0
        for param in pieces[1:]:
            if param.startswith("q="):
                try:
                    quality = float(param[2:])
                except ValueError:
                    quality = 0.0
        if quality > 0:
            weighted.append((-quality, position, tag))

    return [tag for _, _, tag in sorted(weighted)]


def resolve_route(
    languages: Iterable[str],
    query_string: str = "",
    accept_language: Optional[str] = None,
    auto_detect_language: bool = False,
) -> Optional[str]:
    """
    Decide where a visit to the site root goes.

    Args:
        languages: Published language codes
        query_string: Raw query string of the request (with or without "?")
        accept_language: Client language preferences (Accept-Language header)
        auto_detect_language: Honour client preferences when no ?lang is given

    Returns:
        "<code>.pdf" to redirect to, or None to show the selection page
    """
    languages = list(languages)
    params = parse_qs(query_string.lstrip("?"))
    requested = params.get(LANG_PARAM, [""])[0]

    if requested:
        code = match_language(requested, languages)
        return f"{code}.pdf" if code else None

    if auto_detect_language:
        for tag in parse_accept_language(accept_language):
            code = match_language(tag, languages)
            if code:
                return f"{code}.pdf"

    return None
