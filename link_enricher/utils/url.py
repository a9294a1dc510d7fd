"""
URL utilities.

Provides URL normalization for deduplication and URL classification helpers.
"""

import re
from urllib.parse import parse_qsl, urlencode, urlparse

from url_normalize import url_normalize

# Query parameters that only carry campaign tracking
_TRACKING_PARAM_PREFIXES = ("utm_", "mc_")
_TRACKING_PARAMS = {"fbclid", "gclid", "ref_src", "s", "t"}

_URL_PATTERN = re.compile(r"https?://[^\s<>\"'()\[\]]+")

_TWITTER_MARKERS = ("twitter.com/", "x.com/", "t.co/")


def normalize_url_for_dedup(url: str) -> str:
    """
    Normalize URL for deduplication.

    Applies the following normalizations:
    - Lowercase scheme and host
    - Remove default ports (80 for HTTP, 443 for HTTPS)
    - Remove tracking query parameters (utm_*, fbclid, ...)
    - Remove fragment (#section)
    - Remove trailing slash (except for root path)

    Parameters
    ----------
    url : str
        The URL to normalize.

    Returns
    -------
    str
        Normalized URL suitable for deduplication.

    Examples
    --------
    >>> normalize_url_for_dedup("HTTP://EXAMPLE.COM/Path/#sec")
    'http://example.com/Path'
    >>> normalize_url_for_dedup("https://example.com/a?utm_source=x&id=2")
    'https://example.com/a?id=2'
    """
    normalized = url_normalize(url)

    parsed = urlparse(normalized)
    scheme = str(parsed.scheme)
    netloc = str(parsed.netloc)
    path = str(parsed.path).rstrip("/") or "/"
    params = [
        (key, value)
        for key, value in parse_qsl(str(parsed.query), keep_blank_values=True)
        if key not in _TRACKING_PARAMS and not key.startswith(_TRACKING_PARAM_PREFIXES)
    ]
    query = f"?{urlencode(params)}" if params else ""
    return f"{scheme}://{netloc}{path}{query}"


def is_http_url(url: str) -> bool:
    """Return True for absolute http(s) URLs with a host."""
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_twitter_url(url: str) -> bool:
    """Return True when the URL points at Twitter/X or its t.co shortener."""
    lowered = url.lower()
    return any(marker in lowered for marker in _TWITTER_MARKERS)


def extract_domain(url: str) -> str:
    """Return the lowercase hostname without a leading "www.", or ""."""
    hostname = (urlparse(url).hostname or "").lower()
    return hostname.removeprefix("www.")


def find_urls(text: str) -> list[str]:
    """
    Find http(s) URLs in free text, in order of appearance.

    Trailing punctuation that usually ends a sentence is stripped.
    """
    return [match.rstrip(".,;:!?") for match in _URL_PATTERN.findall(text)]


def extract_first_url(text: str) -> str | None:
    """Return the first http(s) URL in text, or None."""
    urls = find_urls(text)
    return urls[0] if urls else None
