"""
URL Utilities
Canonical URL keys for deduplication and the internal-page check.
"""

import logging
import re
from typing import List, Optional
from urllib.parse import parse_qsl, quote, urlencode, urljoin, urlsplit

from .errors import NormalizationError

logger = logging.getLogger(__name__)

# Schemes we can crawl, with the port that is implied when none is given
_DEFAULT_PORTS = {'http': 80, 'https': 443}

# Characters kept as-is when re-quoting a path (RFC 3986 pchar, "/" and "%")
_PATH_SAFE = "/%:@!$&'()*+,;=~"

# Percent-escapes of these characters decode to the literal (RFC 3986 §2.3)
_UNRESERVED_RE = re.compile(r"%([0-9A-Fa-f]{2})")
_UNRESERVED_CHARS = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
    "0123456789-._~"
)


def _decode_unreserved(path: str) -> str:
    """Decode escaped unreserved characters; upper-case the hex of every other escape."""

    def _replace(m: re.Match) -> str:
        char = chr(int(m.group(1), 16))
        if char in _UNRESERVED_CHARS:
            return char
        return f"%{m.group(1).upper()}"

    return _UNRESERVED_RE.sub(_replace, path)


def _remove_dot_segments(path: str) -> str:
    """Resolve ``.`` and ``..`` segments of an absolute path (RFC 3986 §5.2.4)."""
    segments = path.split('/')
    if not any(seg in ('.', '..') for seg in segments):
        return path

    output: List[str] = []
    for seg in segments[1:]:
        if seg == '.':
            continue
        if seg == '..':
            if output:
                output.pop()
            continue
        output.append(seg)

    resolved = '/' + '/'.join(output)
    if segments[-1] in ('.', '..') and not resolved.endswith('/'):
        resolved += '/'
    return resolved


def normalize_url(raw: str, base: Optional[str] = None) -> str:
    """
    Turn a raw href into the canonical key used for deduplication.

    The key is ``origin + path + sorted_query``:

    - ``raw`` is resolved against ``base`` when it is relative
    - scheme and host are lower-cased, default ports and userinfo dropped
    - the fragment is removed
    - escaped unreserved characters are decoded, other escapes upper-cased
    - dot segments are resolved and illegal path characters percent-encoded
    - trailing slashes are stripped, so the root path becomes empty
    - query parameters are sorted by name (ties keep their original order)

    Raises:
        NormalizationError: if ``raw`` is not a usable http(s) URL.
    """
    if raw is None:
        raise NormalizationError('', "empty URL")
    candidate = raw.strip()

    try:
        joined = urljoin(base, candidate) if base else candidate
        parts = urlsplit(joined)
        port = parts.port
    except ValueError as e:
        raise NormalizationError(raw, str(e)) from e

    scheme = parts.scheme.lower()
    if scheme not in _DEFAULT_PORTS:
        reason = f"unsupported scheme {scheme!r}" if scheme else "not an absolute URL"
        raise NormalizationError(raw, reason)

    host = parts.hostname
    if not host:
        raise NormalizationError(raw, "missing host")
    if ':' in host:
        host = f"[{host}]"
    if port is None or port == _DEFAULT_PORTS[scheme]:
        netloc = host
    else:
        netloc = f"{host}:{port}"

    path = _decode_unreserved(parts.path or '/')
    path = quote(_remove_dot_segments(path), safe=_PATH_SAFE)
    path = path.rstrip('/')

    query = ''
    if parts.query:
        params = parse_qsl(parts.query, keep_blank_values=True)
        params.sort(key=lambda kv: kv[0])
        query = urlencode(params)

    canonical = f"{scheme}://{netloc}{path}"
    if query:
        canonical = f"{canonical}?{query}"
    return canonical


class URLNormalizer:
    """
    Canonicalizes URLs for one target site.

    The configured base URL is both the default resolution base for relative
    hrefs and the prefix that decides whether a page is internal.
    """

    def __init__(self, base_url: str):
        self.base_url = normalize_url(base_url)

    def normalize(self, url: str, base: Optional[str] = None) -> str:
        """Canonicalize ``url``; relative URLs resolve against ``base`` or the site root."""
        return normalize_url(url, base or self.base_url)

    def try_normalize(self, url: str, base: Optional[str] = None) -> Optional[str]:
        """Like ``normalize`` but logs and returns None on failure."""
        try:
            return self.normalize(url, base)
        except NormalizationError as e:
            logger.warning(f"Failed to normalize URL: {url}, error: {e.reason}")
            return None

    def is_internal(self, url: str) -> bool:
        """True if the canonical ``url`` lies under the site's base URL (case-sensitive)."""
        return url.startswith(self.base_url)
