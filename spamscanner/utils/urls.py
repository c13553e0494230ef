"""URL extraction and normalization utilities."""

from __future__ import annotations

import logging
import re
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import idna
import tldextract

logger = logging.getLogger(__name__)

# Offline extractor: uses the public suffix snapshot bundled with tldextract.
_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())

_LABEL = r"(?:[^\W_](?:[\w-]*[^\W_])?)"
_IPV4 = r"(?:(?:25[0-5]|2[0-4]\d|1?\d?\d)\.){3}(?:25[0-5]|2[0-4]\d|1?\d?\d)"
# Top-level labels are letters only
_TLD = r"[^\W\d_]{2,}"
# Quotes and CJK punctuation that end a URL in running text
_CLOSING_PUNCTUATION = "“”‘’«»‹›「」『』【】《》〈〉。，、；：！？…"

URL_PATTERN = re.compile(
    r"(?P<scheme>(?:https?|ftp)://|//)?"
    r"(?:[^\s/@:]+(?::[^\s/@]*)?@)?"
    rf"(?P<host>localhost|{_IPV4}|{_LABEL}(?:\.{_LABEL})*\.{_TLD})"
    r"(?::\d{2,5})?"
    rf"(?:[/?#][^\s\"'<>{_CLOSING_PUNCTUATION}]*)?",
    re.IGNORECASE,
)

URL_ENDING_RESERVED_CHARS = re.compile(rf"[).,;:!?{_CLOSING_PUNCTUATION}]+$")

_DEFAULT_PORTS = {"http": 80, "https": 443, "ftp": 21}
_TRACKING_PARAM = re.compile(r"^utm_\w+", re.IGNORECASE)


def canonicalize_domain(value: str) -> str:
    """
    Normalize a domain/URL to a canonical host key.

    - Lowercase
    - Strip leading "www."
    - Ignore port, path, query and fragment
    """
    raw = (value or "").strip()
    if not raw:
        return ""

    candidate = raw if "://" in raw else f"http://{raw}"
    try:
        host = urlsplit(candidate).hostname or ""
    except ValueError:
        host = raw.split("/")[0]
    host = host.strip().lower().strip(".")

    if host.startswith("www.") and len(host) > 4:
        host = host[4:]
    return host


def is_registrable_host(host: str) -> bool:
    """True when the host ends in a known public suffix and has a domain label."""
    extracted = _EXTRACT(host)
    return bool(extracted.domain and extracted.suffix)


def to_ascii_host(host: str) -> str:
    """IDNA-encode a hostname (best-effort; returns the lowercased input on failure)."""
    lowered = host.lower().strip(".")
    if lowered.isascii():
        return lowered
    try:
        return idna.encode(lowered, uts46=True).decode("ascii")
    except (idna.IDNAError, UnicodeError):
        return lowered


def normalize_url(url: str, *, strip_hash: bool = False) -> str:
    """Normalize a URL for comparison and de-duplication.

    Adds a missing scheme, lowercases scheme and host, IDNA-encodes the host,
    drops credentials, default ports, utm_* parameters and trailing slashes,
    and sorts the query string. Raises ValueError when no host can be parsed.
    """
    candidate = (url or "").strip()
    if not candidate:
        raise ValueError("empty URL")
    if candidate.startswith("//"):
        candidate = f"http:{candidate}"
    elif "://" not in candidate:
        candidate = f"http://{candidate}"

    parts = urlsplit(candidate)
    scheme = parts.scheme.lower()
    host = parts.hostname
    if not host:
        raise ValueError(f"URL has no host: {url!r}")

    host = to_ascii_host(host)
    netloc = f"[{host}]" if ":" in host else host
    port = parts.port
    if port and port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{port}"

    path = re.sub(r"/{2,}", "/", parts.path)
    if path.endswith("/"):
        path = path.rstrip("/")

    query_pairs = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if not _TRACKING_PARAM.match(key)
    ]
    query = urlencode(sorted(query_pairs)) if query_pairs else ""
    fragment = "" if strip_hash else parts.fragment

    return urlunsplit((scheme, netloc, path, query, fragment))


def url_hostname(url: str) -> str:
    """Hostname of a (normalized) URL, or empty string."""
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def find_urls(text: str) -> list[str]:
    """Raw URL candidates in `text`, in order of appearance (not normalized)."""
    if not text or not text.strip():
        return []

    found: list[str] = []
    for match in URL_PATTERN.finditer(text):
        candidate = URL_ENDING_RESERVED_CHARS.sub("", match.group(0))
        host = match.group("host")
        if not match.group("scheme"):
            # Bare matches need a real public suffix; IPs and localhost need a scheme.
            if "@" in candidate[: match.start("host") - match.start()]:
                continue  # email address
            if host.lower() == "localhost" or re.fullmatch(_IPV4, host):
                continue
            if not is_registrable_host(host.lower()):
                continue
        if candidate:
            found.append(candidate)
    return found


def extract_urls(text: str) -> list[str]:
    """Normalized, de-duplicated URLs found in `text`, in first-seen order."""
    urls: list[str] = []
    for candidate in find_urls(text):
        try:
            urls.append(normalize_url(candidate))
        except ValueError:
            urls.append(candidate)
    return list(dict.fromkeys(urls))
