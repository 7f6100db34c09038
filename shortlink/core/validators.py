"""
Input Validators and Sanitizers

This module provides validation and normalization functions for user inputs:
- URL syntax validation (scheme, host, length)
- SSRF guard on the literal hostname
- URL normalization to a canonical form
- Short code path sanitization

Security Considerations:
- The SSRF guard is a prefix check on the hostname string only. It does not
  resolve DNS, so hostnames pointing at private addresses, IPv4-mapped IPv6
  and decimal/hex IP spellings are not caught.
- Length limits prevent DoS attacks
"""

import ipaddress
import re
from typing import Optional
from urllib.parse import SplitResult, urlsplit, urlunsplit

MAX_URL_LENGTH = 2048
MAX_HOSTNAME_LENGTH = 253
MAX_SHORT_CODE_LENGTH = 50

ALLOWED_SCHEMES = frozenset({"http", "https"})
DEFAULT_PORTS = {"http": 80, "https": 443}

BLOCKED_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})
PRIVATE_HOST_PREFIXES = (
    "10.",
    "192.168.",
    *(f"172.{block}." for block in range(16, 32)),
)

_SCHEME_PREFIX = re.compile(r"^https?://", re.IGNORECASE)
_SHORT_CODE_PATTERN = re.compile(r"^[0-9a-zA-Z-]+$")
_HOST_LABEL_PATTERN = re.compile(r"^[a-z0-9_-]{1,63}$")


def _split(url: str) -> Optional[SplitResult]:
    """Parse a URL, returning None when it cannot be parsed (bad port, brackets...)."""
    try:
        parsed = urlsplit(url)
        # Accessing .port validates it
        parsed.port
    except ValueError:
        return None
    return parsed


def _is_valid_hostname(hostname: str) -> bool:
    """
    Accept an IP literal or dot-separated DNS labels.

    Internationalized names are checked in their punycode form.
    """
    if ":" in hostname:
        # urlsplit strips the brackets of IPv6 literals
        try:
            return ipaddress.ip_address(hostname).version == 6
        except ValueError:
            return False

    try:
        ascii_host = hostname.encode("idna").decode("ascii")
    except UnicodeError:
        return False

    if ascii_host.endswith("."):
        ascii_host = ascii_host[:-1]
    if not ascii_host or len(ascii_host) > MAX_HOSTNAME_LENGTH:
        return False

    return all(_HOST_LABEL_PATTERN.match(label) for label in ascii_host.split("."))


def is_valid_url(url: str) -> bool:
    """
    Validate URL syntax.

    A URL is valid when it is at most 2048 characters, parses as an absolute
    URL, uses http or https, and has a well-formed host (DNS labels or an
    IPv6 literal).

    Args:
        url: The URL string to validate

    Returns:
        True if valid, False otherwise
    """
    if not url or not isinstance(url, str):
        return False

    if len(url) > MAX_URL_LENGTH:
        return False

    parsed = _split(url)
    if parsed is None:
        return False

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return False

    return bool(parsed.hostname) and _is_valid_hostname(parsed.hostname)


def is_safe_url(url: str) -> bool:
    """
    Check that a URL does not point at loopback or private network hosts.

    Args:
        url: The URL string to check

    Returns:
        True if safe, False otherwise (including unparseable URLs)
    """
    if not url or not isinstance(url, str):
        return False

    parsed = _split(url)
    if parsed is None or not parsed.hostname:
        return False

    hostname = parsed.hostname.lower()
    if hostname in BLOCKED_HOSTS:
        return False

    return not hostname.startswith(PRIVATE_HOST_PREFIXES)


def normalize_url(url: str) -> str:
    """
    Normalize a URL to its canonical form.

    - Trims surrounding whitespace
    - Prepends https:// when no http(s) scheme is present
    - Lowercases scheme and host, drops the scheme's default port
    - Uses "/" for an empty path and strips one trailing slash otherwise

    Never raises: if the URL cannot be parsed the original string is returned.

    Example:
        normalize_url("example.com/a/b/") -> "https://example.com/a/b"
    """
    if not isinstance(url, str):
        return url

    normalized = url.strip()
    if not _SCHEME_PREFIX.match(normalized):
        normalized = "https://" + normalized

    parsed = _split(normalized)
    if parsed is None or not parsed.hostname:
        return url

    scheme = parsed.scheme.lower()

    host = parsed.hostname.lower()
    if ":" in host:
        host = f"[{host}]"

    netloc = host
    if parsed.port is not None and parsed.port != DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{parsed.port}"
    if parsed.username is not None:
        userinfo = parsed.username
        if parsed.password is not None:
            userinfo = f"{userinfo}:{parsed.password}"
        netloc = f"{userinfo}@{netloc}"

    path = parsed.path or "/"
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]

    return urlunsplit((scheme, netloc, path, parsed.query, parsed.fragment))


def extract_domain(url: str) -> Optional[str]:
    """Return the lowercase hostname of a URL, or None if it has none."""
    parsed = _split(url)
    if parsed is None:
        return None
    return parsed.hostname


def sanitize_short_code(short_code: str) -> Optional[str]:
    """
    Sanitize and validate a short code taken from a request path.

    Short codes are generated from the alphanumeric alphabet or chosen as
    custom aliases, which may also contain hyphens.

    Args:
        short_code: The short code to sanitize

    Returns:
        Sanitized short code if valid, None otherwise

    Security:
    - Only allows alphanumeric characters and hyphens
    - Prevents path traversal attacks
    """
    if not short_code or not isinstance(short_code, str):
        return None

    short_code = short_code.strip()

    if not short_code or len(short_code) > MAX_SHORT_CODE_LENGTH:
        return None

    if not _SHORT_CODE_PATTERN.match(short_code):
        return None

    return short_code
