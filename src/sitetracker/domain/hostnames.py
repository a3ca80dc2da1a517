"""Host canonicalization and site identifier derivation."""

import hashlib
import ipaddress
import re
from urllib.parse import urlsplit

from ..core.errors import InvalidURL

_HOST_LABEL = re.compile(r"^[a-z0-9_-]{1,63}$")
_MAX_HOST_LENGTH = 253
_SCHEME_PREFIX = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")

# Unit separator: cannot appear in a principal id or a canonical host
_ID_SEPARATOR = "\x1f"


def _with_authority(raw_url: str) -> str:
    # "example.com/path" has no scheme; urlsplit would read it as a path
    if _SCHEME_PREFIX.match(raw_url) or raw_url.startswith("//"):
        return raw_url
    return "//" + raw_url


def _normalize_hostname(host: str) -> str:
    if ":" in host:
        # IPv6 literal, brackets already removed by urlsplit
        return ipaddress.ip_address(host).compressed

    if not host.isascii():
        host = host.encode("idna").decode("ascii")

    host = host.lower()
    if len(host) > _MAX_HOST_LENGTH:
        raise ValueError("host too long")
    if not all(_HOST_LABEL.match(label) for label in host.split(".")):
        raise ValueError("invalid host label")
    return host


def canonicalize_host(raw_url: str) -> str:
    """
    Reduce a URL to the host that identifies it as a tracked destination.

    Scheme, userinfo, port, path, query and fragment are dropped; the host is
    case-folded and trailing dots are removed. ``https://Example.com/a?x=1``
    and ``http://EXAMPLE.COM/`` both become ``example.com``.

    Raises:
        InvalidURL: If the URL has no parseable host
    """
    if not isinstance(raw_url, str) or not raw_url.strip():
        raise InvalidURL("URL is empty", url=raw_url)

    candidate = _with_authority(raw_url.strip())
    try:
        host = urlsplit(candidate).hostname
    except ValueError as exc:
        raise InvalidURL(f"URL could not be parsed: {exc}", url=raw_url) from exc

    host = (host or "").rstrip(".")
    if not host:
        raise InvalidURL("URL has no host", url=raw_url)

    try:
        return _normalize_hostname(host)
    except (ValueError, UnicodeError) as exc:
        raise InvalidURL(f"URL host is not valid: {exc}", url=raw_url) from exc


def derive_site_id(owner_id: str, canonical_host: str) -> str:
    """
    Derive the stable identifier of an owner's tracked site.

    SHA-256 over the owner id and canonical host, hex encoded. The same pair
    always yields the same id, and two owners tracking the same host get
    different ids.
    """
    payload = f"{owner_id}{_ID_SEPARATOR}{canonical_host}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
