"""Remote location helpers.

Locations are absolute ``http``/``https`` URL strings. Parent and child
locations are derived syntactically; nothing here touches the network.
"""

from __future__ import annotations

from urllib.parse import quote, unquote, urljoin, urlsplit, urlunsplit

DEFAULT_SCHEME = "http"
SUPPORTED_SCHEMES = ("http", "https")


def normalize_location(raw: str) -> str:
    """Return ``raw`` as an absolute URL, defaulting the scheme to ``http://``.

    Raises ``ValueError`` when the result has no host or an unsupported scheme.
    """
    text = raw.strip()
    if "://" not in text:
        text = f"{DEFAULT_SCHEME}://{text}"
    parts = urlsplit(text)
    if parts.scheme.lower() not in SUPPORTED_SCHEMES:
        raise ValueError(f"unsupported scheme: {parts.scheme!r}")
    if not parts.netloc:
        raise ValueError(f"missing host in {raw!r}")
    return urlunsplit((parts.scheme.lower(), parts.netloc, parts.path, parts.query, ""))


def is_root(location: str) -> bool:
    return urlsplit(location).path in ("", "/")


def parent_location(location: str) -> str:
    """Return the location one path segment up, or ``location`` itself at root.

    One trailing slash is ignored, so ``http://h/a/b/`` and ``http://h/a/b``
    share the parent ``http://h/a``.
    """
    parts = urlsplit(location)
    path = parts.path[:-1] if parts.path.endswith("/") else parts.path
    if not path:
        return location
    return urlunsplit((parts.scheme, parts.netloc, path[: path.rfind("/")], "", ""))


def join_location(directory: str, name: str) -> str:
    """Resolve entry ``name`` (``"sub/"``, ``"file.txt"``, ``"../"``) inside ``directory``."""
    parts = urlsplit(directory)
    path = parts.path if parts.path.endswith("/") else parts.path + "/"
    base = urlunsplit((parts.scheme, parts.netloc, path, "", ""))
    return urljoin(base, quote(name, safe="/"))


def display_location(location: str) -> str:
    """Percent-decode ``location`` for showing to the user."""
    return unquote(location, errors="replace")


def location_path(location: str) -> str:
    """Decoded path of ``location`` without its leading slash."""
    return unquote(urlsplit(location).path, errors="replace").lstrip("/")


def last_segment(location: str) -> str:
    """Decoded final path segment, ignoring one trailing slash."""
    path = location_path(location).rstrip("/")
    return path.rsplit("/", 1)[-1]
