from urllib.parse import urlsplit

DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}


def origin(url: str) -> str:
    """
    Reduce an absolute URL to scheme, host and port with a trailing slash.

    Path, query string, fragment and credentials are dropped; the default
    port of the scheme is omitted.

    >>> origin("https://user:pw@example.org:1234/example?x=1")
    'https://example.org:1234/'

    Raises:
        ValueError: if ``url`` is not an absolute URL or has an invalid port.
    """
    parts = urlsplit(url)
    if not parts.scheme or not parts.hostname:
        raise ValueError(f"Not an absolute URL: {url!r}")

    scheme = parts.scheme.lower()
    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"

    port = parts.port
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        host = f"{host}:{port}"

    return f"{scheme}://{host}/"
