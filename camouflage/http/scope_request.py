from typing import Optional

from starlette.datastructures import MutableHeaders
from starlette.types import Scope


class ScopeRequest:
    """
    Mutable view over the addressing fields of an ASGI ``http`` scope.

    - ``headers``: the request headers, mutations are written back to the scope
    - ``base_path``: ``scope["root_path"]``, the prefix already consumed by mounts
    - ``original_path``: ``scope["path"]``, the full path including the root path
    - ``request_path``: ``scope["raw_path"]``, the request target as received
    """

    def __init__(self, scope: Scope):
        self.scope = scope

    @property
    def headers(self) -> MutableHeaders:
        return MutableHeaders(scope=self.scope)

    @property
    def base_path(self) -> str:
        return self.scope.get("root_path", "")

    @base_path.setter
    def base_path(self, value: str) -> None:
        self.scope["root_path"] = value

    @property
    def original_path(self) -> str:
        return self.scope["path"]

    @original_path.setter
    def original_path(self, value: str) -> None:
        self.scope["path"] = value

    @property
    def request_path(self) -> Optional[str]:
        raw_path = self.scope.get("raw_path")
        if raw_path is None:
            return None
        return raw_path.decode("latin-1")

    @request_path.setter
    def request_path(self, value: Optional[str]) -> None:
        # raw_path is an optional ASGI scope key, keep it absent if it was
        if value is None:
            self.scope.pop("raw_path", None)
        else:
            self.scope["raw_path"] = value.encode("latin-1")

    @property
    def scheme(self) -> str:
        return self.scope.get("scheme", "http")

    @property
    def query_string(self) -> str:
        return self.scope.get("query_string", b"").decode("latin-1")

    @property
    def server_host(self) -> Optional[str]:
        server = self.scope.get("server")
        if not server:
            return None
        host, port = server
        if port is None:
            return host
        return f"{host}:{port}"

    def __repr__(self) -> str:
        return (
            f"ScopeRequest(host={self.headers.get('host')!r}, "
            f"base_path={self.base_path!r}, original_path={self.original_path!r})"
        )
