from dataclasses import dataclass
from typing import Optional

FORWARDED_HOST = "x-forwarded-host"
FORWARDED_PROTO = "x-forwarded-proto"


@dataclass(frozen=True)
class AddressSnapshot:
    """
    Addressing fields of a request before it was rewritten.

    ``None`` means the header (or raw path) was not present at all, which is
    different from a present-but-empty value.
    """

    host: Optional[str]
    forwarded_host: Optional[str]
    forwarded_proto: Optional[str]
    base_path: str
    original_path: str
    request_path: Optional[str]


def capture_snapshot(request) -> AddressSnapshot:
    headers = request.headers
    return AddressSnapshot(
        host=headers.get("host"),
        forwarded_host=headers.get(FORWARDED_HOST),
        forwarded_proto=headers.get(FORWARDED_PROTO),
        base_path=request.base_path,
        original_path=request.original_path,
        request_path=request.request_path,
    )


def _restore_header(headers, name: str, value: Optional[str]) -> None:
    if value is not None:
        headers[name] = value
    elif name in headers:
        del headers[name]


def restore_snapshot(request, snapshot: AddressSnapshot) -> None:
    """
    Write a snapshot back onto the request.

    Forwarded headers that were absent when the snapshot was taken are
    removed, so headers synthesized by the rewrite never leak further up the
    pipeline.
    """
    headers = request.headers
    # a missing Host (HTTP/1.0) cannot be written as a value
    _restore_header(headers, "host", snapshot.host)
    _restore_header(headers, FORWARDED_HOST, snapshot.forwarded_host)
    _restore_header(headers, FORWARDED_PROTO, snapshot.forwarded_proto)

    request.base_path = snapshot.base_path
    request.original_path = snapshot.original_path
    request.request_path = snapshot.request_path
