"""ASGI response sending: translates a trellis Response to ASGI messages."""

import logging

from trellis._internal.asgi import Send
from trellis.http.response import Response

logger = logging.getLogger("trellis.server")


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def raw_headers(response: Response, body: bytes) -> list[tuple[bytes, bytes]]:
    """Header byte pairs for *response*, with Content-Length filled in."""
    headers: list[tuple[bytes, bytes]] = []
    if response.content_type is not None:
        headers.append((b"content-type", response.content_type.encode("latin-1")))
    has_length = False
    for name, value in response.headers:
        lower = name.lower()
        has_length = has_length or lower == "content-length"
        headers.append((lower.encode("latin-1"), value.encode("latin-1")))
    headers.extend(
        (b"set-cookie", cookie.to_header_value().encode("latin-1")) for cookie in response.cookies
    )
    if not has_length and _body_allowed(response.status):
        headers.append((b"content-length", str(len(body)).encode("latin-1")))
    return headers


async def send_response(response: Response, send: Send) -> None:
    """Translate a Response into ASGI send() calls."""
    body = response.body_bytes if _body_allowed(response.status) else b""
    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers(response, body),
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": body,
        }
    )
    logger.debug("%d sent (%d bytes)", response.status, len(body))
