"""HTTP primitives: Request, Response, headers, query, cookies and forms."""

from trellis.http.cookies import SetCookie, parse_cookies
from trellis.http.forms import FormData, UploadFile
from trellis.http.headers import Headers
from trellis.http.query import QueryParams
from trellis.http.request import Request
from trellis.http.response import Response

__all__ = [
    "FormData",
    "Headers",
    "QueryParams",
    "Request",
    "Response",
    "SetCookie",
    "UploadFile",
    "parse_cookies",
]
