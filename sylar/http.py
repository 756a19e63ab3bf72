"""HTTP methods, status codes and request / response messages.

Headers, query parameters and cookies are held in case-insensitive maps
that iterate in case-insensitive key order. Requests and responses render
themselves in HTTP/1.x wire format with :meth:`dump` or :meth:`to_string`.
"""

from __future__ import annotations

import enum
import io
from collections.abc import MutableMapping
from typing import Dict, Iterator, Mapping, Optional, TextIO, Tuple, Type, TypeVar

T = TypeVar("T")


class HttpMethod(enum.IntEnum):
    """Request methods."""

    DELETE = 0
    GET = 1
    HEAD = 2
    POST = 3
    PUT = 4
    CONNECT = 5
    OPTIONS = 6
    TRACE = 7
    COPY = 8
    LOCK = 9
    MKCOL = 10
    MOVE = 11
    PROPFIND = 12
    PROPPATCH = 13
    SEARCH = 14
    UNLOCK = 15
    BIND = 16
    REBIND = 17
    UNBIND = 18
    ACL = 19
    REPORT = 20
    MKACTIVITY = 21
    CHECKOUT = 22
    MERGE = 23
    MSEARCH = 24
    NOTIFY = 25
    SUBSCRIBE = 26
    UNSUBSCRIBE = 27
    PATCH = 28
    PURGE = 29
    MKCALENDAR = 30
    LINK = 31
    UNLINK = 32
    SOURCE = 33
    INVALID_METHOD = 34


_METHOD_STRINGS: Tuple[str, ...] = (
    "DELETE", "GET", "HEAD", "POST", "PUT", "CONNECT", "OPTIONS", "TRACE",
    "COPY", "LOCK", "MKCOL", "MOVE", "PROPFIND", "PROPPATCH", "SEARCH",
    "UNLOCK", "BIND", "REBIND", "UNBIND", "ACL", "REPORT", "MKACTIVITY",
    "CHECKOUT", "MERGE", "M - SEARCH", "NOTIFY", "SUBSCRIBE", "UNSUBSCRIBE",
    "PATCH", "PURGE", "MKCALENDAR", "LINK", "UNLINK", "SOURCE",
)


class HttpStatus(enum.IntEnum):
    """Response status codes."""

    CONTINUE = 100
    SWITCHING_PROTOCOLS = 101
    PROCESSING = 102
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NON_AUTHORITATIVE_INFORMATION = 203
    NO_CONTENT = 204
    RESET_CONTENT = 205
    PARTIAL_CONTENT = 206
    MULTI_STATUS = 207
    ALREADY_REPORTED = 208
    IM_USED = 226
    MULTIPLE_CHOICES = 300
    MOVED_PERMANENTLY = 301
    FOUND = 302
    SEE_OTHER = 303
    NOT_MODIFIED = 304
    USE_PROXY = 305
    TEMPORARY_REDIRECT = 307
    PERMANENT_REDIRECT = 308
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    PAYMENT_REQUIRED = 402
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    NOT_ACCEPTABLE = 406
    PROXY_AUTHENTICATION_REQUIRED = 407
    REQUEST_TIMEOUT = 408
    CONFLICT = 409
    GONE = 410
    LENGTH_REQUIRED = 411
    PRECONDITION_FAILED = 412
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414
    UNSUPPORTED_MEDIA_TYPE = 415
    RANGE_NOT_SATISFIABLE = 416
    EXPECTATION_FAILED = 417
    MISDIRECTED_REQUEST = 421
    UNPROCESSABLE_ENTITY = 422
    LOCKED = 423
    FAILED_DEPENDENCY = 424
    UPGRADE_REQUIRED = 426
    PRECONDITION_REQUIRED = 428
    TOO_MANY_REQUESTS = 429
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431
    UNAVAILABLE_FOR_LEGAL_REASONS = 451
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504
    HTTP_VERSION_NOT_SUPPORTED = 505
    VARIANT_ALSO_NEGOTIATES = 506
    INSUFFICIENT_STORAGE = 507
    LOOP_DETECTED = 508
    NOT_EXTENDED = 510
    NETWORK_AUTHENTICATION_REQUIRED = 511


_STATUS_STRINGS: Dict[int, str] = {
    100: "Continue",
    101: "Switching Protocols",
    102: "Processing",
    200: "OK",
    201: "Created",
    202: "Accepted",
    203: "Non - Authoritative Information",
    204: "No Content",
    205: "Reset Content",
    206: "Partial Content",
    207: "Multi - Status",
    208: "Already Reported",
    226: "IM Used",
    300: "Multiple Choices",
    301: "Moved Permanently",
    302: "Found",
    303: "See Other",
    304: "Not Modified",
    305: "Use Proxy",
    307: "Temporary Redirect",
    308: "Permanent Redirect",
    400: "Bad Request",
    401: "Unauthorized",
    402: "Payment Required",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    406: "Not Acceptable",
    407: "Proxy Authentication Required",
    408: "Request Timeout",
    409: "Conflict",
    410: "Gone",
    411: "Length Required",
    412: "Precondition Failed",
    413: "Payload Too Large",
    414: "URI Too Long",
    415: "Unsupported Media Type",
    416: "Range Not Satisfiable",
    417: "Expectation Failed",
    421: "Misdirected Request",
    422: "Unprocessable Entity",
    423: "Locked",
    424: "Failed Dependency",
    426: "Upgrade Required",
    428: "Precondition Required",
    429: "Too Many Requests",
    431: "Request Header Fields Too Large",
    451: "Unavailable For Legal Reasons",
    500: "Internal Server Error",
    501: "Not Implemented",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
    505: "HTTP Version Not Supported",
    506: "Variant Also Negotiates",
    507: "Insufficient Storage",
    508: "Loop Detected",
    510: "Not Extended",
    511: "Network Authentication Required",
}

_UNKNOWN = "<unknown>"


def string_to_http_method(text: str) -> HttpMethod:
    """The method whose name is exactly ``text``, or INVALID_METHOD."""
    for method, name in zip(HttpMethod, _METHOD_STRINGS):
        if name == text:
            return method
    return HttpMethod.INVALID_METHOD


def chars_to_http_method(text: str) -> HttpMethod:
    """The first method whose name ``text`` starts with, or INVALID_METHOD."""
    for method, name in zip(HttpMethod, _METHOD_STRINGS):
        if text.startswith(name):
            return method
    return HttpMethod.INVALID_METHOD


def http_method_to_string(method: int) -> str:
    """Name of a method, or ``"<unknown>"``."""
    index = int(method)
    if 0 <= index < len(_METHOD_STRINGS):
        return _METHOD_STRINGS[index]
    return _UNKNOWN


def http_status_to_string(status: int) -> str:
    """Reason phrase of a status code, or ``"<unknown>"``."""
    return _STATUS_STRINGS.get(int(status), _UNKNOWN)


class CaseInsensitiveMap(MutableMapping):
    """String map with case-insensitive keys, iterated in case-insensitive order.

    The spelling of a key is that of its first insertion.
    """

    def __init__(self, data: Optional[Mapping[str, str]] = None) -> None:
        self._store: Dict[str, Tuple[str, str]] = {}
        if data:
            for key, value in data.items():
                self[key] = value

    @staticmethod
    def _fold(key: str) -> str:
        return key.lower()

    def __getitem__(self, key: str) -> str:
        return self._store[self._fold(key)][1]

    def __setitem__(self, key: str, value: str) -> None:
        folded = self._fold(key)
        existing = self._store.get(folded)
        original = existing[0] if existing is not None else key
        self._store[folded] = (original, value)

    def __delitem__(self, key: str) -> None:
        folded = self._fold(key)
        if folded not in self._store:
            raise KeyError(key)
        self._store.pop(folded)

    def __iter__(self) -> Iterator[str]:
        for folded in sorted(self._store):
            yield self._store[folded][0]

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._fold(key) in self._store

    def __repr__(self) -> str:
        return f"CaseInsensitiveMap({dict(self.items())!r})"


def _convert(text: str, type_: Type[T]) -> T:
    if type_ is str:
        return text  # type: ignore[return-value]
    if text != text.strip() or not text:
        raise ValueError(f"cannot convert {text!r}")
    if type_ is bool:
        if text == "1":
            return True  # type: ignore[return-value]
        if text == "0":
            return False  # type: ignore[return-value]
        raise ValueError(f"cannot convert {text!r} to bool")
    return type_(text)  # type: ignore[call-arg]


def check_get_as(mapping: Mapping[str, str], key: str, type_: Type[T],
                 default: Optional[T] = None) -> Tuple[bool, T]:
    """Return ``(found_and_converted, value)``; value falls back to ``default``."""
    fallback = type_() if default is None else default
    if key not in mapping:
        return False, fallback
    try:
        return True, _convert(mapping[key], type_)
    except (ValueError, TypeError):
        return False, fallback


def get_as(mapping: Mapping[str, str], key: str, type_: Type[T],
           default: Optional[T] = None) -> T:
    """The value of ``key`` converted to ``type_``, or ``default``."""
    return check_get_as(mapping, key, type_, default)[1]


def _version_text(version: int) -> str:
    return f"{(version >> 4) & 0x0F}.{version & 0x0F}"


def _write_body(stream: TextIO, body: str) -> None:
    if body:
        stream.write(f"content-length: {len(body.encode('utf-8'))}\r\n\r\n{body}")
    else:
        stream.write("\r\n")


class HttpRequest:
    """An HTTP request message."""

    def __init__(self, version: int = 0x11, close: bool = True) -> None:
        self.method = HttpMethod.GET
        self.status = HttpStatus.OK
        self.version = version
        self.close = close
        self.path = "/"
        self.query = ""
        self.fragment = ""
        self.body = ""
        self._headers = CaseInsensitiveMap()
        self._params = CaseInsensitiveMap()
        self._cookies = CaseInsensitiveMap()

    @property
    def headers(self) -> CaseInsensitiveMap:
        return self._headers

    @headers.setter
    def headers(self, value: Mapping[str, str]) -> None:
        self._headers = CaseInsensitiveMap(value)

    @property
    def params(self) -> CaseInsensitiveMap:
        return self._params

    @params.setter
    def params(self, value: Mapping[str, str]) -> None:
        self._params = CaseInsensitiveMap(value)

    @property
    def cookies(self) -> CaseInsensitiveMap:
        return self._cookies

    @cookies.setter
    def cookies(self, value: Mapping[str, str]) -> None:
        self._cookies = CaseInsensitiveMap(value)

    def get_header(self, key: str, default: str = "") -> str:
        return self._headers.get(key, default)

    def get_param(self, key: str, default: str = "") -> str:
        return self._params.get(key, default)

    def get_cookie(self, key: str, default: str = "") -> str:
        return self._cookies.get(key, default)

    def set_header(self, key: str, value: str) -> None:
        self._headers[key] = value

    def set_param(self, key: str, value: str) -> None:
        self._params[key] = value

    def set_cookie(self, key: str, value: str) -> None:
        self._cookies[key] = value

    def del_header(self, key: str) -> None:
        self._headers.pop(key, None)

    def del_param(self, key: str) -> None:
        self._params.pop(key, None)

    def del_cookie(self, key: str) -> None:
        self._cookies.pop(key, None)

    def has_header(self, key: str) -> bool:
        return key in self._headers

    def has_param(self, key: str) -> bool:
        return key in self._params

    def has_cookie(self, key: str) -> bool:
        return key in self._cookies

    def check_get_header_as(self, key: str, type_: Type[T],
                            default: Optional[T] = None) -> Tuple[bool, T]:
        return check_get_as(self._headers, key, type_, default)

    def get_header_as(self, key: str, type_: Type[T], default: Optional[T] = None) -> T:
        return get_as(self._headers, key, type_, default)

    def check_get_param_as(self, key: str, type_: Type[T],
                           default: Optional[T] = None) -> Tuple[bool, T]:
        return check_get_as(self._params, key, type_, default)

    def get_param_as(self, key: str, type_: Type[T], default: Optional[T] = None) -> T:
        return get_as(self._params, key, type_, default)

    def check_get_cookie_as(self, key: str, type_: Type[T],
                            default: Optional[T] = None) -> Tuple[bool, T]:
        return check_get_as(self._cookies, key, type_, default)

    def get_cookie_as(self, key: str, type_: Type[T], default: Optional[T] = None) -> T:
        return get_as(self._cookies, key, type_, default)

    def dump(self, stream: TextIO) -> TextIO:
        """Write the request in wire format to ``stream`` and return it."""
        stream.write(
            f"{http_method_to_string(self.method)} {self.path}"
            f"{'?' if self.query else ''}{self.query}"
            f"{'#' if self.fragment else ''}{self.fragment}"
            f" HTTP/{_version_text(self.version)}\r\n"
        )
        stream.write(f"connection: {'close' if self.close else 'keep-alive'}\r\n")
        for key, value in self._headers.items():
            if key.lower() == "connection":
                continue
            stream.write(f"{key}:{value}\r\n")
        _write_body(stream, self.body)
        return stream

    def to_string(self) -> str:
        return self.dump(io.StringIO()).getvalue()

    def __str__(self) -> str:
        return self.to_string()


class HttpResponse:
    """An HTTP response message."""

    def __init__(self, version: int = 0x11, close: bool = True) -> None:
        self.status = HttpStatus.OK
        self.version = version
        self.close = close
        self.body = ""
        self.reason = ""
        self._headers = CaseInsensitiveMap()

    @property
    def headers(self) -> CaseInsensitiveMap:
        return self._headers

    @headers.setter
    def headers(self, value: Mapping[str, str]) -> None:
        self._headers = CaseInsensitiveMap(value)

    def get_header(self, key: str, default: str = "") -> str:
        return self._headers.get(key, default)

    def set_header(self, key: str, value: str) -> None:
        self._headers[key] = value

    def del_header(self, key: str) -> None:
        self._headers.pop(key, None)

    def check_get_header_as(self, key: str, type_: Type[T],
                            default: Optional[T] = None) -> Tuple[bool, T]:
        return check_get_as(self._headers, key, type_, default)

    def get_header_as(self, key: str, type_: Type[T], default: Optional[T] = None) -> T:
        return get_as(self._headers, key, type_, default)

    def dump(self, stream: TextIO) -> TextIO:
        """Write the response in wire format to ``stream`` and return it."""
        reason = self.reason or http_status_to_string(self.status)
        stream.write(f"HTTP/{_version_text(self.version)} {int(self.status)} {reason}\r\n")
        for key, value in self._headers.items():
            if key.lower() == "connection":
                continue
            stream.write(f"{key}: {value}\r\n")
        stream.write(f"connection: {'close' if self.close else 'keep-alive'}\r\n")
        _write_body(stream, self.body)
        return stream

    def to_string(self) -> str:
        return self.dump(io.StringIO()).getvalue()

    def __str__(self) -> str:
        return self.to_string()