"""HTTP client, error type and shared models for the Bitbucket Cloud REST API."""

from __future__ import annotations

import json
import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from http import HTTPStatus
from typing import Any, Generic, TypeVar

import requests

DEFAULT_BASE_URL = "https://api.bitbucket.org/2.0"
USER_AGENT = "bbcloud"
DEFAULT_TIMEOUT = 30.0

T = TypeVar("T")


class APIError(Exception):
    """An error response returned by the API."""

    def __init__(self, status_code, message, detail="", fields=None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.detail = detail
        self.fields = dict(fields or {})

    def __str__(self) -> str:
        text = f"{self.message} (HTTP {self.status_code})"
        if self.detail:
            text += f": {self.detail}"
        if self.fields:
            text += "; " + ", ".join(f"{key}: {value}" for key, value in self.fields.items())
        return text


@dataclass
class Response:
    """A raw HTTP response."""

    status_code: int
    headers: Mapping[str, str]
    body: bytes


@dataclass
class Link:
    """A hyperlink."""

    href: str = ""

    @classmethod
    def from_dict(cls, data):
        return cls(href=(data or {}).get("href") or "")


@dataclass
class User:
    """A Bitbucket user or team account."""

    uuid: str = ""
    username: str = ""
    display_name: str = ""
    account_id: str = ""
    nickname: str = ""

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            uuid=data.get("uuid") or "",
            username=data.get("username") or "",
            display_name=data.get("display_name") or "",
            account_id=data.get("account_id") or "",
            nickname=data.get("nickname") or "",
        )


@dataclass
class Paginated(Generic[T]):
    """One page of a paginated listing."""

    size: int = 0
    page: int = 0
    pagelen: int = 0
    next: str = ""
    previous: str = ""
    values: list[T] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data, parse: Callable[[Any], T]):
        data = data or {}
        return cls(
            size=int(data.get("size") or 0),
            page=int(data.get("page") or 0),
            pagelen=int(data.get("pagelen") or 0),
            next=data.get("next") or "",
            previous=data.get("previous") or "",
            values=[parse(item) for item in data.get("values") or []],
        )


def _parse_time(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp; missing values give None."""
    if not value:
        return None
    return datetime.fromisoformat(value)


def _escape_quotes(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _encode_multipart(
    fields: Mapping[str, str], files: Iterable[tuple[str, str, str | bytes]]
) -> tuple[bytes, str]:
    boundary = uuid.uuid4().hex
    chunks: list[bytes] = []
    for name, value in fields.items():
        chunks.append(
            f"--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{_escape_quotes(name)}"\r\n'
            "\r\n".encode()
        )
        chunks.append(value.encode() + b"\r\n")
    for field_name, filename, content in files:
        chunks.append(
            f"--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{_escape_quotes(field_name)}"; '
            f'filename="{_escape_quotes(filename)}"\r\n'
            "Content-Type: application/octet-stream\r\n"
            "\r\n".encode()
        )
        payload = content.encode() if isinstance(content, str) else content
        chunks.append(payload + b"\r\n")
    chunks.append(f"--{boundary}--\r\n".encode())
    return b"".join(chunks), f"multipart/form-data; boundary={boundary}"


def _api_error(response: Response) -> APIError:
    try:
        message = HTTPStatus(response.status_code).phrase
    except ValueError:
        message = ""
    try:
        payload = json.loads(response.body)
    except ValueError:
        payload = None
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return APIError(
            response.status_code,
            error["message"],
            error.get("detail") or "",
            error.get("fields") or {},
        )
    return APIError(response.status_code, message)


class Client:
    """Sends authenticated requests to the API and raises APIError on failure."""

    def __init__(self, base_url=DEFAULT_BASE_URL, token="", session=None, timeout=DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _default_headers(self) -> dict[str, str]:
        headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _send(self, method, path, params, data, headers) -> Response:
        http_response = self.session.request(
            method,
            self._url(path),
            params=params or None,
            data=data,
            headers=headers,
            timeout=self.timeout,
        )
        response = Response(
            status_code=http_response.status_code,
            headers=dict(http_response.headers),
            body=http_response.content,
        )
        if response.status_code >= 400:
            raise _api_error(response)
        return response

    def request(self, method, path, params=None, body=None, headers=None) -> Response:
        """Send a request with an optional JSON body."""
        all_headers = self._default_headers()
        data = None
        if body is not None:
            data = json.dumps(body).encode()
            all_headers["Content-Type"] = "application/json"
        if headers:
            all_headers.update(headers)
        return self._send(method, path, params, data, all_headers)

    def get(self, path, params=None, headers=None) -> Response:
        return self.request("GET", path, params=params, headers=headers)

    def post(self, path, body=None) -> Response:
        return self.request("POST", path, body=body)

    def put(self, path, body=None) -> Response:
        return self.request("PUT", path, body=body)

    def delete(self, path) -> Response:
        return self.request("DELETE", path)

    def request_multipart(self, method, path, fields=None, files=()) -> Response:
        """Send multipart/form-data; files are (field name, filename, content) tuples."""
        data, content_type = _encode_multipart(fields or {}, files)
        headers = self._default_headers()
        headers["Content-Type"] = content_type
        return self._send(method, path, None, data, headers)