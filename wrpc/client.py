"""
Client-side service adapter for wrpc.

One POST per call, no retry. Every outcome is returned as data:
Ok(value) or Err(HttpError); transport exceptions never escape.

Usage:
    with ServiceClient("http://localhost:8000", "Geometry", registry) as geometry:
        match geometry.area(shape=circle):
            case Ok(value=area): ...
            case Err(error=BadStatus(status_code=code)): ...
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Union

import httpx

from .codec import Registry
from .errors import ErrorBundle, ErrorNode
from .logging import get_logger
from .schema import Method, Service
from .types import Err, Ok

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Network:
    """The request could not be sent or the connection failed."""


@dataclass(frozen=True, slots=True)
class Timeout:
    """The transport timed out."""


@dataclass(frozen=True, slots=True)
class BadUrl:
    """The base URL and method path do not form a usable URL."""

    url: str


@dataclass(frozen=True, slots=True)
class BadStatus:
    """The server answered with a non-success status."""

    status_code: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: str = ""


@dataclass(frozen=True, slots=True)
class BadBody:
    """The response body was not JSON, or did not decode as the return type."""

    errors: tuple[ErrorNode, ...] = ()


HttpError = Union[Network, Timeout, BadUrl, BadStatus, BadBody]
HttpResponse = Union[Ok[Any], Err[HttpError]]


class ServiceClient:
    """
    HTTP client stub for one service.

    Each method of the service is available as an attribute taking the
    method's parameters as keyword arguments.

    Args:
        base_url: Prefix for every method path, e.g. "http://localhost:8000"
        service: The service schema, or its name in ``registry.module``
        registry: Compiled schema used for encoding and decoding
        http: Optional httpx.Client to borrow; otherwise one is created and
            closed by ``close()``
        timeout: Seconds per request for a created client. Defaults to
            ``Settings.client_timeout``.
    """

    def __init__(
        self,
        base_url: str,
        service: Service | str,
        registry: Registry,
        http: httpx.Client | None = None,
        timeout: float | None = None,
    ):
        if isinstance(service, str):
            found = registry.module.get_service(service)
            if found is None:
                raise KeyError(f"Unknown service: {service}")
            service = found

        if timeout is None:
            from .config import get_settings

            timeout = get_settings().client_timeout

        self.base_url = base_url.rstrip("/")
        self.service = service
        self.registry = registry
        self._owns_http = http is None
        self._http = http if http is not None else httpx.Client(timeout=timeout)

    def __getattr__(self, name: str) -> Callable[..., HttpResponse]:
        service = self.__dict__.get("service")
        method = service.get_method(name) if service is not None else None
        if method is None:
            raise AttributeError(name)

        def call(**params: Any) -> HttpResponse:
            return self._call(method, params)

        call.__name__ = name
        return call

    def call(self, method_name: str, **params: Any) -> HttpResponse:
        """Call a method by name."""
        method = self.service.get_method(method_name)
        if method is None:
            raise KeyError(f"Unknown method: {self.service.name}.{method_name}")
        return self._call(method, params)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> ServiceClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _call(self, method: Method, params: dict[str, Any]) -> HttpResponse:
        request = self.registry.request(self.service.name, method.name)
        body = request.encode(request.value_type(**params))
        url = f"{self.base_url}{self.service.method_path(method)}"

        try:
            response = self._http.post(url, json=body)
        except httpx.TimeoutException:
            log.warning("request_timeout", url=url)
            return Err(Timeout())
        except (httpx.InvalidURL, httpx.UnsupportedProtocol):
            log.warning("request_bad_url", url=url)
            return Err(BadUrl(url))
        except httpx.DecodingError:
            log.warning("request_bad_encoding", url=url)
            return Err(BadBody())
        except httpx.RequestError as e:
            log.warning("request_network_error", url=url, error=str(e))
            return Err(Network())

        return self._read(method, url, response)

    def _read(self, method: Method, url: str, response: httpx.Response) -> HttpResponse:
        if not response.is_success:
            log.debug("request_bad_status", url=url, status=response.status_code)
            return Err(
                BadStatus(
                    status_code=response.status_code,
                    headers=response.headers,
                    body=response.text,
                )
            )

        if method.return_type is None:
            log.debug("request_ok", url=url, status=response.status_code)
            return Ok(None)

        try:
            payload = json.loads(response.content) if response.content else None
        except (UnicodeDecodeError, json.JSONDecodeError):
            log.debug("request_bad_body", url=url)
            return Err(BadBody())

        errors = ErrorBundle()
        decode = self.registry.decoder_for(method.return_type)
        value = decode(payload, True, errors)
        if not errors.is_empty():
            log.debug("request_bad_body", url=url, errors=len(errors))
            return Err(BadBody(errors.errors))

        log.debug("request_ok", url=url, status=response.status_code)
        return Ok(value)
