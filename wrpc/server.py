"""
Server-side service adapter for wrpc.

``mount_service`` registers one POST route per service method on a FastAPI
router. Each request goes through:

    receive -> decode parameters -> invoke -> encode result -> respond

Parameters that fail to decode or validate are answered with 400 and the
error array; the implementation is not called. A fault raised by the
implementation is logged and answered with a bare 500.
"""

from __future__ import annotations

import inspect
import json
from typing import Any

from fastapi import APIRouter, FastAPI, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from .codec import Registry
from .errors import ErrorBundle, Expected
from .logging import get_logger
from .schema import Method, Service
from .types import OBJECT, Json

log = get_logger(__name__)


def mount_service(
    router: APIRouter | FastAPI,
    service: Service | str,
    implementation: Any,
    registry: Registry,
) -> None:
    """
    Mount every method of ``service`` on ``router``.

    Args:
        router: FastAPI app or APIRouter to add the routes to
        service: The service schema, or its name in ``registry.module``
        implementation: Object with one callable (sync or async) per method,
            called with the decoded parameters as keyword arguments. Plain
            functions run in the threadpool, coroutines on the event loop.
        registry: Compiled schema used for decoding and encoding

    Raises:
        KeyError: If ``service`` names an undeclared service.
        AttributeError: If ``implementation`` lacks a method.
    """
    if isinstance(service, str):
        found = registry.module.get_service(service)
        if found is None:
            raise KeyError(f"Unknown service: {service}")
        service = found

    for method in service.get_sorted_methods():
        path = service.method_path(method)
        handler = _make_handler(service, method, getattr(implementation, method.name), registry)
        router.add_api_route(
            path,
            handler,
            methods=["POST"],
            name=f"{service.name}.{method.name}",
            response_class=Response,
        )
        log.debug("route_mounted", service=service.name, method=method.name, path=path)


def _make_handler(service: Service, method: Method, target: Any, registry: Registry):
    request_codec = registry.request(service.name, method.name)
    encode = registry.encoder_for(method.return_type) if method.return_type else None

    async def handler(request: Request) -> Response:
        errors = ErrorBundle()
        params: dict[str, Any] = {}

        if method.parameters:
            body = await _read_json(request, errors)
            if errors.is_empty():
                decoded = request_codec.decode(body, errors)
                if decoded is not None:
                    errors.extend(request_codec.validate(decoded))
                    params = {f.name: getattr(decoded, f.name) for f in request_codec.fields}

        if not errors.is_empty():
            log.info(
                "request_rejected",
                service=service.name,
                method=method.name,
                errors=len(errors),
            )
            return JSONResponse(errors.to_json(), status_code=status.HTTP_400_BAD_REQUEST)

        try:
            if inspect.iscoroutinefunction(target):
                result = await target(**params)
            else:
                result = await run_in_threadpool(target, **params)
                if inspect.isawaitable(result):
                    result = await result
            if encode is None:
                return Response(status_code=status.HTTP_204_NO_CONTENT)
            return JSONResponse(encode(result))
        except Exception:
            log.exception("invocation_failed", service=service.name, method=method.name)
            return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    handler.__name__ = f"{service.name}_{method.name}"
    return handler


async def _read_json(request: Request, errors: ErrorBundle) -> Json:
    """Parse the request body; an unparseable body is reported as Expected OBJECT."""
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError):
        errors.error(Expected(OBJECT, None))
        return None
