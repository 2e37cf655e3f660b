from __future__ import annotations

import asyncio
import logging
import typing as t

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from rosetta import config as rosetta_config
from rosetta import version as rosetta_version
from rosetta.errors import MalformedValueError, RosettaError, http_status_hint, to_error
from rosetta.metrics import http_metrics_middleware, mount_metrics, rosetta_metrics
from rosetta.middleware import LoggingMiddleware
from rosetta.models import MetadataRequest, NetworkRequest
from rosetta.node import FullNode
from rosetta.node.lotus import LotusNode
from rosetta.options import OptionsRegistry, default_registry
from rosetta.services import NetworkAPIService

# -----------------------------------------------------------------------------
# Logger
# -----------------------------------------------------------------------------
log = logging.getLogger("rosetta.server")

Endpoint = t.Callable[[t.Optional[float]], t.Awaitable[BaseModel]]


def _deadline(cfg: rosetta_config.RosettaConfig) -> t.Optional[float]:
    if cfg.request_timeout is None:
        return None
    return asyncio.get_running_loop().time() + cfg.request_timeout


def _error_response(request: Request, err: RosettaError) -> JSONResponse:
    request.state.rosetta_code = err.code
    return JSONResponse(err.to_dict(), status_code=http_status_hint(err))


async def _serve(
    request: Request,
    cfg: rosetta_config.RosettaConfig,
    endpoint: str,
    call: Endpoint,
) -> JSONResponse:
    """
    Run one Rosetta endpoint under the request deadline and map failures to
    Rosetta Error bodies. Cancellation is not intercepted.
    """
    obs = rosetta_metrics.observe(endpoint)
    try:
        result = await call(_deadline(cfg))
    except RosettaError as exc:
        log.warning("%s failed: %s", endpoint, exc, exc_info=exc.__cause__ is not None)
        obs.error(str(exc.code))
        return _error_response(request, exc)
    except Exception as exc:
        log.exception("Unhandled error in %s", endpoint)
        err = to_error(exc)
        obs.error(str(err.code))
        return _error_response(request, err)
    obs.ok()
    return JSONResponse(result.model_dump(mode="json", exclude_none=True))


# -----------------------------------------------------------------------------
# App factory
# -----------------------------------------------------------------------------
def create_app(
    cfg: rosetta_config.RosettaConfig | None = None,
    *,
    node: FullNode | None = None,
    registry: OptionsRegistry | None = None,
) -> FastAPI:
    """
    Build the FastAPI app with:
      - POST /network/list, /network/status, /network/options
      - GET /metrics (when enabled), /healthz, /version

    When `node` is omitted a LotusNode is built from the config and closed on
    shutdown; a caller-supplied node is left open.
    """
    cfg = cfg or rosetta_config.load()

    # Basic logging if caller hasn't configured it
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=getattr(logging, cfg.log_level.upper(), logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    owns_node = node is None
    if node is None:
        node = LotusNode(cfg.node.url, token=cfg.node.token, timeout=cfg.node.timeout)

    service = NetworkAPIService(
        node,
        registry or default_registry(),
        sync_tolerance=cfg.sync_tolerance,
        node_timeout=cfg.node.timeout,
        network=cfg.network,
    )

    app = FastAPI(
        title="Filecoin Rosetta",
        version=rosetta_version.__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.service = service

    app.add_middleware(LoggingMiddleware)
    if cfg.metrics_enabled:
        app.add_middleware(http_metrics_middleware)
        mount_metrics(app)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = [".".join(str(p) for p in e.get("loc", ())) for e in exc.errors()]
        return _error_response(request, MalformedValueError(fields=fields))

    # --- Lifecycle ---
    @app.on_event("startup")
    async def _on_startup() -> None:
        log.info(
            "Rosetta server starting",
            extra={
                "host": cfg.host,
                "port": cfg.port,
                "network": cfg.network,
                "syncTolerance": cfg.sync_tolerance,
            },
        )

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        log.info("Rosetta server stopping")
        if owns_node and isinstance(node, LotusNode):
            await node.aclose()

    # --- Rosetta network endpoints ---
    @app.post("/network/list")
    async def network_list(request: Request, body: MetadataRequest) -> JSONResponse:
        return await _serve(request, cfg, "/network/list", service.list_networks)

    @app.post("/network/status")
    async def network_status(request: Request, body: NetworkRequest) -> JSONResponse:
        async def call(deadline: t.Optional[float]) -> BaseModel:
            await service.validate_network(body.network_identifier, deadline)
            return await service.network_status(deadline)

        return await _serve(request, cfg, "/network/status", call)

    @app.post("/network/options")
    async def network_options(request: Request, body: NetworkRequest) -> JSONResponse:
        async def call(deadline: t.Optional[float]) -> BaseModel:
            await service.validate_network(body.network_identifier, deadline)
            return await service.network_options(deadline)

        return await _serve(request, cfg, "/network/options", call)

    # --- Health endpoints ---
    @app.get("/healthz")
    async def healthz() -> JSONResponse:
        return JSONResponse({"ok": True, "version": rosetta_version.__version__})

    @app.get("/version")
    async def version() -> JSONResponse:
        return JSONResponse(
            {
                "version": rosetta_version.version_with_git(),
                "rosettaVersion": rosetta_version.ROSETTA_SPEC_VERSION,
            }
        )

    return app


# -----------------------------------------------------------------------------
# Entrypoint (uvicorn)
# -----------------------------------------------------------------------------
def main(cfg: rosetta_config.RosettaConfig | None = None) -> None:
    cfg = cfg or rosetta_config.load()
    app = create_app(cfg)
    # Lazy import uvicorn so the module is importable in tests without uvicorn installed
    import uvicorn

    uvicorn.run(
        app,
        host=cfg.host,
        port=cfg.port,
        log_level=cfg.log_level.lower(),
        workers=1,
    )


if __name__ == "__main__":
    main()
