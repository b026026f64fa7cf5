from __future__ import annotations

import json
import logging
import typing as t

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from .. import config as prover_config
from ..backend import load_backend
from ..errors import InvalidRequest, ParseError, TraceParseError
from ..log import configure_logging, log_error, log_info
from ..service import BaseProverService, StartupReport, build_service, startup_check
from ..version import __version__, version_with_git
from .jsonrpc import Dispatcher, MethodRegistry
from .middleware import LoggingMiddleware

# -----------------------------------------------------------------------------
# Logger
# -----------------------------------------------------------------------------
log = logging.getLogger("zkprover.rpc.server")


# -----------------------------------------------------------------------------
# Methods
# -----------------------------------------------------------------------------
def build_registry(service: BaseProverService) -> MethodRegistry:
    """
    Bind the prover methods:
      spec()        -> {degree, agg_degree, chain_id, max_txs, max_call_data}
      prove(trace)  -> {proof: [u8], final_pair: [u8] | null}
    """
    registry = MethodRegistry()

    @registry.method("spec")
    def spec() -> t.Dict[str, int]:
        """Return the prover's specification."""
        return service.spec().to_dict()

    @registry.method("prove")
    async def prove(trace: str) -> t.Dict[str, t.Any]:
        """Return the proof generated for the trace (a JSON string)."""
        if not isinstance(trace, str):
            raise TraceParseError("trace must be a JSON string")
        bundle = await service.aprove(trace)
        return bundle.to_result()

    return registry


async def _read_body(request: Request, limit: int) -> t.Optional[bytes]:
    """Read the body chunk by chunk; None once it grows past ``limit``."""
    buf = bytearray()
    async for chunk in request.stream():
        buf.extend(chunk)
        if len(buf) > limit:
            return None
    return bytes(buf)


def _rpc_response(result: t.Any) -> Response:
    if result is None:
        return Response(status_code=204)
    return Response(
        content=json.dumps(result, separators=(",", ":")),
        media_type="application/json",
    )


# -----------------------------------------------------------------------------
# App factory
# -----------------------------------------------------------------------------
def create_app(
    cfg: prover_config.ProverConfig | None = None,
    service: BaseProverService | None = None,
) -> FastAPI:
    """
    Build the FastAPI app with:
      - POST /  and POST /rpc   (JSON-RPC)
      - GET  /healthz, /version
    """
    cfg = cfg or prover_config.load()
    configure_logging(cfg.log_level)
    service = service or build_service(cfg)
    dispatcher = Dispatcher(build_registry(service))

    app = FastAPI(
        title="zkprover JSON-RPC",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.add_middleware(LoggingMiddleware, max_body_bytes=cfg.max_body_bytes)
    app.state.service = service
    app.state.cfg = cfg

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        log_info("prover server stopping", log)
        service.close()

    async def rpc_endpoint(request: Request) -> Response:
        length = request.headers.get("content-length")
        body: t.Optional[bytes] = None
        if not (length and length.isdigit() and int(length) > cfg.max_body_bytes):
            body = await _read_body(request, cfg.max_body_bytes)
        if body is None:
            err = InvalidRequest(f"request body exceeds {cfg.max_body_bytes} bytes")
            return JSONResponse({"jsonrpc": "2.0", "id": None, "error": err.to_dict()}, status_code=413)
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            err = ParseError(str(e))
            return JSONResponse({"jsonrpc": "2.0", "id": None, "error": err.to_dict()})

        return _rpc_response(await dispatcher.dispatch(payload))

    app.add_api_route("/", rpc_endpoint, methods=["POST"])
    app.add_api_route("/rpc", rpc_endpoint, methods=["POST"])

    @app.get("/healthz")
    async def healthz() -> JSONResponse:
        return JSONResponse({"ok": True, "mock": service.mock, "chainId": service.chain_id})

    @app.get("/version")
    async def version() -> JSONResponse:
        return JSONResponse({"version": version_with_git()})

    return app


# -----------------------------------------------------------------------------
# Entrypoint (uvicorn)
# -----------------------------------------------------------------------------
def serve(cfg: prover_config.ProverConfig) -> StartupReport:
    """
    Validate the deployment, then run the server until interrupted.

    Returns the failing StartupReport (without serving) when validation fails.
    """
    configure_logging(cfg.log_level)
    backend = None
    if not cfg.mock:
        backend = load_backend(cfg.backend)
    report = startup_check(cfg, backend, check_params=not cfg.mock)
    if not report.ok:
        for err in report.errors:
            log_error(f"startup check failed: {err}", log)
        return report

    app = create_app(cfg)
    log_info(f"Prover server starting on {cfg.endpoint}. CHAIN_ID: {report.chain_id}", log)
    uvicorn.run(
        app,
        host=cfg.host,
        port=cfg.port,
        log_level=cfg.log_level.lower(),
        workers=1,
    )
    return report


__all__ = ["build_registry", "create_app", "serve"]
