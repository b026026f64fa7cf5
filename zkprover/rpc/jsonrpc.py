"""
zkprover RPC - JSON-RPC 2.0 Dispatcher
======================================

Features
--------
• JSON-RPC 2.0: single & batch, named & positional params, notifications.
• Prover errors keep their numeric code (1xxx/2xxx/3xxx) and message.
• Anything else (including proving failures) becomes -32603 Internal error.
• Methods may be sync or async.

Framework-light: the FastAPI wiring lives in zkprover/rpc/server.py.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from ..errors import (InvalidParams, InvalidRequest, JsonRpcError, MethodNotFound,
                      ProverError, to_error_dict)

log = logging.getLogger("zkprover.rpc.jsonrpc")

Json = Dict[str, Any]
Params = Union[List[Any], Dict[str, Any]]
CallableLike = Union[Callable[..., Any], Callable[..., Awaitable[Any]]]


# --------------------------------------------------------------------------------------
# Method registry
# --------------------------------------------------------------------------------------


class MethodRegistry:
    """
    Name → callable registry with decorator sugar.
    """

    def __init__(self) -> None:
        self._methods: Dict[str, CallableLike] = {}

    def method(self, name: str) -> Callable[[CallableLike], CallableLike]:
        def deco(fn: CallableLike) -> CallableLike:
            if not isinstance(name, str) or not name:
                raise ValueError("Method name must be non-empty string")
            if name in self._methods:
                raise ValueError(f"Method already registered: {name}")
            self._methods[name] = fn
            log.debug("JSON-RPC register %s → %s", name, getattr(fn, "__qualname__", fn))
            return fn

        return deco

    def register(self, name: str, fn: CallableLike) -> None:
        self.method(name)(fn)

    def get(self, name: str) -> CallableLike:
        fn = self._methods.get(name)
        if fn is None:
            raise MethodNotFound(name)
        return fn

    @property
    def names(self) -> List[str]:
        return sorted(self._methods.keys())


# --------------------------------------------------------------------------------------
# Arg binding & execution
# --------------------------------------------------------------------------------------


def _bind_call_args(fn: CallableLike, params: Optional[Params]) -> Tuple[List[Any], Dict[str, Any]]:
    """Bind positional/named params to `fn` using its signature."""
    sig = inspect.signature(fn)
    args_obj: Params = [] if params is None else params
    try:
        if isinstance(args_obj, list):
            bound = sig.bind(*args_obj)
        elif isinstance(args_obj, dict):
            bound = sig.bind(**args_obj)
        else:
            raise InvalidParams("params must be array or object")
    except TypeError as e:
        # Signature mismatch (wrong arity/unknown kw)
        raise InvalidParams(str(e)) from None
    return list(bound.args), dict(bound.kwargs)


async def _maybe_await(x: Any) -> Any:
    if inspect.isawaitable(x):
        return await x
    return x


# --------------------------------------------------------------------------------------
# Core dispatch
# --------------------------------------------------------------------------------------

_NO_ID = object()  # sentinel for notification


def _validate_id(id_val: Any) -> Any:
    # Spec allows string, number, or null for id
    if id_val is None or isinstance(id_val, (str, int, float)):
        return id_val
    raise InvalidRequest("id must be string, number, or null")


def _validate_request_obj(obj: Json) -> Tuple[str, Optional[Params], Any]:
    """
    Validate base request object; returns (method, params, id).
    Does NOT validate method existence.
    """
    if not isinstance(obj, dict):
        raise InvalidRequest("Request must be an object")
    if obj.get("jsonrpc") != "2.0":
        raise InvalidRequest("jsonrpc must be '2.0'")

    method = obj.get("method")
    if not isinstance(method, str) or not method:
        raise InvalidRequest("method must be a non-empty string")

    params: Optional[Params] = obj.get("params")
    if params is not None and not isinstance(params, (list, dict)):
        raise InvalidParams("params, if present, must be array or object")

    req_id = obj["id"] if "id" in obj else _NO_ID
    if req_id is not _NO_ID:
        _validate_id(req_id)
    return method, params, req_id


class Dispatcher:
    def __init__(self, registry: MethodRegistry) -> None:
        self.registry = registry

    async def dispatch_one(self, obj: Json) -> Optional[Json]:
        """
        Dispatch a single JSON-RPC request object.
        Returns a response object or None (for notifications).
        """
        req_id = obj.get("id", _NO_ID) if isinstance(obj, dict) else None
        try:
            method_name, params, req_id = _validate_request_obj(obj)
            fn = self.registry.get(method_name)
            args, kwargs = _bind_call_args(fn, params)
            result = await _maybe_await(fn(*args, **kwargs))
            if req_id is _NO_ID:
                return None
            return {"jsonrpc": "2.0", "id": req_id, "result": result}
        except Exception as exc:
            if not isinstance(exc, (ProverError, JsonRpcError)):
                log.exception("Unhandled error in JSON-RPC method %s", obj.get("method") if isinstance(obj, dict) else None)
            if req_id is _NO_ID:
                log.debug("Error in notification: %s", exc)
                return None
            return {"jsonrpc": "2.0", "id": req_id, "error": to_error_dict(exc)}

    async def dispatch(self, payload: Any) -> Union[Json, List[Json], None]:
        """
        Dispatch a parsed JSON payload (single object or batch).
        """
        if isinstance(payload, list):
            if len(payload) == 0:
                return {"jsonrpc": "2.0", "id": None, "error": InvalidRequest("empty batch").to_dict()}
            results: List[Optional[Json]] = []
            for obj in payload:
                if isinstance(obj, dict):
                    results.append(await self.dispatch_one(obj))
                else:
                    results.append(
                        {
                            "jsonrpc": "2.0",
                            "id": None,
                            "error": InvalidRequest("Request must be an object").to_dict(),
                        }
                    )
            return [r for r in results if r is not None]

        if isinstance(payload, dict):
            return await self.dispatch_one(payload)

        return {
            "jsonrpc": "2.0",
            "id": None,
            "error": InvalidRequest("payload must be object or array").to_dict(),
        }


__all__ = ["MethodRegistry", "Dispatcher"]
