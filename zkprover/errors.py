"""
Errors for zkprover.

This module provides:
- ErrorCode: stable numeric codes surfaced to RPC clients
    1xxx  operator / configuration faults
    2xxx  trace-content faults
    3xxx  capacity / spec faults
- ProverError and one subclass per code. Construction logs the error, so the
  failure site is visible in the server log even when the caller only sees the
  JSON-RPC envelope.
- JSON-RPC 2.0 structural errors used by zkprover.rpc.jsonrpc.
- ProvingFailure: wraps anything the proving backend raises. Not
  classified further; surfaces as JSON-RPC "Internal error".

Notes:
- Codes are stable across releases; append new ones, never renumber.
"""
from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, Optional

from .log import log_error


class ErrorCode(IntEnum):
    # Human error starts with 1
    KZG_PARAMS_NOT_FOUND = 1000
    KZG_PARAMS_NOT_OFFICIAL = 1001
    CIRCUIT_VERSION_UNSUPPORTED = 1002
    CONFIG_ERROR = 1003
    KZG_PARAMS_CORRUPT = 1004
    # Trace error starts with 2
    TRACE_PARSE_ERROR = 2000
    CHAIN_ID_NOT_MATCHED = 2001
    TRACE_VERSION_UNSUPPORTED = 2002
    UNSUPPORTED_OPCODE = 2003
    # Spec error starts with 3
    TOO_MANY_TXS = 3000

    @classmethod
    def from_code(cls, code: int) -> "ErrorCode":
        try:
            return cls(int(code))
        except ValueError:
            raise ValueError(f"not supported code: {code!r}") from None


class ProverError(Exception):
    """Numerically coded failure with an optional message."""

    code: ErrorCode

    def __init__(self, code: ErrorCode, message: Optional[str] = None) -> None:
        self.code = ErrorCode(code)
        self.message = message
        super().__init__(str(self))
        log_error(str(self))

    def to_dict(self) -> Dict[str, Any]:
        err: Dict[str, Any] = {"code": int(self.code)}
        if self.message is not None:
            err["message"] = self.message
        return err

    def __str__(self) -> str:
        if self.message is None:
            return f"ProverError {{ code: {self.code.name} }}"
        return f"ProverError {{ code: {self.code.name}, message: {self.message!r} }}"


class ParamsNotFound(ProverError):
    def __init__(self, degree: Optional[int] = None, params_dir: Optional[str] = None) -> None:
        msg = None
        if degree is not None:
            msg = f"kzg params for degree {degree} not found"
            if params_dir:
                msg += f" in {params_dir}"
        super().__init__(ErrorCode.KZG_PARAMS_NOT_FOUND, msg)
        self.degree = degree


class ParamsNotOfficial(ProverError):
    def __init__(self, degree: int) -> None:
        super().__init__(
            ErrorCode.KZG_PARAMS_NOT_OFFICIAL,
            f"The official kzg parameters should be used for degree {degree}.",
        )
        self.degree = degree


class ParamsCorrupt(ProverError):
    def __init__(self, path: str, detail: str) -> None:
        super().__init__(ErrorCode.KZG_PARAMS_CORRUPT, f"kzg params file {path} is corrupt: {detail}")


class CircuitVersionUnsupported(ProverError):
    def __init__(self, reported: str, supported: tuple[str, ...]) -> None:
        super().__init__(
            ErrorCode.CIRCUIT_VERSION_UNSUPPORTED,
            f"circuit version {reported!r} not supported, expected one of {list(supported)}",
        )


class ConfigError(ProverError):
    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.CONFIG_ERROR, message)


class TraceParseError(ProverError):
    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.TRACE_PARSE_ERROR, message)


class ChainIdMismatch(ProverError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            ErrorCode.CHAIN_ID_NOT_MATCHED,
            f"ChainId not matched, expected({expected}), actual({actual})",
        )
        self.expected = expected
        self.actual = actual


class TraceVersionUnsupported(ProverError):
    def __init__(self, version: str) -> None:
        super().__init__(
            ErrorCode.TRACE_VERSION_UNSUPPORTED, f"trace version {version!r} not supported"
        )


class UnsupportedOpcode(ProverError):
    def __init__(self, detail: str = "trace uses opcodes the circuits do not support") -> None:
        super().__init__(ErrorCode.UNSUPPORTED_OPCODE, detail)


class TooManyTransactions(ProverError):
    def __init__(self, max_txs: int, actual: int) -> None:
        super().__init__(
            ErrorCode.TOO_MANY_TXS, f"Too many txs, max_txs({max_txs}), actual({actual})"
        )
        self.max_txs = max_txs
        self.actual = actual


class VersionParseError(ValueError):
    """Version string does not look like [v]MAJOR.MINOR.PATCH[suffix]."""


class ProvingFailure(RuntimeError):
    """The proving backend failed. Proving is deterministic, so this is never retried."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"cannot generate {stage} proof: {cause}")
        self.stage = stage
        self.cause = cause


# ───────────────────────────────────────────────────────────────────────────────
# JSON-RPC 2.0 (transport-level) errors
# ───────────────────────────────────────────────────────────────────────────────

class JsonRpcCode(IntEnum):
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class JsonRpcError(Exception):
    code: int = JsonRpcCode.INTERNAL_ERROR
    message: str = "Internal error"

    def __init__(self, detail: Any = None) -> None:
        self.data = detail
        super().__init__(self.message if detail is None else f"{self.message}: {detail}")

    def to_dict(self) -> Dict[str, Any]:
        err: Dict[str, Any] = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            err["data"] = self.data
        return err


class ParseError(JsonRpcError):
    code = JsonRpcCode.PARSE_ERROR
    message = "Parse error"


class InvalidRequest(JsonRpcError):
    code = JsonRpcCode.INVALID_REQUEST
    message = "Invalid Request"


class MethodNotFound(JsonRpcError):
    code = JsonRpcCode.METHOD_NOT_FOUND
    message = "Method not found"


class InvalidParams(JsonRpcError):
    code = JsonRpcCode.INVALID_PARAMS
    message = "Invalid params"


class InternalError(JsonRpcError):
    code = JsonRpcCode.INTERNAL_ERROR
    message = "Internal error"


def to_error_dict(exc: BaseException) -> Dict[str, Any]:
    """
    Convert any exception into a JSON-RPC error object.
    - ProverError → its numeric code and message
    - JsonRpcError → as-is
    - anything else (incl. ProvingFailure) → Internal error
    """
    if isinstance(exc, ProverError):
        return exc.to_dict()
    if isinstance(exc, JsonRpcError):
        return exc.to_dict()
    return InternalError(exc.__class__.__name__).to_dict()


__all__ = [
    "ErrorCode",
    "ProverError",
    "ParamsNotFound",
    "ParamsNotOfficial",
    "ParamsCorrupt",
    "CircuitVersionUnsupported",
    "ConfigError",
    "TraceParseError",
    "ChainIdMismatch",
    "TraceVersionUnsupported",
    "UnsupportedOpcode",
    "TooManyTransactions",
    "VersionParseError",
    "ProvingFailure",
    "JsonRpcCode",
    "JsonRpcError",
    "ParseError",
    "InvalidRequest",
    "MethodNotFound",
    "InvalidParams",
    "InternalError",
    "to_error_dict",
]
