"""
Block execution trace model.

The trace is an opaque record for this control plane: only the fields needed
to gate and name a proving run are typed (chain id, header number,
transactions, version tag). Everything else is kept verbatim in the model's
extra fields and handed to the proving backend untouched.

Example (abridged):
    {
      "chainID": 909,
      "version": "v0.5.1",
      "header": {"number": "0x2a", "hash": "0x…", "timestamp": "0x65f0…"},
      "transactions": [{…}, {…}],
      "executionResults": […],
      "storageTrace": {…}
    }
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import TraceParseError

# Opcodes introduced by the Cancun upgrade; the circuits cannot prove them.
CANCUN_OPCODES = ("TSTORE", "TLOAD", "MCOPY")


def _quantity(v: Any) -> Any:
    """Accept ints and 0x-hex / decimal strings for numeric fields."""
    if isinstance(v, bool):
        raise ValueError("boolean is not a quantity")
    if isinstance(v, str):
        s = v.strip()
        if not s:
            raise ValueError("empty quantity")
        return int(s, 16) if s.lower().startswith("0x") else int(s, 10)
    return v


class BlockHeader(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="allow")

    number: int
    hash: Optional[str] = None
    timestamp: Optional[int] = None

    @field_validator("number", "timestamp", mode="before")
    @classmethod
    def _to_int(cls, v: Any) -> Any:
        return None if v is None else _quantity(v)


class BlockTrace(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="allow")

    chain_id: int = Field(alias="chainID")
    header: BlockHeader
    transactions: List[Dict[str, Any]] = Field(default_factory=list)
    version: Optional[str] = None

    @field_validator("chain_id", mode="before")
    @classmethod
    def _chain_id(cls, v: Any) -> Any:
        return _quantity(v)

    @property
    def height(self) -> int:
        return self.header.number

    @property
    def tx_count(self) -> int:
        return len(self.transactions)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


def parse_trace(raw: Union[str, bytes, bytearray]) -> BlockTrace:
    """Deserialize a JSON trace. Raises TraceParseError with the parser's message."""
    try:
        return BlockTrace.model_validate_json(raw)
    except ValidationError as e:
        raise TraceParseError(_short_validation_message(e)) from None


def _short_validation_message(e: ValidationError) -> str:
    errs = e.errors()
    if not errs:
        return str(e)
    first = errs[0]
    loc = ".".join(str(p) for p in first.get("loc", ()))
    msg = first.get("msg", "invalid trace")
    more = f" (+{len(errs) - 1} more)" if len(errs) > 1 else ""
    return f"{loc}: {msg}{more}" if loc else f"{msg}{more}"


def load_trace_file(path: Union[str, Path]) -> BlockTrace:
    p = Path(path)
    return parse_trace(p.read_bytes())


def is_cancun_trace(trace_json: Union[str, bytes]) -> bool:
    """True when the raw trace mentions any Cancun-only opcode."""
    text = trace_json.decode("utf-8", "replace") if isinstance(trace_json, (bytes, bytearray)) else trace_json
    return any(op in text for op in CANCUN_OPCODES)


__all__ = [
    "BlockHeader",
    "BlockTrace",
    "CANCUN_OPCODES",
    "parse_trace",
    "load_trace_file",
    "is_cancun_trace",
]
