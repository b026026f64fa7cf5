"""
Input gate run before any parameter load or proving call.

Checks run cheapest first and stop at the first failure:
  1. structural parse          -> TraceParseError
  2. tx count <= MAX_TXS       -> TooManyTransactions   (circuit capacity)
  3. chain id == configured    -> ChainIdMismatch
  4. trace version allow-listed (when the trace carries one)
                               -> TraceVersionUnsupported
  5. no Cancun-only opcodes    -> UnsupportedOpcode

The gate is a pure predicate: it never touches parameters or the backend.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Union

from .circuit import MAX_TXS
from .errors import (ChainIdMismatch, TooManyTransactions, TraceVersionUnsupported,
                     UnsupportedOpcode, VersionParseError)
from .trace import BlockTrace, is_cancun_trace, parse_trace
from .version import SUPPORTED_TRACE_VERSIONS, check_trace_version


def check_tx_count(trace: BlockTrace, max_txs: int = MAX_TXS) -> None:
    if trace.tx_count > max_txs:
        raise TooManyTransactions(max_txs, trace.tx_count)


def check_chain_id(trace: BlockTrace, chain_id: int) -> None:
    if trace.chain_id != chain_id:
        raise ChainIdMismatch(chain_id, trace.chain_id)


def check_version(trace: BlockTrace, supported: Iterable[str] = SUPPORTED_TRACE_VERSIONS) -> None:
    if trace.version is None:
        return
    try:
        ok = check_trace_version(trace.version, supported)
    except VersionParseError:
        ok = False
    if not ok:
        raise TraceVersionUnsupported(trace.version)


@dataclass(frozen=True)
class TraceValidator:
    chain_id: int
    max_txs: int = MAX_TXS
    supported_versions: tuple[str, ...] = SUPPORTED_TRACE_VERSIONS
    reject_cancun: bool = True

    def validate(self, trace: BlockTrace, raw: Optional[Union[str, bytes]] = None) -> BlockTrace:
        check_tx_count(trace, self.max_txs)
        check_chain_id(trace, self.chain_id)
        check_version(trace, self.supported_versions)
        if self.reject_cancun and raw is not None and is_cancun_trace(raw):
            raise UnsupportedOpcode("Cancun opcodes (TSTORE/TLOAD/MCOPY) are not supported")
        return trace

    def parse_and_validate(self, raw: Union[str, bytes]) -> BlockTrace:
        return self.validate(parse_trace(raw), raw)


__all__ = ["TraceValidator", "check_tx_count", "check_chain_id", "check_version"]
