"""
zkprover.orchestrator
=====================

Sequences proof requests against a proving backend and assembles the result
into a ProofBundle.

- EVM / STATE: one target-circuit proof, raw bytes.
- AGG: both target proofs folded by the backend into one aggregation proof
  plus its finalization pair, and (optionally) the Solidity verifier source.

Every call receives its own ``debug_dir``; nothing about a run is stored on
the orchestrator or the backend, so one instance can serve consecutive runs
without leaking state between them. Backend failures are wrapped in
ProvingFailure and never retried.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .backend import ProvingBackend
from .circuit import AGG_DEGREE, CircuitKind
from .errors import ParamsNotFound, ProvingFailure
from .log import Stopwatch, log_info
from .params import Parameters
from .trace import BlockTrace

log = logging.getLogger("zkprover.orchestrator")


@dataclass(frozen=True)
class ProofBundle:
    """
    Result of one proving run.

    Exactly one shape is populated: a single-circuit proof (EVM/STATE,
    ``final_pair`` is None) or an aggregation proof with its finalization pair.
    """

    kind: CircuitKind
    proof: bytes
    final_pair: Optional[bytes] = None
    verifier: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind is CircuitKind.AGG:
            if self.final_pair is None:
                raise ValueError("aggregation bundle requires a final pair")
        else:
            if self.final_pair is not None or self.verifier is not None:
                raise ValueError(f"{self.kind.value} bundle carries only a proof")

    def to_result(self) -> Dict[str, Any]:
        """JSON-RPC result shape: byte strings as arrays of ints."""
        return {
            "proof": list(self.proof),
            "final_pair": None if self.final_pair is None else list(self.final_pair),
        }


class ProverOrchestrator:
    def __init__(
        self,
        backend: ProvingBackend,
        params: Parameters,
        agg_params: Optional[Parameters] = None,
    ) -> None:
        self.backend = backend
        self.params = params
        self.agg_params = agg_params

    def run(
        self,
        trace: BlockTrace,
        kind: CircuitKind,
        debug_dir: Path,
        *,
        emit_verifier: bool = True,
    ) -> ProofBundle:
        kind = CircuitKind(kind)
        debug_dir = Path(debug_dir)
        log_info(f"start creating {kind.value} proof for block {trace.height}", log)
        timer = Stopwatch(log)

        if kind is CircuitKind.AGG:
            bundle = self._run_agg(trace, debug_dir, emit_verifier)
        else:
            try:
                proof = self.backend.prove_circuit(kind, trace, self.params, debug_dir=debug_dir)
            except Exception as e:
                raise ProvingFailure(kind.value, e) from e
            bundle = ProofBundle(kind=kind, proof=bytes(proof))

        timer.end(f"finish generating {kind.value} proof")
        return bundle

    def _run_agg(self, trace: BlockTrace, debug_dir: Path, emit_verifier: bool) -> ProofBundle:
        if self.agg_params is None:
            raise ParamsNotFound(AGG_DEGREE)
        try:
            agg = self.backend.prove_aggregation(
                trace, self.params, self.agg_params, debug_dir=debug_dir
            )
        except Exception as e:
            raise ProvingFailure(CircuitKind.AGG.value, e) from e

        verifier = None
        if emit_verifier:
            try:
                verifier = self.backend.solidity_verifier(self.agg_params, agg)
            except Exception as e:
                raise ProvingFailure("verifier", e) from e
        return ProofBundle(
            kind=CircuitKind.AGG,
            proof=bytes(agg.proof),
            final_pair=bytes(agg.final_pair),
            verifier=verifier,
        )


__all__ = ["ProofBundle", "ProverOrchestrator"]
