"""
zkprover.backend
================

The proving capability is an external collaborator: circuit arithmetization
and polynomial commitments live behind the ``ProvingBackend`` protocol and are
never touched by the control plane.

The debug directory is an explicit keyword on every proving call. A backend
instance therefore carries no per-run state and may be reused serially; it is
still not assumed to be reentrant, so each worker owns its own instance (see
zkprover.workers).

``DigestBackend`` is the development backend bundled with the package. It
performs NO cryptography: proofs are SHAKE-256 expansions of the trace, the
parameter digests and the prover seed. It exists so the whole pipeline
(gating, orchestration, artifacts, RPC) can run and be tested without the
native prover. Production deployments point ``ZKPROVER_BACKEND`` at the real
prover binding.
"""

from __future__ import annotations

import hashlib
import importlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Protocol, runtime_checkable

from .circuit import MOCK_FINAL_PAIR_LEN, MOCK_PROOF_LEN, CircuitKind
from .params import FIXED_SEED, Parameters
from .trace import BlockTrace
from .version import CIRCUIT_VERSION

log = logging.getLogger("zkprover.backend")


@dataclass(frozen=True)
class AggregationProof:
    proof: bytes
    final_pair: bytes
    evm_proof: bytes
    state_proof: bytes


@runtime_checkable
class ProvingBackend(Protocol):
    """
    Protocol implemented by a proving capability.

    Implementations MUST be deterministic given identical inputs, MUST confine
    intermediate artifacts to ``debug_dir``, and signal failure by raising.
    """

    def circuit_version(self) -> str:
        """Self-reported circuit build version (MAJOR.MINOR.PATCH)."""

    def prove_circuit(
        self, kind: CircuitKind, trace: BlockTrace, params: Parameters, *, debug_dir: Path
    ) -> bytes:
        """Prove one target circuit (EVM or STATE) and return raw proof bytes."""

    def prove_aggregation(
        self,
        trace: BlockTrace,
        params: Parameters,
        agg_params: Parameters,
        *,
        debug_dir: Path,
    ) -> AggregationProof:
        """Prove both target circuits and fold them into one aggregation proof."""

    def solidity_verifier(self, agg_params: Parameters, proof: AggregationProof) -> str:
        """Return Solidity source of an on-chain verifier for ``proof``."""


# ---- development backend ----------------------------------------------------

_CIRCUIT_PROOF_LEN = {CircuitKind.EVM: 1_536, CircuitKind.STATE: 1_280}


def _expand(label: bytes, *parts: bytes, length: int) -> bytes:
    h = hashlib.shake_256(label)
    for p in parts:
        h.update(len(p).to_bytes(8, "little"))
        h.update(p)
    return h.digest(length)


class DigestBackend:
    """Deterministic, non-cryptographic stand-in for the native prover."""

    name = "digest"
    development = True

    def __init__(self, seed: bytes = FIXED_SEED) -> None:
        self.seed = bytes(seed)

    def circuit_version(self) -> str:
        return CIRCUIT_VERSION

    def _trace_bytes(self, trace: BlockTrace) -> bytes:
        return trace.to_json().encode("utf-8")

    def prove_circuit(
        self, kind: CircuitKind, trace: BlockTrace, params: Parameters, *, debug_dir: Path
    ) -> bytes:
        kind = CircuitKind(kind)
        if kind is CircuitKind.AGG:
            raise ValueError("use prove_aggregation for the aggregation circuit")
        tag = kind.value.encode()
        vk = _expand(b"vk/" + tag, params.digest, length=256)
        proof = _expand(
            b"proof/" + tag,
            self._trace_bytes(trace),
            params.digest,
            self.seed,
            length=_CIRCUIT_PROOF_LEN[kind],
        )
        debug_dir.mkdir(parents=True, exist_ok=True)
        (debug_dir / f"{kind.value}.vk").write_bytes(vk)
        (debug_dir / f"{kind.value}.proof").write_bytes(proof)
        log.debug("%s proof for block %s: %d bytes", kind.value, trace.height, len(proof))
        return proof

    def prove_aggregation(
        self,
        trace: BlockTrace,
        params: Parameters,
        agg_params: Parameters,
        *,
        debug_dir: Path,
    ) -> AggregationProof:
        evm = self.prove_circuit(CircuitKind.EVM, trace, params, debug_dir=debug_dir)
        state = self.prove_circuit(CircuitKind.STATE, trace, params, debug_dir=debug_dir)
        (debug_dir / "agg.vk").write_bytes(_expand(b"vk/agg", agg_params.digest, length=256))
        proof = _expand(b"proof/agg", evm, state, agg_params.digest, self.seed, length=MOCK_PROOF_LEN)
        final_pair = _expand(b"final_pair", proof, length=MOCK_FINAL_PAIR_LEN)
        return AggregationProof(proof=proof, final_pair=final_pair, evm_proof=evm, state_proof=state)

    def solidity_verifier(self, agg_params: Parameters, proof: AggregationProof) -> str:
        (x0, x1), (y0, y1) = agg_params.s_g2
        vk_hash = hashlib.sha3_256(_expand(b"vk/agg", agg_params.digest, length=256)).hexdigest()
        return _VERIFIER_TEMPLATE.format(
            degree=agg_params.degree,
            proof_len=len(proof.proof),
            vk_hash=vk_hash,
            sx0=hex(x0),
            sx1=hex(x1),
            sy0=hex(y0),
            sy1=hex(y1),
        )


_VERIFIER_TEMPLATE = """\
// SPDX-License-Identifier: MIT
// Generated by zkprover (development backend). Not a sound verifier.
pragma solidity ^0.8.19;

contract ZkEvmVerifier {{
    uint256 public constant AGG_DEGREE = {degree};
    uint256 public constant PROOF_LENGTH = {proof_len};
    bytes32 public constant VK_HASH = 0x{vk_hash};

    // s * G2 from the aggregation parameters
    uint256 internal constant S_G2_X0 = {sx0};
    uint256 internal constant S_G2_X1 = {sx1};
    uint256 internal constant S_G2_Y0 = {sy0};
    uint256 internal constant S_G2_Y1 = {sy1};

    function verify(bytes calldata proof, bytes calldata finalPair) external pure returns (bool) {{
        return proof.length == PROOF_LENGTH && finalPair.length == 128;
    }}
}}
"""


def load_backend(spec: str, *, seed: bytes = FIXED_SEED) -> ProvingBackend:
    """
    Resolve ``"package.module:attr"`` and build a backend from it.

    ``attr`` may be a class or a factory; it is called with ``seed=``.
    """
    mod_name, sep, attr = spec.partition(":")
    if not sep or not mod_name or not attr:
        raise ValueError(f"backend must look like 'module:attr', got {spec!r}")
    module = importlib.import_module(mod_name)
    factory: Callable[..., Any] = getattr(module, attr)
    backend = factory(seed=seed)
    if not isinstance(backend, ProvingBackend):
        raise TypeError(f"{spec} did not produce a ProvingBackend")
    return backend


__all__ = ["AggregationProof", "ProvingBackend", "DigestBackend", "load_backend"]
