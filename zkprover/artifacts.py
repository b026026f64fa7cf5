"""
Persist proof bundles.

Layout under one trace's output directory:

    <out>/evm.proof            EVM run
    <out>/state.proof          STATE run
    <out>/agg.proof/proof      AGG run
    <out>/agg.proof/final_pair
    <out>/verifier.sol         AGG run with verifier emission
    <out>/debug/…              backend diagnostics (owned by the backend)

The verifier sits at the top level because it is a deployment artifact; the
debug directory holds developer diagnostics only.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Union

from .circuit import AGG_FINAL_PAIR_FILENAME, AGG_PROOF_FILENAME, VERIFIER_FILENAME, CircuitKind
from .log import log_info
from .orchestrator import ProofBundle

log = logging.getLogger("zkprover.artifacts")

DEBUG_DIRNAME = "debug"


def debug_dir_for(out_dir: Union[str, Path]) -> Path:
    return Path(out_dir) / DEBUG_DIRNAME


def persist(out_dir: Union[str, Path], bundle: ProofBundle) -> List[Path]:
    """Write ``bundle`` below ``out_dir`` (created if needed); return the written paths."""
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []

    if bundle.kind is CircuitKind.AGG:
        agg_dir = out / bundle.kind.proof_filename
        agg_dir.mkdir(parents=True, exist_ok=True)
        proof_path = agg_dir / AGG_PROOF_FILENAME
        proof_path.write_bytes(bundle.proof)
        written.append(proof_path)
        if bundle.final_pair is not None:
            pair_path = agg_dir / AGG_FINAL_PAIR_FILENAME
            pair_path.write_bytes(bundle.final_pair)
            written.append(pair_path)
        if bundle.verifier is not None:
            sol_path = out / VERIFIER_FILENAME
            sol_path.write_text(bundle.verifier, encoding="utf-8")
            written.append(sol_path)
    else:
        proof_path = out / bundle.kind.proof_filename
        proof_path.write_bytes(bundle.proof)
        written.append(proof_path)

    log_info(f"output files to {out}", log)
    return written


__all__ = ["DEBUG_DIRNAME", "debug_dir_for", "persist"]
