"""
Offline batch proving.

Takes one trace file or a directory of ``*.json`` traces. Every trace is
loaded and gated first, so an oversized or foreign trace aborts the run
before any parameter file is read. Traces are then proved one after another on a
single orchestrator; the first failure aborts the run, and proofs already
written for earlier traces stay on disk.

Output for trace ``<name>.json`` goes to ``<out_dir>/<name>/``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Union

from .artifacts import debug_dir_for, persist
from .backend import ProvingBackend
from .circuit import AGG_DEGREE, DEGREE, CircuitKind
from .log import Stopwatch, log_info
from .orchestrator import ProofBundle, ProverOrchestrator
from .params import check_official, load_params
from .trace import BlockTrace, parse_trace
from .validate import TraceValidator

log = logging.getLogger("zkprover.batch")


def discover_traces(trace_path: Union[str, Path]) -> List[Path]:
    p = Path(trace_path)
    if p.is_dir():
        return sorted(c for c in p.iterdir() if c.is_file() and c.suffix == ".json")
    return [p]


def load_traces(trace_path: Union[str, Path], validator: TraceValidator) -> Dict[str, BlockTrace]:
    """name → trace, in file-name order; raises on the first bad trace."""
    traces: Dict[str, BlockTrace] = {}
    for path in discover_traces(trace_path):
        raw = path.read_bytes()
        traces[path.stem] = validator.validate(parse_trace(raw), raw)
    return traces


@dataclass
class BatchResult:
    outputs: Dict[str, Path] = field(default_factory=dict)
    bundles: Dict[str, ProofBundle] = field(default_factory=dict)


def run_batch(
    *,
    params_dir: Union[str, Path],
    trace_path: Union[str, Path],
    circuit: CircuitKind,
    backend: ProvingBackend,
    chain_id: int,
    out_dir: Union[str, Path] = ".",
    emit_verifier: bool = True,
    allow_unofficial: bool = False,
    strict_degree: bool = False,
) -> BatchResult:
    circuit = CircuitKind(circuit)
    traces = load_traces(trace_path, TraceValidator(chain_id=chain_id))

    timer = Stopwatch(log)
    check_official(params_dir, strict=strict_degree, allow_unofficial=allow_unofficial)
    params = load_params(params_dir, DEGREE)
    agg_params = load_params(params_dir, AGG_DEGREE)
    timer.end("finish loading params")

    orchestrator = ProverOrchestrator(backend, params, agg_params)

    result = BatchResult()
    outer = Stopwatch(log)
    for name, trace in traces.items():
        trace_out = Path(out_dir) / name
        bundle = orchestrator.run(
            trace, circuit, debug_dir_for(trace_out), emit_verifier=emit_verifier
        )
        persist(trace_out, bundle)
        result.outputs[name] = trace_out
        result.bundles[name] = bundle
    outer.end(f"finish generating all ({len(traces)} traces)")
    log_info(f"chain_id: {chain_id}", log)
    return result


__all__ = ["discover_traces", "load_traces", "BatchResult", "run_batch"]
