"""
zkprover.service
================

The proving pipeline as a request/response service, shared by the JSON-RPC
server (and usable directly from Python):

    spec()            static capability record, no side effects
    prove(trace_json) parse → tx-count → chain-id → version/opcode gate
                      → parameters → aggregation proof → artifacts

``MockProverService`` answers ``prove`` with a fixed all-zero bundle of the
real sizes and never touches parameters or a backend; callers use it to
integration-test against the RPC surface.

``startup_check`` collects every deploy-time fault (chain id, circuit
version, missing or unofficial parameters) into a report instead of killing
the process, so both the server entrypoint and tests can observe it.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .artifacts import debug_dir_for, persist
from .backend import ProvingBackend, load_backend
from .circuit import AGG_DEGREE, DEGREE, MAX_CALLDATA, MAX_TXS, MOCK_FINAL_PAIR_LEN, MOCK_PROOF_LEN, CircuitKind
from .config import ProverConfig, check_chain_id
from .errors import CircuitVersionUnsupported, ParamsNotOfficial, ProverError
from .log import Stopwatch, log_info, log_warning
from .orchestrator import ProofBundle, ProverOrchestrator
from .params import (Parameters, check_official, ensure_exists, load_or_create_seed, load_params,
                     verify_authentic)
from .trace import BlockTrace
from .validate import TraceValidator
from .version import SUPPORTED_CIRCUIT_VERSIONS, check_circuit_version
from .workers import ProverPool

log = logging.getLogger("zkprover.service")


@dataclass(frozen=True)
class ZkSpec:
    degree: int
    agg_degree: int
    chain_id: int
    max_txs: int
    max_call_data: int

    @classmethod
    def for_chain(cls, chain_id: int) -> "ZkSpec":
        return cls(
            degree=DEGREE,
            agg_degree=AGG_DEGREE,
            chain_id=int(chain_id),
            max_txs=MAX_TXS,
            max_call_data=MAX_CALLDATA,
        )

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


# -----------------------------------------------------------------------------
# Startup validation
# -----------------------------------------------------------------------------


@dataclass
class StartupReport:
    chain_id: Optional[int] = None
    circuit_version: Optional[str] = None
    errors: List[ProverError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        if self.errors:
            raise self.errors[0]


def startup_check(
    cfg: ProverConfig,
    backend: Optional[ProvingBackend] = None,
    *,
    check_params: bool = True,
) -> StartupReport:
    """Validate deployment before serving. Never raises for expected faults."""
    report = StartupReport()
    try:
        report.chain_id = check_chain_id(cfg)
    except ProverError as e:
        report.errors.append(e)

    if backend is not None:
        reported = backend.circuit_version()
        report.circuit_version = reported
        if not check_circuit_version(reported):
            report.errors.append(CircuitVersionUnsupported(reported, SUPPORTED_CIRCUIT_VERSIONS))
        if getattr(backend, "development", False):
            msg = f"{type(backend).__name__} is a development backend, its proofs are not sound"
            log_warning(msg, log)
            report.warnings.append(msg)

    if check_params:
        try:
            ensure_exists(cfg.params_dir)
            for degree in (DEGREE, AGG_DEGREE):
                if verify_authentic(cfg.params_dir, degree, strict=cfg.strict_degree):
                    continue
                if cfg.allow_unofficial:
                    msg = f"using unofficial kzg params for degree {degree}"
                    log_warning(msg, log)
                    report.warnings.append(msg)
                else:
                    report.errors.append(ParamsNotOfficial(degree))
        except ProverError as e:
            report.errors.append(e)
    return report


# -----------------------------------------------------------------------------
# Services
# -----------------------------------------------------------------------------


class BaseProverService:
    mock = False

    def __init__(self, cfg: ProverConfig) -> None:
        self.cfg = cfg
        self.chain_id = check_chain_id(cfg)
        self._spec = ZkSpec.for_chain(self.chain_id)

    def spec(self) -> ZkSpec:
        return self._spec

    def prove(self, trace_json: Union[str, bytes]) -> ProofBundle:
        raise NotImplementedError

    async def aprove(self, trace_json: Union[str, bytes]) -> ProofBundle:
        return self.prove(trace_json)

    def close(self) -> None:
        pass


class ProverService(BaseProverService):
    """
    Live service. Parameters are loaded once on first use and shared by every
    worker; each worker owns its orchestrator/backend pair.
    """

    def __init__(
        self,
        cfg: ProverConfig,
        *,
        backend_factory: Optional[Any] = None,
    ) -> None:
        super().__init__(cfg)
        self.validator = TraceValidator(chain_id=self.chain_id)
        self._backend_factory = backend_factory
        self._lock = threading.Lock()
        self._pool: Optional[ProverPool] = None
        self._params: Optional[Parameters] = None
        self._agg_params: Optional[Parameters] = None
        self._seed: Optional[bytes] = None

    # -- wiring ---------------------------------------------------------------

    def _new_backend(self) -> ProvingBackend:
        if self._backend_factory is not None:
            return self._backend_factory()
        return load_backend(self.cfg.backend, seed=self._seed)

    def _new_orchestrator(self) -> ProverOrchestrator:
        return ProverOrchestrator(self._new_backend(), self._params, self._agg_params)

    def _ensure_pool(self) -> ProverPool:
        with self._lock:
            if self._pool is not None:
                return self._pool
            ensure_exists(self.cfg.params_dir)
            check_official(
                self.cfg.params_dir,
                strict=self.cfg.strict_degree,
                allow_unofficial=self.cfg.allow_unofficial,
            )
            timer = Stopwatch(log)
            self._params = load_params(self.cfg.params_dir, DEGREE)
            self._agg_params = load_params(self.cfg.params_dir, AGG_DEGREE)
            timer.end("finish loading params")
            self._seed = load_or_create_seed(self.cfg.seed_file)
            self._pool = ProverPool(self._new_orchestrator, workers=self.cfg.workers)
            return self._pool

    # -- pipeline -------------------------------------------------------------

    def _job(self, trace: BlockTrace):
        out_dir = Path(self.cfg.out_dir) / str(trace.height)

        def job(orchestrator: ProverOrchestrator) -> ProofBundle:
            bundle = orchestrator.run(trace, CircuitKind.AGG, debug_dir_for(out_dir))
            persist(out_dir, bundle)
            return bundle

        return job

    def validate(self, trace_json: Union[str, bytes]) -> BlockTrace:
        return self.validator.parse_and_validate(trace_json)

    def prove(self, trace_json: Union[str, bytes]) -> ProofBundle:
        trace = self.validate(trace_json)
        return self._ensure_pool().run(self._job(trace))

    async def aprove(self, trace_json: Union[str, bytes]) -> ProofBundle:
        # parsing and the first parameter load stay off the event loop
        trace = await asyncio.to_thread(self.validate, trace_json)
        pool = await asyncio.to_thread(self._ensure_pool)
        return await asyncio.wrap_future(pool.submit(self._job(trace)))

    def close(self) -> None:
        with self._lock:
            if self._pool is not None:
                self._pool.shutdown()
                self._pool = None


class MockProverService(BaseProverService):
    """Regardless of the received trace, returns a zero proof."""

    mock = True

    def prove(self, trace_json: Union[str, bytes]) -> ProofBundle:
        log_info("return zero proof", log)
        return ProofBundle(
            kind=CircuitKind.AGG,
            proof=bytes(MOCK_PROOF_LEN),
            final_pair=bytes(MOCK_FINAL_PAIR_LEN),
        )


def build_service(cfg: ProverConfig) -> BaseProverService:
    return MockProverService(cfg) if cfg.mock else ProverService(cfg)


__all__ = [
    "ZkSpec",
    "StartupReport",
    "startup_check",
    "BaseProverService",
    "ProverService",
    "MockProverService",
    "build_service",
]
