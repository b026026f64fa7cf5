"""
Circuit capacity constants and circuit kinds.

DEGREE / AGG_DEGREE can be overridden through the environment (read once at
import time); the capacity limits are fixed by the circuit build.
"""
from __future__ import annotations

import os
from enum import Enum


def _env_degree(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    return int(v.strip())


# Polynomial degree of the per-circuit (EVM / state) proofs.
DEGREE: int = _env_degree("DEGREE", 18)
# Polynomial degree of the aggregation circuit.
AGG_DEGREE: int = _env_degree("AGG_DEGREE", 25)

MAX_TXS: int = 25
MAX_CALLDATA: int = 400_000

# Largest domain size the setup tool will generate.
MAX_DEGREE: int = 30

# Mock server output sizes (match a real aggregation proof).
MOCK_PROOF_LEN: int = 4640
MOCK_FINAL_PAIR_LEN: int = 128


class CircuitKind(str, Enum):
    EVM = "evm"
    STATE = "state"
    AGG = "agg"

    @property
    def proof_filename(self) -> str:
        return f"{self.value}.proof"


VERIFIER_FILENAME = "verifier.sol"
# Files inside the agg.proof directory.
AGG_PROOF_FILENAME = "proof"
AGG_FINAL_PAIR_FILENAME = "final_pair"


def system_degrees() -> tuple[int, int]:
    """(DEGREE, AGG_DEGREE)"""
    return DEGREE, AGG_DEGREE


__all__ = [
    "DEGREE",
    "AGG_DEGREE",
    "MAX_TXS",
    "MAX_CALLDATA",
    "MAX_DEGREE",
    "MOCK_PROOF_LEN",
    "MOCK_FINAL_PAIR_LEN",
    "CircuitKind",
    "VERIFIER_FILENAME",
    "AGG_PROOF_FILENAME",
    "AGG_FINAL_PAIR_FILENAME",
    "system_degrees",
]
