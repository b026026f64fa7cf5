"""
zkprover configuration.

Tunables for the prover service and the batch tools:
- host/port of the JSON-RPC endpoint
- chain id served by this prover
- parameter / output / seed locations
- worker count and request-body ceiling
- proving backend, mock mode, log level

Environment variables (examples):
  CHAIN_ID=909                      (ZKPROVER_CHAIN_ID also accepted)
  ZKPROVER_HOST=0.0.0.0
  ZKPROVER_PORT=3030
  ZKPROVER_PARAMS_DIR=./kzg_params
  ZKPROVER_OUT_DIR=./out_proof
  ZKPROVER_SEED_FILE=./rng_seed
  ZKPROVER_WORKERS=3
  ZKPROVER_MAX_BODY_BYTES=32000000
  ZKPROVER_BACKEND=zkprover.backend:DigestBackend
  ZKPROVER_MOCK=false
  ZKPROVER_STRICT_DEGREE=false
  ZKPROVER_ALLOW_UNOFFICIAL=false   (development parameters only)
  ZKPROVER_LOG_LEVEL=INFO

Notes
- Paths beginning with ~ are expanded.
- This module has no external deps (no dotenv). Use your process manager to inject env.
"""
from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigError

DEFAULT_BACKEND = "zkprover.backend:DigestBackend"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v is not None else default


def _env_bool(name: str, default: bool) -> bool:
    v = _env(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_int(name: str, default: int) -> int:
    v = _env(name)
    if v is None:
        return default
    try:
        return int(v.strip())
    except ValueError:
        return default


def _env_path(name: str, default: str) -> Path:
    return Path(_env(name, default) or default).expanduser()


def _env_chain_id() -> Optional[int]:
    """CHAIN_ID wins over ZKPROVER_CHAIN_ID; None when unset or not a number."""
    raw = _env("CHAIN_ID") or _env("ZKPROVER_CHAIN_ID")
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip(), 0)
    except ValueError:
        return None


@dataclass(frozen=True)
class ProverConfig:
    host: str = "127.0.0.1"
    port: int = 3030
    chain_id: Optional[int] = None
    params_dir: Path = Path("./kzg_params")
    out_dir: Path = Path("./out_proof")
    seed_file: Path = Path("./rng_seed")
    workers: int = 3
    max_body_bytes: int = 32_000_000
    backend: str = DEFAULT_BACKEND
    mock: bool = False
    strict_degree: bool = False
    allow_unofficial: bool = False
    log_level: str = "INFO"

    @property
    def endpoint(self) -> str:
        return f"{self.host}:{self.port}"

    def replace(self, **changes) -> "ProverConfig":
        return dataclasses.replace(self, **changes)


def load() -> ProverConfig:
    """
    Build a ProverConfig from environment variables with sensible defaults.
    """
    return ProverConfig(
        host=_env("ZKPROVER_HOST", "127.0.0.1") or "127.0.0.1",
        port=_env_int("ZKPROVER_PORT", 3030),
        chain_id=_env_chain_id(),
        params_dir=_env_path("ZKPROVER_PARAMS_DIR", "./kzg_params"),
        out_dir=_env_path("ZKPROVER_OUT_DIR", "./out_proof"),
        seed_file=_env_path("ZKPROVER_SEED_FILE", "./rng_seed"),
        workers=max(1, _env_int("ZKPROVER_WORKERS", 3)),
        max_body_bytes=_env_int("ZKPROVER_MAX_BODY_BYTES", 32_000_000),
        backend=_env("ZKPROVER_BACKEND", DEFAULT_BACKEND) or DEFAULT_BACKEND,
        mock=_env_bool("ZKPROVER_MOCK", False),
        strict_degree=_env_bool("ZKPROVER_STRICT_DEGREE", False),
        allow_unofficial=_env_bool("ZKPROVER_ALLOW_UNOFFICIAL", False),
        log_level=(_env("ZKPROVER_LOG_LEVEL", "INFO") or "INFO").upper(),
    )


def check_chain_id(cfg: ProverConfig) -> int:
    """Return the configured chain id, or raise ConfigError when it is missing."""
    if cfg.chain_id is None:
        raise ConfigError("CHAIN_ID is not set (export CHAIN_ID=<number>)")
    return int(cfg.chain_id)


def parse_endpoint(endpoint: str) -> tuple[str, int]:
    """'127.0.0.1:3030' -> ('127.0.0.1', 3030)"""
    host, sep, port = endpoint.rpartition(":")
    if not sep or not host:
        raise ConfigError(f"endpoint must look like HOST:PORT, got {endpoint!r}")
    try:
        return host, int(port)
    except ValueError:
        raise ConfigError(f"endpoint port is not a number: {endpoint!r}") from None


__all__ = ["ProverConfig", "DEFAULT_BACKEND", "load", "check_chain_id", "parse_endpoint"]
