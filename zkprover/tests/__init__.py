"""
Test utilities for zkprover.

Usage in tests:
    from zkprover.tests import make_trace, new_test_client, rpc_call

    def test_spec(cfg):
        client = new_test_client(cfg)
        res = rpc_call(client, "spec")
        assert res["result"]["chain_id"] == cfg.chain_id

Parameter files come in two flavours:
  - write_params(dir, degree)                 ceremony header (passes the
    authenticity check), no powers; cheap to create.
  - write_params(dir, degree, official=False) same layout with a locally
    known secret; never authentic.
"""
from __future__ import annotations

import json
import struct
import typing as t
from pathlib import Path

from fastapi.testclient import TestClient
from py_ecc.optimized_bn128 import G1, multiply, normalize

from zkprover.circuit import AGG_DEGREE, DEGREE
from zkprover.config import ProverConfig
from zkprover.params import OFFICIAL_SG1, encode_g2, encode_header, g1_generator, params_path
from zkprover.rpc import server as rpc_server
from zkprover.service import BaseProverService

TEST_CHAIN_ID = 909
TEST_SEED = bytes(range(16))


def _dev_sg1() -> tuple[int, int]:
    x, y = normalize(multiply(G1, 7))
    return int(x.n), int(y.n)


def write_params(
    params_dir: t.Union[str, Path],
    degree: int,
    *,
    official: bool = True,
    header_degree: t.Optional[int] = None,
    s_g1: t.Optional[tuple[int, int]] = None,
) -> Path:
    """Write a header-only parameter file (no extra powers)."""
    if s_g1 is None:
        s_g1 = OFFICIAL_SG1 if official else _dev_sg1()
    k = degree if header_degree is None else header_degree
    path = params_path(params_dir, degree)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(
        encode_header(k, g1_generator(), s_g1)
        + struct.pack("<I", 0)
        + encode_g2(((1, 2), (3, 4)))
    )
    return path


def write_system_params(params_dir: t.Union[str, Path], *, official: bool = True) -> Path:
    for degree in (DEGREE, AGG_DEGREE):
        write_params(params_dir, degree, official=official)
    return Path(params_dir)


def make_trace(
    *,
    chain_id: t.Any = TEST_CHAIN_ID,
    n_txs: int = 2,
    number: t.Any = 42,
    version: t.Optional[str] = "v0.5.1",
    **extra: t.Any,
) -> str:
    """Minimal trace JSON; extra keywords are added verbatim at the top level."""
    obj: dict = {
        "chainID": chain_id,
        "header": {"number": number, "hash": "0x" + "ab" * 32, "timestamp": "0x65f00000"},
        "transactions": [
            {"type": 2, "nonce": i, "to": "0x" + "11" * 20, "value": "0x0", "data": "0x"}
            for i in range(n_txs)
        ],
        "executionResults": [{"gas": 21000, "failed": False, "structLogs": []} for _ in range(n_txs)],
        "storageTrace": {"rootBefore": "0x" + "00" * 32, "rootAfter": "0x" + "00" * 32},
    }
    if version is not None:
        obj["version"] = version
    obj.update(extra)
    return json.dumps(obj)


def make_test_config(tmpdir: t.Union[str, Path], **overrides: t.Any) -> ProverConfig:
    """Config rooted in ``tmpdir`` with quiet logs and two workers."""
    root = Path(tmpdir)
    cfg = ProverConfig(
        host="127.0.0.1",
        port=0,  # unused by TestClient
        chain_id=TEST_CHAIN_ID,
        params_dir=root / "kzg_params",
        out_dir=root / "out_proof",
        seed_file=root / "rng_seed",
        workers=2,
        log_level="ERROR",
    )
    return cfg.replace(**overrides) if overrides else cfg


def new_test_client(
    cfg: ProverConfig, service: t.Optional[BaseProverService] = None
) -> TestClient:
    return TestClient(rpc_server.create_app(cfg, service))


def rpc_call(
    client: TestClient,
    method: str,
    params: t.Any | None = None,
    *,
    id: t.Any = 1,
    expect_error: bool = False,
) -> dict:
    """POST a JSON-RPC request to / and return the parsed response."""
    payload: dict = {"jsonrpc": "2.0", "method": method, "id": id}
    if params is not None:
        payload["params"] = params
    resp = client.post("/", json=payload)
    assert resp.status_code == 200, f"HTTP {resp.status_code}: {resp.text}"
    data = resp.json()
    if expect_error:
        assert "error" in data, f"expected JSON-RPC error, got {data}"
    else:
        assert "result" in data, f"expected JSON-RPC result, got {data}"
    return data


__all__ = [
    "TEST_CHAIN_ID",
    "TEST_SEED",
    "write_params",
    "write_system_params",
    "make_trace",
    "make_test_config",
    "new_test_client",
    "rpc_call",
]
