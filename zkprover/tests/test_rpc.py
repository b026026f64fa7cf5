import json
import logging

import pytest

from zkprover.circuit import AGG_DEGREE, DEGREE
from zkprover.service import MockProverService
from zkprover.tests import (TEST_CHAIN_ID, make_trace, new_test_client, rpc_call, write_params,
                            write_system_params)


@pytest.fixture
def mock_client(cfg):
    return new_test_client(cfg.replace(mock=True))


@pytest.fixture
def live_client(cfg, official_params):
    with new_test_client(cfg) as client:
        yield client


def test_spec(mock_client):
    res = rpc_call(mock_client, "spec")
    assert res["result"] == {
        "degree": DEGREE,
        "agg_degree": AGG_DEGREE,
        "chain_id": TEST_CHAIN_ID,
        "max_txs": 25,
        "max_call_data": 400000,
    }


def test_spec_on_rpc_path(mock_client):
    resp = mock_client.post("/rpc", json={"jsonrpc": "2.0", "method": "spec", "params": [], "id": "a"})
    assert resp.json()["id"] == "a"
    assert resp.headers["X-Request-ID"]


def test_mock_prove(mock_client):
    res = rpc_call(mock_client, "prove", ["{}"])
    assert res["result"]["proof"] == [0] * 4640
    assert res["result"]["final_pair"] == [0] * 128


def test_prove(live_client, cfg):
    res = rpc_call(live_client, "prove", [make_trace(number=5)])
    assert len(res["result"]["proof"]) == 4640
    assert len(res["result"]["final_pair"]) == 128
    assert (cfg.out_dir / "5" / "agg.proof" / "proof").is_file()


def test_prove_named_param(live_client):
    res = rpc_call(live_client, "prove", {"trace": make_trace()})
    assert "proof" in res["result"]


def test_chain_id_mismatch(live_client, cfg):
    res = rpc_call(live_client, "prove", [make_trace(chain_id=1)], expect_error=True)
    assert res["error"] == {
        "code": 2001,
        "message": f"ChainId not matched, expected({TEST_CHAIN_ID}), actual(1)",
    }
    assert not cfg.out_dir.exists()


def test_too_many_txs(live_client):
    res = rpc_call(live_client, "prove", [make_trace(n_txs=26)], expect_error=True)
    assert res["error"]["code"] == 3000


def test_bad_trace(live_client):
    res = rpc_call(live_client, "prove", ["{oops"], expect_error=True)
    assert res["error"]["code"] == 2000
    res = rpc_call(live_client, "prove", [123], expect_error=True)
    assert res["error"]["code"] == 2000


def test_missing_params_surface_as_1000(cfg):
    client = new_test_client(cfg)
    res = rpc_call(client, "prove", [make_trace()], expect_error=True)
    assert res["error"]["code"] == 1000


def test_parse_error(mock_client):
    resp = mock_client.post("/", content=b"{bad json", headers={"content-type": "application/json"})
    assert resp.json()["error"]["code"] == -32700


def test_method_not_found(mock_client):
    res = rpc_call(mock_client, "nope", expect_error=True)
    assert res["error"]["code"] == -32601
    assert res["error"]["message"] == "Method not found"


def test_invalid_params(mock_client):
    res = rpc_call(mock_client, "prove", ["a", "b"], expect_error=True)
    assert res["error"]["code"] == -32602


def test_batch_and_notification(mock_client):
    batch = [
        {"jsonrpc": "2.0", "method": "spec", "id": 1},
        {"jsonrpc": "2.0", "method": "spec"},
        {"jsonrpc": "2.0", "method": "nope", "id": 2},
    ]
    data = mock_client.post("/", json=batch).json()
    assert [r["id"] for r in data] == [1, 2]
    assert "result" in data[0] and "error" in data[1]

    resp = mock_client.post("/", json={"jsonrpc": "2.0", "method": "spec"})
    assert resp.status_code == 204


def test_body_limit(cfg):
    client = new_test_client(cfg.replace(mock=True, max_body_bytes=64))
    resp = client.post("/", content=json.dumps({"jsonrpc": "2.0", "method": "prove", "params": ["x" * 100], "id": 1}))
    assert resp.status_code == 413
    assert resp.json()["error"]["code"] == -32600


def test_healthz_and_version(cfg):
    client = new_test_client(cfg, MockProverService(cfg))
    assert client.get("/healthz").json() == {"ok": True, "mock": True, "chainId": TEST_CHAIN_ID}
    assert "version" in client.get("/version").json()


def test_unofficial_params_surface_as_1001(cfg):
    write_system_params(cfg.params_dir, official=False)
    with new_test_client(cfg) as client:
        res = rpc_call(client, "prove", [make_trace()], expect_error=True)
    assert res["error"]["code"] == 1001
    assert not cfg.out_dir.exists()


def test_degree_header_mismatch_with_strict_degree(cfg, official_params):
    write_params(cfg.params_dir, AGG_DEGREE, header_degree=AGG_DEGREE + 1)
    with new_test_client(cfg.replace(strict_degree=True)) as client:
        res = rpc_call(client, "prove", [make_trace()], expect_error=True)
    assert res["error"]["code"] == 1001


def test_oversized_body_is_not_buffered_for_logging(cfg, caplog):
    client = new_test_client(cfg.replace(mock=True, max_body_bytes=64))
    payload = json.dumps({"jsonrpc": "2.0", "method": "prove", "params": ["x" * 100], "id": 1})
    with caplog.at_level(logging.INFO, logger="zkprover.rpc.access"):
        resp = client.post("/", content=payload)
    assert resp.status_code == 413
    records = [json.loads(r.getMessage()) for r in caplog.records if r.name == "zkprover.rpc.access"]
    assert records[-1]["status"] == 413
    assert "jsonrpc_method" not in records[-1]


def test_chunked_body_over_limit(cfg):
    client = new_test_client(cfg.replace(mock=True, max_body_bytes=64))
    resp = client.post("/", content=iter([b"[" + b" " * 50, b" " * 50 + b"]"]))
    assert resp.status_code == 413


def test_access_log_names_method(cfg, caplog):
    client = new_test_client(cfg.replace(mock=True))
    with caplog.at_level(logging.INFO, logger="zkprover.rpc.access"):
        rpc_call(client, "spec")
    records = [json.loads(r.getMessage()) for r in caplog.records if r.name == "zkprover.rpc.access"]
    assert records[-1]["jsonrpc_method"] == "spec"
