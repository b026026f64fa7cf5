import asyncio
import threading

import pytest

from zkprover.circuit import AGG_DEGREE, DEGREE, MAX_CALLDATA, MAX_TXS, CircuitKind
from zkprover.errors import (ChainIdMismatch, CircuitVersionUnsupported, ConfigError,
                             ErrorCode, ParamsNotFound, ParamsNotOfficial)
from zkprover.backend import DigestBackend
from zkprover.service import (MockProverService, ProverService, ZkSpec, build_service,
                              startup_check)
from zkprover.tests import TEST_CHAIN_ID, TEST_SEED, make_trace, write_params, write_system_params


def test_spec_is_static(cfg):
    service = MockProverService(cfg)
    assert service.spec() == service.spec()
    assert service.spec().to_dict() == {
        "degree": DEGREE,
        "agg_degree": AGG_DEGREE,
        "chain_id": TEST_CHAIN_ID,
        "max_txs": MAX_TXS,
        "max_call_data": MAX_CALLDATA,
    }
    assert ZkSpec.for_chain(TEST_CHAIN_ID) == service.spec()


def test_service_requires_chain_id(cfg):
    with pytest.raises(ConfigError):
        build_service(cfg.replace(chain_id=None))


def test_mock_returns_zero_proof(cfg):
    service = build_service(cfg.replace(mock=True))
    assert service.mock
    bundle = service.prove("not even json")
    assert bundle.proof == bytes(4640)
    assert bundle.final_pair == bytes(128)
    assert not cfg.params_dir.exists()


def test_prove_writes_aggregation_artifacts(cfg, official_params):
    service = ProverService(cfg, backend_factory=lambda: DigestBackend(seed=TEST_SEED))
    try:
        bundle = service.prove(make_trace(number=7))
    finally:
        service.close()
    assert bundle.kind is CircuitKind.AGG
    assert len(bundle.proof) == 4640
    assert len(bundle.final_pair) == 128

    out = cfg.out_dir / "7"
    assert (out / "agg.proof" / "proof").read_bytes() == bundle.proof
    assert (out / "agg.proof" / "final_pair").read_bytes() == bundle.final_pair
    assert (out / "verifier.sol").is_file()
    assert (out / "debug" / "evm.proof").is_file()
    assert cfg.seed_file.is_file()


def test_prove_with_configured_backend(cfg, official_params):
    service = ProverService(cfg)
    try:
        first = service.prove(make_trace())
        second = service.prove(make_trace())
    finally:
        service.close()
    # the seed file is created once and reused, so proofs repeat
    assert first == second


def test_aprove(cfg, official_params):
    service = ProverService(cfg)
    try:
        bundle = asyncio.run(service.aprove(make_trace()))
    finally:
        service.close()
    assert len(bundle.proof) == 4640


def test_prove_chain_mismatch_writes_nothing(cfg, official_params):
    service = ProverService(cfg)
    with pytest.raises(ChainIdMismatch):
        service.prove(make_trace(chain_id=1))
    assert not cfg.out_dir.exists()
    service.close()


def test_prove_without_params(cfg):
    service = ProverService(cfg)
    with pytest.raises(ParamsNotFound):
        service.prove(make_trace())
    service.close()


# ---- startup_check -----------------------------------------------------------


def test_startup_ok(cfg, official_params):
    report = startup_check(cfg, DigestBackend())
    assert report.ok
    assert report.chain_id == TEST_CHAIN_ID
    assert report.circuit_version == "0.1.5"
    report.raise_for_errors()


def test_startup_collects_errors(cfg):
    report = startup_check(cfg.replace(chain_id=None))
    codes = [e.code for e in report.errors]
    assert ErrorCode.CONFIG_ERROR in codes
    assert ErrorCode.KZG_PARAMS_NOT_FOUND in codes
    with pytest.raises(ConfigError):
        report.raise_for_errors()


def test_startup_rejects_unofficial_params(cfg):
    write_system_params(cfg.params_dir, official=False)
    report = startup_check(cfg)
    assert not report.ok
    assert {type(e) for e in report.errors} == {ParamsNotOfficial}
    assert sorted(e.degree for e in report.errors) == sorted([DEGREE, AGG_DEGREE])


def test_startup_allows_unofficial_when_asked(cfg):
    write_system_params(cfg.params_dir, official=False)
    report = startup_check(cfg.replace(allow_unofficial=True))
    assert report.ok
    assert len(report.warnings) == 2


def test_startup_rejects_circuit_version(cfg, official_params):
    class OldBackend(DigestBackend):
        def circuit_version(self):
            return "0.1.4"

    report = startup_check(cfg, OldBackend())
    assert [type(e) for e in report.errors] == [CircuitVersionUnsupported]


def test_startup_skips_params_in_mock_mode(cfg):
    assert startup_check(cfg, check_params=False).ok


# ---- parameter authenticity on the prove path -----------------------------------


def test_prove_rejects_unofficial_params(cfg):
    write_system_params(cfg.params_dir, official=False)
    service = ProverService(cfg)
    with pytest.raises(ParamsNotOfficial) as ei:
        service.prove(make_trace())
    assert ei.value.code == ErrorCode.KZG_PARAMS_NOT_OFFICIAL
    assert not cfg.out_dir.exists()
    assert not cfg.seed_file.exists()
    service.close()


def test_prove_accepts_unofficial_params_when_allowed(cfg, caplog):
    write_system_params(cfg.params_dir, official=False)
    service = ProverService(cfg.replace(allow_unofficial=True))
    try:
        bundle = service.prove(make_trace())
    finally:
        service.close()
    assert len(bundle.proof) == 4640
    assert "using unofficial kzg params" in caplog.text


def test_prove_strict_degree_header(cfg, official_params):
    write_params(cfg.params_dir, DEGREE, header_degree=DEGREE - 1)

    strict = ProverService(cfg.replace(strict_degree=True))
    with pytest.raises(ParamsNotOfficial):
        strict.prove(make_trace())
    strict.close()

    lenient = ProverService(cfg)
    try:
        assert lenient.prove(make_trace()).proof
    finally:
        lenient.close()


def test_aprove_keeps_blocking_work_off_the_loop(cfg, official_params, monkeypatch):
    import zkprover.service as service_mod

    threads = []
    real_load = service_mod.load_params

    def recording_load(params_dir, degree):
        threads.append(threading.current_thread().name)
        return real_load(params_dir, degree)

    monkeypatch.setattr(service_mod, "load_params", recording_load)
    service = ProverService(cfg)
    real_validate = service.validate

    def recording_validate(raw):
        threads.append(threading.current_thread().name)
        return real_validate(raw)

    service.validate = recording_validate
    loop_thread = threading.current_thread().name
    try:
        asyncio.run(service.aprove(make_trace()))
    finally:
        service.close()
    assert len(threads) == 3
    assert loop_thread not in threads


def test_startup_warns_for_development_backend(cfg, official_params):
    report = startup_check(cfg, DigestBackend())
    assert report.ok
    assert any("development backend" in w for w in report.warnings)
