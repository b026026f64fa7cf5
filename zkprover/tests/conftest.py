from __future__ import annotations

import pytest

from zkprover.backend import DigestBackend
from zkprover.params import create_params
from zkprover.tests import TEST_SEED, make_test_config, write_system_params

_ENV_VARS = (
    "CHAIN_ID",
    "ZKPROVER_CHAIN_ID",
    "ZKPROVER_HOST",
    "ZKPROVER_PORT",
    "ZKPROVER_PARAMS_DIR",
    "ZKPROVER_OUT_DIR",
    "ZKPROVER_SEED_FILE",
    "ZKPROVER_WORKERS",
    "ZKPROVER_MAX_BODY_BYTES",
    "ZKPROVER_BACKEND",
    "ZKPROVER_MOCK",
    "ZKPROVER_STRICT_DEGREE",
    "ZKPROVER_ALLOW_UNOFFICIAL",
    "ZKPROVER_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def cfg(tmp_path):
    return make_test_config(tmp_path)


@pytest.fixture
def official_params(cfg):
    """Authentic-looking files for DEGREE and AGG_DEGREE in cfg.params_dir."""
    return write_system_params(cfg.params_dir)


@pytest.fixture(scope="session")
def dev_params(tmp_path_factory):
    """(params, agg_params): small locally generated setups (degrees 2 and 3)."""
    d = tmp_path_factory.mktemp("dev_params")
    return create_params(d, 2, TEST_SEED), create_params(d, 3, TEST_SEED)


@pytest.fixture
def backend():
    return DigestBackend(seed=TEST_SEED)
