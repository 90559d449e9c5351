import logging.config
import os

import pytest
from pydantic import ValidationError

from airdropper.config import DEFAULT_ARTIFACTS_DIR, RunConfig
from airdropper.executor import DEFAULT_POLL_INTERVAL
from airdropper.logging_config import logging_config

ENV_VARS = (
    "AIRDROP_NODE_URL",
    "AIRDROP_CHUNK_SIZE",
    "AIRDROP_GAS_PRICE",
    "AIRDROP_ARTIFACTS_DIR",
    "AIRDROP_POLL_INTERVAL",
    "AIRDROP_TEST_MODE",
)


@pytest.fixture(autouse=True)
def clean_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    config = RunConfig.from_env(source_file="a.txt", ledger_file="l.json", node_url="http://n", chunk_size="10")
    assert config.chunk_size == 10
    assert config.gas_price is None
    assert config.test_mode is False
    assert config.artifacts_dir == DEFAULT_ARTIFACTS_DIR
    assert config.poll_interval == DEFAULT_POLL_INTERVAL


def test_environment_fills_gaps_and_arguments_win(monkeypatch) -> None:
    monkeypatch.setenv("AIRDROP_NODE_URL", "ws://env-node")
    monkeypatch.setenv("AIRDROP_CHUNK_SIZE", "50")
    monkeypatch.setenv("AIRDROP_GAS_PRICE", "20")
    monkeypatch.setenv("AIRDROP_TEST_MODE", "true")
    monkeypatch.setenv("AIRDROP_POLL_INTERVAL", "0.5")

    config = RunConfig.from_env(source_file="a.txt", ledger_file="l.json", chunk_size="25", node_url=None)

    assert config.node_url == "ws://env-node"
    assert config.chunk_size == 25
    assert config.gas_price == 20
    assert config.test_mode is True
    assert config.poll_interval == 0.5


def test_dotenv_in_working_directory(tmp_path) -> None:
    (tmp_path / ".env").write_text("AIRDROP_CHUNK_SIZE=7\n")
    try:
        config = RunConfig.from_env(source_file="a.txt", ledger_file="l.json", node_url="http://n")
        assert config.chunk_size == 7
    finally:
        os.environ.pop("AIRDROP_CHUNK_SIZE", None)


@pytest.mark.parametrize("overrides", [{"chunk_size": 0}, {"chunk_size": 5, "gas_price": -1}, {"chunk_size": None}])
def test_invalid_values_rejected(overrides) -> None:
    with pytest.raises(ValidationError):
        RunConfig.from_env(source_file="a.txt", ledger_file="l.json", node_url="http://n", **overrides)


def test_logging_config_is_valid(tmp_path) -> None:
    config = logging_config("DEBUG", str(tmp_path / "airdrop.log"))
    logging.config.dictConfig(config)
    assert logging.getLogger("airdropper").level == logging.DEBUG
    assert logging.getLogger("web3").level == logging.WARNING

    assert "file" not in logging_config("INFO", "")["handlers"]
