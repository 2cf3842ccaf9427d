"""Settings loading from JSON, environment and .env files."""

from __future__ import annotations

import json
import os
from decimal import Decimal

import pytest

from shmon_bot.config import ACTIVE_NETWORK, ConfigError, Settings, load_dotenv_file, load_settings

KEY = "0x" + "11" * 32


def test_defaults_without_sources() -> None:
    settings = load_settings(environ={})
    assert settings.network == ACTIVE_NETWORK
    assert settings.private_key == ""
    assert settings.gas.max_fee_gwei == Decimal("52")
    assert settings.gas.priority_fee_gwei == Decimal("2")
    assert settings.gas.gas_limit == 60000
    assert settings.effective_rpc_url == "https://testnet-rpc.monad.xyz"


def test_environment_overrides_file(tmp_path) -> None:
    path = tmp_path / "bot.json"
    path.write_text(json.dumps({
        "private_key": "from-file",
        "rpc_url": "http://file:8545",
        "gas": {"gas_limit": 90000},
        "cycle": {"deposit_amount": "5", "redeem_amount": "all"},
    }))
    env = {"PRIVATE_KEY": KEY, "SHMON_MAX_FEE_GWEI": "60", "SHMON_TICK_SECONDS": "5"}

    settings = load_settings(path, environ=env)

    assert settings.private_key == KEY
    assert settings.rpc_url == "http://file:8545"
    assert settings.gas.max_fee_gwei == Decimal("60")
    assert settings.gas.gas_limit == 90000
    assert settings.tick_seconds == 5
    assert settings.cycle.deposit_amount == "5"
    assert settings.cycle.redeem_all


def test_keyword_overrides_win_and_none_is_ignored() -> None:
    settings = load_settings(environ={"SHMON_RPC_URL": "http://env"}, rpc_url="http://cli", network=None)
    assert settings.rpc_url == "http://cli"
    assert settings.network == ACTIVE_NETWORK


def test_unknown_override_is_rejected() -> None:
    with pytest.raises(ConfigError):
        load_settings(environ={}, colour="blue")


def test_malformed_values(tmp_path) -> None:
    with pytest.raises(ConfigError):
        load_settings(environ={"SHMON_GAS_LIMIT": "lots"})

    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError):
        load_settings(path, environ={})


def test_missing_config_file_falls_back(tmp_path) -> None:
    settings = load_settings(tmp_path / "absent.json", environ={"PRIVATE_KEY": KEY})
    assert settings.private_key == KEY


def test_validate() -> None:
    Settings(private_key=KEY).validate()

    with pytest.raises(ConfigError):
        Settings().validate()
    with pytest.raises(ConfigError):
        Settings(private_key=KEY, network="mainnet").validate()
    with pytest.raises(ConfigError):
        Settings(private_key=KEY, max_consecutive_faults=-1).validate()

    bad_fees = Settings(private_key=KEY)
    bad_fees.gas.priority_fee_gwei = Decimal("100")
    with pytest.raises(ConfigError):
        bad_fees.validate()


@pytest.mark.parametrize("field,value", [
    ("retry_cooldown_minutes", -1),
    ("receipt_timeout", 0),
    ("tick_seconds", 0),
])
def test_validate_rejects_bad_timing(field, value) -> None:
    settings = Settings(private_key=KEY)
    setattr(settings, field, value)
    with pytest.raises(ConfigError):
        settings.validate()


def test_masked_key_never_shows_full_key() -> None:
    masked = Settings(private_key=KEY).masked_key()
    assert masked.startswith("0x1111")
    assert KEY not in masked
    assert Settings(private_key="short").masked_key() == "***"


def test_dotenv_does_not_override_existing(tmp_path, monkeypatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# wallet\n"
        "PRIVATE_KEY='abc123'\n"
        "export SHMON_NETWORK=monad-testnet\n"
        "SHMON_RPC_URL=http://from-file\n"
        "\n"
    )
    # set then delete so monkeypatch restores a clean environment afterwards
    for name in ("PRIVATE_KEY", "SHMON_NETWORK"):
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    monkeypatch.setenv("SHMON_RPC_URL", "http://already-set")

    assert load_dotenv_file(env_file) == 3
    assert os.environ["PRIVATE_KEY"] == "abc123"
    assert os.environ["SHMON_NETWORK"] == "monad-testnet"
    assert os.environ["SHMON_RPC_URL"] == "http://already-set"


def test_dotenv_missing_file(tmp_path) -> None:
    assert load_dotenv_file(tmp_path / "nope.env") == 0
