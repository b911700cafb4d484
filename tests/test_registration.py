import subprocess
import sys
from pathlib import Path

import pytest
from dotenv import dotenv_values

from balance_watch.errors import WatchlistError
from balance_watch.models import WatchEntry
from balance_watch.registration import (
    add_entry,
    build_entry,
    format_entry,
    save_webhook_url,
    validate_webhook_url,
)
from balance_watch.watchlist import load_watchlist

from conftest import BTC_ADDRESS, EVM_ADDRESS, RPC_URL, write_watchlist

WEBHOOK_URL = "https://discord.com/api/webhooks/123/secret-token"


# -----------------------------------------------------------------------------
# Input validation
# -----------------------------------------------------------------------------

def test_build_bitcoin_entry_drops_rpc_url():
    entry = build_entry(BTC_ADDRESS, "Bitcoin", 50_000_000, rpc_url=RPC_URL)
    assert entry == WatchEntry(address=BTC_ADDRESS, chain="Bitcoin", alert_balance=50_000_000)


def test_build_evm_entry():
    entry = build_entry(EVM_ADDRESS, "Sepolia", 10**18, rpc_url=RPC_URL)
    assert entry.rpc_url == RPC_URL
    assert entry.alert_balance == 10**18


@pytest.mark.parametrize("chain", ["Ethereum", "bitcoin", ""])
def test_unknown_network_rejected(chain):
    with pytest.raises(ValueError, match="Invalid network"):
        build_entry(EVM_ADDRESS, chain, 1, rpc_url=RPC_URL)


@pytest.mark.parametrize("rpc_url", ["", "not a url", "ftp://rpc.example"])
def test_bad_rpc_url_rejected(rpc_url):
    with pytest.raises(ValueError, match="Invalid RPC URL"):
        build_entry(EVM_ADDRESS, "Arbitrum", 1, rpc_url=rpc_url)


@pytest.mark.parametrize("address", [
    "d8dA6BF26964aF9D7eEd9e03E53415D37aA96045",    # no 0x
    "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA9604",    # 39 hex digits
    "0xg8dA6BF26964aF9D7eEd9e03E53415D37aA96045",   # non-hex
    BTC_ADDRESS,
])
def test_bad_evm_address_rejected(address):
    with pytest.raises(ValueError, match="Invalid address format"):
        build_entry(address, "Sepolia", 1, rpc_url=RPC_URL)


@pytest.mark.parametrize("address", ["", "tb1q/../../x", "tb1q w508"])
def test_bad_bitcoin_address_rejected(address):
    with pytest.raises(ValueError, match="Invalid address format"):
        build_entry(address, "Bitcoin", 1)


@pytest.mark.parametrize("alert_balance", [0, -1, True, "100"])
def test_alert_balance_must_be_positive_integer(alert_balance):
    with pytest.raises(ValueError, match="Invalid alert balance"):
        build_entry(BTC_ADDRESS, "Bitcoin", alert_balance)


@pytest.mark.parametrize("url", ["", "discord.com/api/webhooks/1", "ftp://host/hook"])
def test_bad_webhook_url_rejected(url):
    with pytest.raises(ValueError, match="Invalid webhook URL"):
        validate_webhook_url(url)


# -----------------------------------------------------------------------------
# Watch-list writes
# -----------------------------------------------------------------------------

def test_format_entry_is_loadable_toml(tmp_path):
    entry = build_entry(EVM_ADDRESS, "Sepolia", 10**18, rpc_url=RPC_URL)
    path = tmp_path / "watch.toml"
    path.write_text(format_entry(entry), encoding="utf-8")

    assert load_watchlist(path) == [entry]


def test_add_entry_creates_file(tmp_path):
    path = tmp_path / "AddressAndChain.toml"
    entry = build_entry(BTC_ADDRESS, "Bitcoin", 50_000_000)

    entries = add_entry(path, entry)

    assert entries == [entry]
    assert load_watchlist(path) == [entry]


def test_add_entry_appends_and_keeps_existing(tmp_path, btc_entry):
    path = write_watchlist(tmp_path / "watch.toml", [btc_entry])
    path.write_text("# my wallets\n" + path.read_text(encoding="utf-8"), encoding="utf-8")
    new_entry = build_entry(EVM_ADDRESS, "Sepolia", 1, rpc_url=RPC_URL)

    entries = add_entry(path, new_entry)

    assert entries == [btc_entry, new_entry]
    assert load_watchlist(path) == [btc_entry, new_entry]
    assert path.read_text(encoding="utf-8").startswith("# my wallets\n")


def test_add_entry_replace(tmp_path, btc_entry):
    path = write_watchlist(tmp_path / "watch.toml", [btc_entry])
    new_entry = build_entry(EVM_ADDRESS, "Arbitrum", 5, rpc_url=RPC_URL)

    add_entry(path, new_entry, replace=True)

    assert load_watchlist(path) == [new_entry]


def test_duplicate_entry_rejected_and_file_unchanged(tmp_path, btc_entry):
    path = write_watchlist(tmp_path / "watch.toml", [btc_entry])
    before = path.read_text(encoding="utf-8")

    with pytest.raises(WatchlistError, match="already"):
        add_entry(path, build_entry(BTC_ADDRESS, "Bitcoin", 1))

    assert path.read_text(encoding="utf-8") == before


def test_invalid_existing_file_is_not_overwritten(tmp_path):
    path = tmp_path / "watch.toml"
    path.write_text("[[addresses]\nbroken", encoding="utf-8")

    with pytest.raises(WatchlistError, match="Invalid TOML"):
        add_entry(path, build_entry(BTC_ADDRESS, "Bitcoin", 1))

    assert path.read_text(encoding="utf-8") == "[[addresses]\nbroken"


def test_no_temporary_file_left_behind(tmp_path):
    path = tmp_path / "watch.toml"
    add_entry(path, build_entry(BTC_ADDRESS, "Bitcoin", 1))

    assert [p.name for p in tmp_path.iterdir()] == ["watch.toml"]


def test_failed_rename_keeps_original(tmp_path, monkeypatch, btc_entry):
    from balance_watch import registration

    path = write_watchlist(tmp_path / "watch.toml", [btc_entry])
    before = path.read_text(encoding="utf-8")

    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(registration.os, "replace", failing_replace)

    with pytest.raises(OSError):
        add_entry(path, build_entry(EVM_ADDRESS, "Sepolia", 1, rpc_url=RPC_URL))

    assert path.read_text(encoding="utf-8") == before
    assert not (tmp_path / "watch.toml.tmp").exists()


# -----------------------------------------------------------------------------
# .env updates
# -----------------------------------------------------------------------------

def test_save_webhook_creates_env_file(tmp_path):
    env_path = tmp_path / ".env"

    save_webhook_url(env_path, WEBHOOK_URL)

    assert dotenv_values(env_path)["WEBHOOK"] == WEBHOOK_URL


def test_save_webhook_replaces_previous_value(tmp_path):
    env_path = tmp_path / ".env"
    env_path.write_text("LOG_LEVEL=DEBUG\nWEBHOOK=https://old.example/hook\n", encoding="utf-8")

    save_webhook_url(env_path, WEBHOOK_URL)

    values = dotenv_values(env_path)
    assert values["WEBHOOK"] == WEBHOOK_URL
    assert values["LOG_LEVEL"] == "DEBUG"
    assert env_path.read_text(encoding="utf-8").count("WEBHOOK=") == 1


def test_save_webhook_rejects_bad_url(tmp_path):
    env_path = tmp_path / ".env"
    with pytest.raises(ValueError):
        save_webhook_url(env_path, "not-a-url")
    assert not env_path.exists()


def test_webhook_url_not_logged(tmp_path, caplog):
    with caplog.at_level("INFO", logger="balance_watch.registration"):
        save_webhook_url(tmp_path / ".env", WEBHOOK_URL)
    assert "secret-token" not in caplog.text


# -----------------------------------------------------------------------------
# scripts/add_address.py
# -----------------------------------------------------------------------------

ADD_ADDRESS = Path(__file__).parent.parent / "scripts" / "add_address.py"


def _add_address(*args):
    return subprocess.run(
        [sys.executable, str(ADD_ADDRESS), *args],
        capture_output=True,
        text=True,
        timeout=60,
    )


def test_add_address_script_writes_watchlist_and_env(tmp_path):
    watchlist = tmp_path / "AddressAndChain.toml"
    env_path = tmp_path / ".env"

    result = _add_address(
        "--chain", "Sepolia",
        "--address", EVM_ADDRESS,
        "--rpc-url", RPC_URL,
        "--alert-balance", "1000",
        "--webhook", WEBHOOK_URL,
        "--watchlist", str(watchlist),
        "--env-file", str(env_path),
    )

    assert result.returncode == 0, result.stderr
    assert load_watchlist(watchlist) == [
        WatchEntry(address=EVM_ADDRESS, chain="Sepolia", alert_balance=1000, rpc_url=RPC_URL)
    ]
    assert dotenv_values(env_path)["WEBHOOK"] == WEBHOOK_URL


def test_add_address_script_rejects_bad_input(tmp_path):
    watchlist = tmp_path / "AddressAndChain.toml"

    result = _add_address(
        "--chain", "Sepolia",
        "--address", "0x1234",
        "--rpc-url", RPC_URL,
        "--alert-balance", "1000",
        "--watchlist", str(watchlist),
        "--env-file", str(tmp_path / ".env"),
    )

    assert result.returncode == 1
    assert "Invalid address format" in result.stderr
    assert not watchlist.exists()
