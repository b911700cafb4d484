import sys
from contextlib import asynccontextmanager
from pathlib import Path

import pytest
from aiohttp import web

sys.path.insert(0, str(Path(__file__).parent.parent))

from balance_watch.models import WatchEntry


BTC_ADDRESS = "tb1qw508d6qejxtdg4y5r3zarvary0c5xw7kxpjzsx"
EVM_ADDRESS = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"
RPC_URL = "https://rpc.sepolia.org"


class FakeBitcoinClient:
    """Stands in for BitcoinClient; balances or exceptions keyed by address."""

    def __init__(self, results=None):
        self.results = results or {}
        self.calls = []
        self.closed = False

    async def get_balance(self, address):
        self.calls.append(address)
        result = self.results[address]
        if isinstance(result, Exception):
            raise result
        return result

    async def close(self):
        self.closed = True


class FakeEvmClient:
    """Stands in for EvmClient; balances or exceptions keyed by address."""

    def __init__(self, results=None):
        self.results = results or {}
        self.calls = []
        self.closed = False

    async def get_balance(self, address, rpc_url):
        self.calls.append((address, rpc_url))
        result = self.results[address]
        if isinstance(result, Exception):
            raise result
        return result

    async def close(self):
        self.closed = True


class RecordingAlerts:
    """Collects messages instead of posting them."""

    def __init__(self, error=None):
        self.messages = []
        self.error = error

    def send_message(self, text):
        if self.error is not None:
            raise self.error
        self.messages.append(text)


def write_watchlist(path, entries):
    """Write WatchEntry objects as a TOML watch-list."""
    lines = []
    for entry in entries:
        lines.append("[[addresses]]")
        lines.append(f'address = "{entry.address}"')
        lines.append(f'chain = "{entry.chain}"')
        if entry.rpc_url:
            lines.append(f'rpc_url = "{entry.rpc_url}"')
        lines.append(f"alert_balance = {entry.alert_balance}")
        lines.append("")
    path.write_text("\n".join(lines), encoding="utf-8")
    return path


@pytest.fixture
def btc_entry():
    return WatchEntry(address=BTC_ADDRESS, chain="Bitcoin", alert_balance=50_000_000)


@pytest.fixture
def evm_entry():
    return WatchEntry(address=EVM_ADDRESS, chain="Sepolia", alert_balance=1, rpc_url=RPC_URL)


@asynccontextmanager
async def local_server(handler):
    """
    Serve every path on 127.0.0.1 with one aiohttp handler.

    Yields the base URL, e.g. "http://127.0.0.1:54321".
    """
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", handler)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    port = runner.addresses[0][1]
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        await runner.cleanup()
