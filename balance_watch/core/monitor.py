"""
Balance Monitor

Main monitoring loop that, every cycle:
1. Re-reads the watch-list file
2. Fetches each entry's balance from its chain adapter (bounded concurrency)
3. Logs the formatted balance
4. Sends a webhook alert when the balance is below the entry's alert_balance
5. Sleeps for the poll interval

Entries are independent: a failure on one never stops the others, and a bad
watch-list file only skips the cycle. Nothing is carried between cycles, so
a balance that stays low is alerted on every cycle.
"""

import asyncio
import logging
import signal
from pathlib import Path
from typing import List, Optional, Union, TYPE_CHECKING

from ..api.bitcoin import BitcoinClient
from ..api.evm import EvmClient
from ..config import config
from ..errors import FetchError, NotifyError, WatchlistError
from ..models import BalanceCheck, CycleSummary, WatchEntry
from ..utils.formatting import format_balance
from ..watchlist import load_watchlist

if TYPE_CHECKING:
    from ..alerts.webhook import WebhookAlerts

logger = logging.getLogger(__name__)


def is_below_threshold(balance: int, alert_balance: int) -> bool:
    """Strictly below: a balance equal to the threshold does not alert."""
    return balance < alert_balance


def build_alert_message(entry: WatchEntry, formatted_balance: str) -> str:
    """Alert text naming the chain, the balance and the address."""
    return f"{entry.chain}: {formatted_balance} ({entry.address})"


class BalanceMonitor:
    """
    Balance watch loop.

    Adapters are created on start() unless injected. Alerts go through
    `alerts.send_message` in a worker thread; with no alerts instance the
    alert text is only logged.
    """

    def __init__(
        self,
        alerts: "WebhookAlerts" = None,
        watchlist_path: Union[str, Path] = None,
        poll_interval_seconds: float = None,
        max_concurrent_checks: int = None,
        bitcoin_client: BitcoinClient = None,
        evm_client: EvmClient = None,
    ):
        """
        Initialize the monitor.

        Args:
            alerts: WebhookAlerts instance (None = log alerts only)
            watchlist_path: TOML watch-list file
            poll_interval_seconds: Sleep between cycles
            max_concurrent_checks: Entries fetched at the same time
            bitcoin_client: Bitcoin adapter (created on start if None)
            evm_client: EVM adapter (created on start if None)
        """
        self.alerts = alerts
        self.watchlist_path = Path(watchlist_path or config.watchlist_path)
        self.poll_interval = (
            poll_interval_seconds if poll_interval_seconds is not None
            else config.poll_interval_sec
        )
        self.max_concurrent = max_concurrent_checks or config.max_concurrent_checks

        self.bitcoin_client = bitcoin_client
        self.evm_client = evm_client
        # Adapters created in start() are closed by close(); injected ones are not
        self._owns_bitcoin_client = False
        self._owns_evm_client = False

        self._running = False
        self._stop_event: Optional[asyncio.Event] = None
        self.cycles_completed = 0

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self):
        """Create adapters that were not injected."""
        if self.bitcoin_client is None:
            self.bitcoin_client = BitcoinClient()
            self._owns_bitcoin_client = True
        if self.evm_client is None:
            self.evm_client = EvmClient()
            self._owns_evm_client = True
        self._stop_event = asyncio.Event()
        self._running = True

    async def close(self):
        """Close adapters created by this monitor."""
        if self._owns_bitcoin_client and self.bitcoin_client:
            await self.bitcoin_client.close()
        if self._owns_evm_client and self.evm_client:
            await self.evm_client.close()

    def stop(self):
        """Ask the loop to exit after the current cycle."""
        if self._running:
            logger.info("Stopping monitor...")
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()

    def _install_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError):
                # Not available on Windows event loops
                pass

    async def run(self, max_cycles: Optional[int] = None, handle_signals: bool = True):
        """
        Run the watch loop.

        Args:
            max_cycles: Stop after this many cycles (None = run until stopped)
            handle_signals: Stop gracefully on SIGINT/SIGTERM
        """
        logger.info("Starting monitor...")
        await self.start()
        if handle_signals:
            self._install_signal_handlers()

        try:
            while self._running:
                try:
                    await self.run_cycle()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.exception(f"Error in monitor cycle: {e}")

                self.cycles_completed += 1
                if max_cycles is not None and self.cycles_completed >= max_cycles:
                    break

                await self._sleep()
        finally:
            self._running = False
            await self.close()
            logger.info(f"Monitor stopped after {self.cycles_completed} cycle(s)")

    async def _sleep(self):
        """Sleep for the poll interval, waking early on stop()."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            pass

    # -------------------------------------------------------------------------
    # Cycle
    # -------------------------------------------------------------------------

    async def run_cycle(self) -> CycleSummary:
        """
        Check every entry in the current watch-list once.

        Returns:
            CycleSummary (skipped=True when the watch-list could not be loaded)
        """
        logger.info("*" * 25)

        try:
            entries = load_watchlist(self.watchlist_path)
        except WatchlistError as e:
            logger.error(f"Skipping cycle, watch-list not loaded: {e}")
            return CycleSummary(watchlist_error=str(e))

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def check_bounded(entry: WatchEntry) -> BalanceCheck:
            async with semaphore:
                return await self.check_entry(entry)

        results = await asyncio.gather(
            *(check_bounded(entry) for entry in entries),
            return_exceptions=True,
        )

        checks: List[BalanceCheck] = []
        for entry, result in zip(entries, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.error(
                    f"Unexpected error checking {entry.chain} {entry.address}: {result!r}",
                    exc_info=result,
                )
                checks.append(BalanceCheck(entry=entry, error=FetchError(repr(result))))
            else:
                checks.append(result)

        summary = CycleSummary.from_checks(checks)
        logger.info(
            f"Cycle complete: {summary.entries} entries, "
            f"{summary.fetch_failures} fetch failures, "
            f"{summary.below_threshold} below threshold, "
            f"{summary.alerts_sent} alerts sent, "
            f"{summary.alert_failures} alert failures"
        )
        return summary

    async def fetch_balance(self, entry: WatchEntry) -> int:
        """
        Dispatch to the chain adapter for an entry.

        Only the exact tag "Bitcoin" uses the Bitcoin adapter; every other
        chain (including "bitcoin" or "BTC") goes to the EVM adapter.
        """
        if entry.is_bitcoin:
            return await self.bitcoin_client.get_balance(entry.address)
        return await self.evm_client.get_balance(entry.address, entry.rpc_url)

    async def check_entry(self, entry: WatchEntry) -> BalanceCheck:
        """
        Fetch, log, compare and alert for one entry.

        Fetch and notify errors are logged and recorded on the result,
        never raised.
        """
        check = BalanceCheck(entry=entry)

        try:
            balance = await self.fetch_balance(entry)
        except FetchError as e:
            logger.error(
                f"Failed to fetch {entry.chain} balance for {entry.address} "
                f"({e.kind} error): {e}"
            )
            check.error = e
            return check

        check.balance = balance
        check.formatted_balance = format_balance(balance, entry.chain)
        logger.info(f"{entry.chain} Balance: {check.formatted_balance} ({entry.address})")

        if not is_below_threshold(balance, entry.alert_balance):
            return check

        check.below_threshold = True
        message = build_alert_message(entry, check.formatted_balance)
        logger.warning(f"LOW BALANCE: {message}")

        try:
            await self._send_alert(message)
            check.alert_sent = True
        except NotifyError as e:
            logger.error(f"Failed to send alert for {entry.chain} {entry.address}: {e}")
            check.alert_error = e

        return check

    async def _send_alert(self, message: str):
        """Deliver an alert without blocking the event loop."""
        if self.alerts is None:
            logger.info(f"ALERT (no webhook configured): {message}")
            return
        await asyncio.to_thread(self.alerts.send_message, message)
