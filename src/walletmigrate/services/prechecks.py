"""Pre-migration checks: DRep, staking and pending transactions."""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable

from walletmigrate.config import AppConfig, get_config
from walletmigrate.models.precheck import PreCheckReport, PreCheckResult, PreCheckStatus
from walletmigrate.models.wallet import Wallet, WalletConfig
from walletmigrate.services.interfaces import LedgerQuery, ScriptDeriver
from walletmigrate.services.proxy_registry import ProxyRegistry
from walletmigrate.services.transactions import PendingTransactionLog

logger = logging.getLogger(__name__)

CHECK_NAMES = ("drep", "staking", "pending_transactions")


class PreCheckAggregator:
    """Runs the three pre-checks concurrently.

    Each check is bounded by the status lookup timeout. A check that raises
    or times out resolves to an ``error`` result, never to ``success``.
    """

    def __init__(
        self,
        ledger: LedgerQuery,
        deriver: ScriptDeriver,
        transactions: PendingTransactionLog,
        proxies: ProxyRegistry,
        config: AppConfig | None = None,
    ) -> None:
        self._ledger = ledger
        self._deriver = deriver
        self._transactions = transactions
        self._proxies = proxies
        self._config = config or get_config()

    async def check_drep(self, wallet: Wallet) -> PreCheckResult:
        """A directly registered DRep blocks migration; a proxy DRep moves with it."""
        if wallet.drep_id:
            status = await self._ledger.get_drep_status(wallet.drep_id)
            if status is not None and status.registered:
                return PreCheckResult(
                    status=PreCheckStatus.ERROR,
                    message="DRep is registered",
                    details=(
                        "This wallet is registered as a DRep directly. Retire the DRep "
                        "registration before migrating."
                    ),
                )

        for proxy in await self._proxies.get_proxies_by_wallet(wallet.id):
            if not proxy.drep_id:
                continue
            status = await self._ledger.get_drep_status(proxy.drep_id)
            if status is not None and status.registered:
                return PreCheckResult(
                    status=PreCheckStatus.SUCCESS,
                    message="DRep is registered through a proxy",
                    details=f"Proxy {proxy.display_name} will be transferred to the new wallet.",
                )

        return PreCheckResult(
            status=PreCheckStatus.SUCCESS,
            message="DRep is not registered",
            details="No DRep registration found.",
        )

    async def check_staking(self, wallet: Wallet) -> PreCheckResult:
        """Registered stake is a warning: delegation must be redone afterwards."""
        try:
            derived = await self._deriver.derive(
                WalletConfig.from_record(wallet), self._config.ledger.network
            )
        except Exception as e:
            logger.warning("Could not derive stake address for %s: %s", wallet.id, e)
            return PreCheckResult(
                status=PreCheckStatus.ERROR,
                message="Could not determine stake address",
                details="Failed to build multisig wallet for staking check.",
            )

        if not derived.stake_address:
            return PreCheckResult(
                status=PreCheckStatus.SUCCESS,
                message="No stake address configured",
                details="This wallet does not have staking capabilities.",
            )

        account = await self._ledger.get_account_status(derived.stake_address)
        if account is not None and account.active:
            return PreCheckResult(
                status=PreCheckStatus.WARNING,
                message="Stake is registered",
                details=(
                    f"Stake is registered to pool: {account.pool_id or 'Unknown'}. "
                    "Consider updating delegation after migration."
                ),
            )
        return PreCheckResult(
            status=PreCheckStatus.SUCCESS,
            message="Stake is not registered",
            details="No staking registration found.",
        )

    async def check_pending_transactions(self, wallet: Wallet) -> PreCheckResult:
        count = await self._transactions.count_pending(wallet.id)
        if count > 0:
            return PreCheckResult(
                status=PreCheckStatus.WARNING,
                message=f"{count} pending transaction(s)",
                details=(
                    "You have pending transactions that may need to be completed "
                    "before migration."
                ),
            )
        return PreCheckResult(
            status=PreCheckStatus.SUCCESS,
            message="No pending transactions",
            details="No pending transactions found.",
        )

    async def iter_results(self, wallet: Wallet) -> AsyncIterator[tuple[str, PreCheckResult]]:
        """Yield ``(name, result)`` pairs in completion order."""
        checks = {
            "drep": self.check_drep(wallet),
            "staking": self.check_staking(wallet),
            "pending_transactions": self.check_pending_transactions(wallet),
        }
        tasks = [asyncio.ensure_future(self._bounded(name, coro)) for name, coro in checks.items()]
        try:
            for next_done in asyncio.as_completed(tasks):
                yield await next_done
        finally:
            for task in tasks:
                task.cancel()

    async def run(self, wallet: Wallet) -> PreCheckReport:
        """Run every check and collect the report."""
        report = PreCheckReport()
        async for name, result in self.iter_results(wallet):
            report = report.model_copy(update={name: result})
        logger.info(
            "Pre-checks for %s: %s",
            wallet.id,
            ", ".join(f"{n}={getattr(report, n).status.value}" for n in CHECK_NAMES),
        )
        return report

    async def _bounded(
        self, name: str, check: Awaitable[PreCheckResult]
    ) -> tuple[str, PreCheckResult]:
        timeout = self._config.performance.status_lookup_timeout_seconds
        try:
            return name, await asyncio.wait_for(check, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Pre-check %s timed out after %ss", name, timeout)
            return name, PreCheckResult(
                status=PreCheckStatus.ERROR,
                message=f"Failed to check {_LABELS[name]} status",
                details=f"The lookup did not finish within {timeout:g} seconds.",
            )
        except Exception as e:
            logger.warning("Pre-check %s failed: %s", name, e)
            return name, PreCheckResult(
                status=PreCheckStatus.ERROR,
                message=f"Failed to check {_LABELS[name]} status",
                details=f"Could not verify {_LABELS[name]} status.",
            )


_LABELS = {
    "drep": "DRep",
    "staking": "staking",
    "pending_transactions": "pending transaction",
}
