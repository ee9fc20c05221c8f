"""Tests for pre-migration checks."""

import pytest

from walletmigrate.errors import QueryError
from walletmigrate.models.ledger import AccountStatus, DRepStatus
from walletmigrate.models.precheck import PreCheckStatus
from walletmigrate.services.prechecks import CHECK_NAMES, PreCheckAggregator
from walletmigrate.services.proxy_registry import ProxyRegistry
from walletmigrate.services.transactions import PendingTransactionLog


@pytest.fixture
def proxies(db):
    return ProxyRegistry(db)


@pytest.fixture
def transactions(db):
    return PendingTransactionLog(db)


@pytest.fixture
def aggregator(ledger, toolchain, transactions, proxies, config):
    return PreCheckAggregator(ledger, toolchain, transactions, proxies, config)


def registered(drep_id: str) -> DRepStatus:
    return DRepStatus(drep_id=drep_id, active=True)


class TestCheckDrep:
    """Tests for the DRep check."""

    @pytest.mark.asyncio
    async def test_not_registered(self, aggregator, original_wallet):
        """Test a wallet without any DRep passes."""
        result = await aggregator.check_drep(original_wallet)

        assert result.status == PreCheckStatus.SUCCESS
        assert result.message == "DRep is not registered"

    @pytest.mark.asyncio
    async def test_direct_registration_blocks(self, aggregator, ledger, original_wallet):
        """Test a directly registered DRep is an error."""
        wallet = original_wallet.model_copy(update={"drep_id": "drep1direct"})
        ledger.dreps["drep1direct"] = registered("drep1direct")

        result = await aggregator.check_drep(wallet)

        assert result.status == PreCheckStatus.ERROR
        assert result.message == "DRep is registered"

    @pytest.mark.asyncio
    async def test_retired_direct_registration_passes(self, aggregator, ledger, original_wallet):
        """Test a retired DRep does not block."""
        wallet = original_wallet.model_copy(update={"drep_id": "drep1old"})
        ledger.dreps["drep1old"] = DRepStatus(drep_id="drep1old", active=True, retired=True)

        result = await aggregator.check_drep(wallet)

        assert result.status == PreCheckStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_proxy_registration_passes(
        self, aggregator, ledger, proxies, original_wallet
    ):
        """Test a DRep registered through a proxy is a success."""
        await proxies.create_proxy(
            original_wallet.id, "addr_proxy", description="Gov proxy", drep_id="drep1proxy"
        )
        ledger.dreps["drep1proxy"] = registered("drep1proxy")

        result = await aggregator.check_drep(original_wallet)

        assert result.status == PreCheckStatus.SUCCESS
        assert result.message == "DRep is registered through a proxy"
        assert "Gov proxy" in result.details

    @pytest.mark.asyncio
    async def test_direct_registration_wins_over_proxy(
        self, aggregator, ledger, proxies, original_wallet
    ):
        """Test a direct registration blocks even when a proxy is registered too."""
        wallet = original_wallet.model_copy(update={"drep_id": "drep1direct"})
        await proxies.create_proxy(wallet.id, "addr_proxy", drep_id="drep1proxy")
        ledger.dreps["drep1direct"] = registered("drep1direct")
        ledger.dreps["drep1proxy"] = registered("drep1proxy")

        result = await aggregator.check_drep(wallet)

        assert result.status == PreCheckStatus.ERROR


class TestCheckStaking:
    """Tests for the staking check."""

    @pytest.mark.asyncio
    async def test_no_stake_address(self, aggregator, original_wallet):
        """Test a wallet without staking passes."""
        result = await aggregator.check_staking(original_wallet)

        assert result.status == PreCheckStatus.SUCCESS
        assert result.message == "No stake address configured"

    @pytest.mark.asyncio
    async def test_registered_stake_warns(self, aggregator, ledger, toolchain, original_wallet):
        """Test registered stake is a warning naming the pool."""
        toolchain.stake_address = "stake1treasury"
        ledger.accounts["stake1treasury"] = AccountStatus(
            stake_address="stake1treasury", active=True, pool_id="pool1abc"
        )

        result = await aggregator.check_staking(original_wallet)

        assert result.status == PreCheckStatus.WARNING
        assert "pool1abc" in result.details

    @pytest.mark.asyncio
    async def test_unregistered_stake_passes(self, aggregator, toolchain, original_wallet):
        """Test an unknown stake account passes."""
        toolchain.stake_address = "stake1treasury"

        result = await aggregator.check_staking(original_wallet)

        assert result.status == PreCheckStatus.SUCCESS
        assert result.message == "Stake is not registered"

    @pytest.mark.asyncio
    async def test_derive_failure_is_error(self, aggregator, toolchain, original_wallet):
        """Test a failed script derivation reports an error."""
        toolchain.derive_error = QueryError("toolchain missing")

        result = await aggregator.check_staking(original_wallet)

        assert result.status == PreCheckStatus.ERROR
        assert result.message == "Could not determine stake address"


class TestCheckPendingTransactions:
    """Tests for the pending transaction check."""

    @pytest.mark.asyncio
    async def test_none_pending(self, aggregator, original_wallet):
        """Test no pending transactions passes."""
        result = await aggregator.check_pending_transactions(original_wallet)

        assert result.status == PreCheckStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_pending_warns(self, aggregator, transactions, original_wallet):
        """Test pending transactions are a warning with their count."""
        await transactions.record(original_wallet.id, "cbor1")
        await transactions.record(original_wallet.id, "cbor2")

        result = await aggregator.check_pending_transactions(original_wallet)

        assert result.status == PreCheckStatus.WARNING
        assert result.message == "2 pending transaction(s)"


class TestRun:
    """Tests for running all checks together."""

    @pytest.mark.asyncio
    async def test_clean_wallet_is_ready(self, aggregator, original_wallet):
        """Test a clean wallet resolves every check and is ready."""
        report = await aggregator.run(original_wallet)

        assert report.all_resolved
        assert report.ready

    @pytest.mark.asyncio
    async def test_timeout_becomes_error(self, aggregator, ledger, toolchain, original_wallet):
        """Test a slow lookup resolves to an error, not success."""
        toolchain.stake_address = "stake1treasury"
        ledger.delay = 1.0

        report = await aggregator.run(original_wallet)

        assert report.staking.status == PreCheckStatus.ERROR
        assert report.staking.message == "Failed to check staking status"
        assert report.drep.status == PreCheckStatus.SUCCESS
        assert not report.ready

    @pytest.mark.asyncio
    async def test_lookup_failure_becomes_error(self, aggregator, ledger, original_wallet):
        """Test a failing ledger lookup resolves to an error."""
        wallet = original_wallet.model_copy(update={"drep_id": "drep1direct"})
        ledger.error = QueryError("ledger down")

        report = await aggregator.run(wallet)

        assert report.drep.status == PreCheckStatus.ERROR
        assert report.drep.message == "Failed to check DRep status"
        assert report.has_errors

    @pytest.mark.asyncio
    async def test_iter_results_yields_every_check(self, aggregator, original_wallet):
        """Test each check is yielded exactly once."""
        names = [name async for name, _ in aggregator.iter_results(original_wallet)]

        assert sorted(names) == sorted(CHECK_NAMES)
