"""Shared fixtures and fake collaborators."""

import asyncio

import pytest

from walletmigrate.config import AppConfig, PerformanceConfig
from walletmigrate.models.ledger import AccountStatus, Asset, DRepStatus, UTxO
from walletmigrate.models.transaction import SignedTransaction, SweepTransaction
from walletmigrate.models.wallet import DerivedScript, ScriptType, Wallet, WalletConfig
from walletmigrate.services.database import Database, StoreData
from walletmigrate.services.orchestrator import MigrationOrchestrator

OWNER = "addr_owner"
VALID_STAKE_KEY = "ab" * 28


def make_utxo(tx_hash: str, lovelace: int, address: str = "addr_orig", index: int = 0) -> UTxO:
    return UTxO(
        tx_hash=tx_hash,
        output_index=index,
        address=address,
        amount=[Asset(unit="lovelace", quantity=str(lovelace))],
    )


class FakeLedger:
    """In-memory ledger keyed by address, stake address and DRep id."""

    def __init__(self) -> None:
        self.utxos: dict[str, list[UTxO]] = {}
        self.accounts: dict[str, AccountStatus] = {}
        self.dreps: dict[str, DRepStatus] = {}
        self.delay = 0.0
        self.error: Exception | None = None

    async def fetch_address_utxos(self, address: str) -> list[UTxO]:
        if self.error is not None:
            raise self.error
        return list(self.utxos.get(address, []))

    async def get_account_status(self, stake_address: str) -> AccountStatus | None:
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.accounts.get(stake_address)

    async def get_drep_status(self, drep_id: str) -> DRepStatus | None:
        if self.error is not None:
            raise self.error
        return self.dreps.get(drep_id)


class FakeToolchain:
    """Deterministic script deriver, transaction builder and submitter."""

    def __init__(self) -> None:
        self.derived: list[WalletConfig] = []
        self.built: list[SweepTransaction] = []
        self.submitted: list[str] = []
        self.stake_address: str | None = None
        self.signer_address = "addr_alice"
        self.derive_error: Exception | None = None
        self.sign_error: Exception | None = None

    async def derive(self, config: WalletConfig, network: int) -> DerivedScript:
        if self.derive_error is not None:
            raise self.derive_error
        self.derived.append(config)
        slug = config.name.replace(" ", "_").lower()
        return DerivedScript(
            script_cbor=f"script_{slug}",
            address=f"addr_{slug}",
            stake_address=self.stake_address,
        )

    async def build_sweep(self, tx: SweepTransaction, network: int) -> str:
        self.built.append(tx)
        return f"tx_cbor_{len(self.built)}"

    async def sign(self, tx_cbor: str, network: int) -> SignedTransaction:
        if self.sign_error is not None:
            raise self.sign_error
        return SignedTransaction(
            tx_cbor=f"{tx_cbor}+{self.signer_address}", signer_address=self.signer_address
        )

    async def submit(self, tx_cbor: str, network: int) -> str:
        self.submitted.append(tx_cbor)
        return f"hash_{len(self.submitted)}"


@pytest.fixture
def config():
    """Config with short timeouts so tests stay fast."""
    return AppConfig(
        performance=PerformanceConfig(
            status_lookup_timeout_seconds=0.2,
            completion_poll_interval_seconds=0.01,
        )
    )


@pytest.fixture
def original_wallet():
    return Wallet(
        name="Treasury",
        description="Team treasury",
        signers_addresses=["addr_alice", "addr_bob", "addr_carol"],
        signers_descriptions=["Alice", "Bob", "Carol"],
        signers_stake_keys=[VALID_STAKE_KEY, "not-a-key", ""],
        num_required_signers=2,
        script_type=ScriptType.AT_LEAST,
        script_cbor="script_original",
        address="addr_orig",
        owner_address=OWNER,
    )


@pytest.fixture
def db(original_wallet):
    return Database(data=StoreData(wallets={original_wallet.id: original_wallet}))


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def toolchain():
    return FakeToolchain()


@pytest.fixture
def orchestrator(db, original_wallet, ledger, toolchain, config):
    return MigrationOrchestrator.create(
        db,
        original_wallet.id,
        OWNER,
        ledger=ledger,
        deriver=toolchain,
        builder=toolchain,
        submitter=toolchain,
        config=config,
    )
