"""Ledger data returned by the query service."""

from pydantic import BaseModel, Field

LOVELACE = "lovelace"
LOVELACE_PER_ADA = 1_000_000


class Asset(BaseModel):
    """A quantity of one unit held by an output."""

    unit: str
    quantity: str


class UTxO(BaseModel):
    """An unspent transaction output."""

    tx_hash: str
    output_index: int
    address: str
    amount: list[Asset] = Field(default_factory=list)

    @property
    def ref(self) -> str:
        """``txhash#index`` reference."""
        return f"{self.tx_hash}#{self.output_index}"

    @property
    def lovelace(self) -> int:
        return sum(int(a.quantity) for a in self.amount if a.unit == LOVELACE)

    @property
    def is_ada_only(self) -> bool:
        return all(a.unit == LOVELACE for a in self.amount)


class AccountStatus(BaseModel):
    """Stake address registration."""

    stake_address: str
    active: bool = False
    pool_id: str | None = None
    drep_id: str | None = None


class DRepStatus(BaseModel):
    """Governance registration of a DRep credential."""

    drep_id: str
    active: bool = False
    retired: bool = False

    @property
    def registered(self) -> bool:
        return self.active and not self.retired


def total_lovelace(utxos: list[UTxO]) -> int:
    """Sum the ADA held by a set of outputs."""
    return sum(u.lovelace for u in utxos)


def format_ada(lovelace: int) -> str:
    """Format lovelace as ADA with thousands separators."""
    return f"{lovelace / LOVELACE_PER_ADA:,.6f} ADA"
