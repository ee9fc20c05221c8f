"""Governance proxy registry models."""

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field


class Proxy(BaseModel):
    """A governance proxy contract recorded against a wallet.

    The contract address is fixed on-chain; only the owning wallet changes.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    wallet_id: str
    proxy_address: str
    auth_token_id: str = ""
    param_utxo: str = ""
    description: str = ""
    drep_id: str | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def display_name(self) -> str:
        return self.description or self.proxy_address[:16]
