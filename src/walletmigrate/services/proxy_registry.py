"""Governance proxy registry."""

import logging

from walletmigrate.models.proxy import Proxy
from walletmigrate.services.database import Database

logger = logging.getLogger(__name__)


class ProxyRegistry:
    """Which wallet owns which proxy contract. Off-chain bookkeeping only."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def create_proxy(
        self,
        wallet_id: str,
        proxy_address: str,
        auth_token_id: str = "",
        param_utxo: str = "",
        description: str = "",
        drep_id: str | None = None,
    ) -> Proxy:
        """Record a proxy contract for a wallet."""
        proxy = Proxy(
            wallet_id=wallet_id,
            proxy_address=proxy_address,
            auth_token_id=auth_token_id,
            param_utxo=param_utxo,
            description=description,
            drep_id=drep_id,
        )
        async with self._db.transaction() as data:
            data.proxies[proxy.id] = proxy
        return proxy

    async def get_proxies_by_wallet(self, wallet_id: str) -> list[Proxy]:
        """Active proxies of a wallet, newest first."""
        proxies = [
            p for p in self._db.data.proxies.values() if p.wallet_id == wallet_id and p.is_active
        ]
        return sorted(proxies, key=lambda p: p.created_at, reverse=True)

    async def transfer_proxies(self, from_wallet_id: str, to_wallet_id: str) -> int:
        """Rebind every active proxy of one wallet to another.

        Returns the number of proxies moved.
        """
        async with self._db.transaction() as data:
            moved = [
                p for p in data.proxies.values() if p.wallet_id == from_wallet_id and p.is_active
            ]
            for proxy in moved:
                data.proxies[proxy.id] = proxy.model_copy(update={"wallet_id": to_wallet_id})
        if moved:
            logger.info(
                "Transferred %d proxies from %s to %s", len(moved), from_wallet_id, to_wallet_id
            )
        return len(moved)
