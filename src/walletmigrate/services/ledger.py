"""Blockfrost-compatible ledger query client."""

import asyncio
import functools
import logging
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from walletmigrate.config import AppConfig, get_config
from walletmigrate.errors import QueryError
from walletmigrate.models.ledger import AccountStatus, Asset, DRepStatus, UTxO

logger = logging.getLogger(__name__)


class BlockfrostLedger:
    """Ledger queries over the Blockfrost REST API.

    ``requests`` is blocking, so every call runs in the default executor.
    A 404 means "never seen on chain" and is returned as ``None`` or an
    empty list rather than an error.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._config = config or get_config()
        self._session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry logic."""
        session = requests.Session()
        retries = Retry(
            total=3,
            backoff_factor=1.0,
            status_forcelist=[429, 500, 502, 503, 504],
        )
        adapter = HTTPAdapter(max_retries=retries)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        session.headers.update({"project_id": self._config.ledger.project_id})
        return session

    async def fetch_address_utxos(self, address: str) -> list[UTxO]:
        """All UTxOs at an address, following pagination."""
        utxos: list[UTxO] = []
        page = 1
        page_size = self._config.ledger.page_size
        while True:
            batch = await self._get(
                f"/addresses/{address}/utxos",
                params={"page": page, "count": page_size},
            )
            if not batch:
                break
            utxos.extend(
                UTxO(
                    tx_hash=item["tx_hash"],
                    output_index=item["output_index"],
                    address=item.get("address", address),
                    amount=[Asset(**a) for a in item.get("amount", [])],
                )
                for item in batch
            )
            if len(batch) < page_size:
                break
            page += 1
        logger.debug("Fetched %d UTxOs for %s", len(utxos), address)
        return utxos

    async def get_account_status(self, stake_address: str) -> AccountStatus | None:
        data = await self._get(f"/accounts/{stake_address}")
        if data is None:
            return None
        return AccountStatus(
            stake_address=stake_address,
            active=bool(data.get("active")),
            pool_id=data.get("pool_id"),
            drep_id=data.get("drep_id"),
        )

    async def get_drep_status(self, drep_id: str) -> DRepStatus | None:
        data = await self._get(f"/governance/dreps/{drep_id}")
        if data is None:
            return None
        return DRepStatus(
            drep_id=drep_id,
            active=bool(data.get("active")),
            retired=bool(data.get("retired")),
        )

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        loop = asyncio.get_running_loop()
        call = functools.partial(self._get_sync, path, params)
        return await loop.run_in_executor(None, call)

    def _get_sync(self, path: str, params: dict[str, Any] | None) -> Any:
        url = f"{self._config.ledger.base_url.rstrip('/')}{path}"
        try:
            response = self._session.get(
                url,
                params=params,
                timeout=self._config.ledger.request_timeout_seconds,
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.warning("Ledger query %s failed: %s", path, e)
            raise QueryError(f"Ledger query failed for {path}: {e}") from e
