"""Draft and committed multisig wallet models."""

import re
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

_HEX_HASH = re.compile(r"^(?:[0-9a-fA-F]{56}|[0-9a-fA-F]{64})$")
_PARALLEL_FIELDS = ("signers_descriptions", "signers_stake_keys", "signers_drep_keys")


def is_valid_stake_key(key: str) -> bool:
    """Accept 28/32-byte hex hashes and bech32 stake addresses."""
    if _HEX_HASH.match(key):
        return True
    return key.startswith("stake1") or key.startswith("stake_test1")


class ScriptType(str, Enum):
    """Native script signature rule."""

    ALL = "all"
    ANY = "any"
    AT_LEAST = "atLeast"


class WalletConfig(BaseModel):
    """Signer and threshold configuration shared by drafts and wallets.

    The signer arrays are parallel: index ``i`` of every array describes the
    same signer. Shorter description/key arrays are padded with empty strings;
    longer ones are rejected.
    """

    name: str = ""
    description: str = ""
    signers_addresses: list[str] = Field(default_factory=list)
    signers_descriptions: list[str] = Field(default_factory=list)
    signers_stake_keys: list[str] = Field(default_factory=list)
    signers_drep_keys: list[str] = Field(default_factory=list)
    num_required_signers: int | None = 1
    script_type: ScriptType = ScriptType.AT_LEAST
    stake_credential_hash: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _align_signer_arrays(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        count = len(data.get("signers_addresses") or [])
        for field in _PARALLEL_FIELDS:
            values = [v or "" for v in (data.get(field) or [])]
            if len(values) > count:
                raise ValueError(f"{field} has {len(values)} entries for {count} signers")
            data[field] = values + [""] * (count - len(values))
        return data

    @property
    def signer_count(self) -> int:
        return len(self.signers_addresses)

    @property
    def required_signatures(self) -> int:
        """Signatures needed to spend under this configuration."""
        if self.script_type == ScriptType.ALL:
            return self.signer_count
        if self.script_type == ScriptType.ANY:
            return 1 if self.signer_count else 0
        return self.num_required_signers or 0

    def validation_problems(self) -> list[str]:
        """List what prevents this configuration from being committed."""
        problems = []
        if not self.name.strip():
            problems.append("Wallet name is required")
        if not self.signers_addresses:
            problems.append("At least one signer is required")
        elif any(not addr.strip() for addr in self.signers_addresses):
            problems.append("Every signer needs an address")
        if self.script_type == ScriptType.AT_LEAST:
            if not self.num_required_signers or self.num_required_signers < 1:
                problems.append("Required signers must be at least 1")
            elif self.num_required_signers > self.signer_count:
                problems.append("Required signers exceeds the number of signers")
        return problems

    def can_create_draft(self) -> bool:
        """A draft needs a name and at least one signer."""
        return bool(self.name.strip()) and any(a.strip() for a in self.signers_addresses)

    def with_signer_added(
        self,
        address: str,
        description: str = "",
        stake_key: str = "",
        drep_key: str = "",
    ) -> "WalletConfig":
        """Return a copy with one more signer appended."""
        if self.stake_credential_hash:
            stake_key = ""
        return self._with(
            signers_addresses=[*self.signers_addresses, address],
            signers_descriptions=[*self.signers_descriptions, description],
            signers_stake_keys=[*self.signers_stake_keys, stake_key],
            signers_drep_keys=[*self.signers_drep_keys, drep_key],
        )

    def with_signer_removed(self, index: int) -> "WalletConfig":
        """Return a copy without the signer at ``index``; clamps the threshold."""
        if not 0 <= index < self.signer_count:
            raise IndexError(f"No signer at index {index}")

        def drop(values: list[str]) -> list[str]:
            return values[:index] + values[index + 1 :]

        remaining = self.signer_count - 1
        required = self.num_required_signers
        if required is not None and remaining > 0 and required > remaining:
            required = remaining
        return self._with(
            signers_addresses=drop(self.signers_addresses),
            signers_descriptions=drop(self.signers_descriptions),
            signers_stake_keys=drop(self.signers_stake_keys),
            signers_drep_keys=drop(self.signers_drep_keys),
            num_required_signers=required,
        )

    def with_required_signers(self, count: int) -> "WalletConfig":
        if count < 1:
            raise ValueError("Required signers must be at least 1")
        return self._with(num_required_signers=min(count, max(self.signer_count, 1)))

    def with_stake_credential(self, credential_hash: str | None) -> "WalletConfig":
        """Set or clear the external stake credential.

        An external credential replaces the per-signer stake keys.
        """
        if credential_hash:
            return self._with(
                stake_credential_hash=credential_hash,
                signers_stake_keys=["" for _ in self.signers_stake_keys],
            )
        return self._with(stake_credential_hash=None)

    def with_script_type(self, script_type: ScriptType) -> "WalletConfig":
        """Switching to ``atLeast`` without a threshold restores a threshold of 1."""
        if script_type == ScriptType.AT_LEAST and not self.num_required_signers:
            return self._with(script_type=script_type, num_required_signers=1)
        return self._with(script_type=script_type)

    def for_storage(self) -> "WalletConfig":
        """Threshold is only meaningful for ``atLeast`` scripts."""
        if self.script_type in (ScriptType.ALL, ScriptType.ANY):
            return self._with(num_required_signers=None)
        return self

    def _with(self, **changes: Any) -> "WalletConfig":
        data = self.config_dump()
        data.update(changes)
        return WalletConfig.model_validate(data)

    def config_dump(self) -> dict[str, Any]:
        """Dump only the configuration fields."""
        return self.model_dump(include=set(WalletConfig.model_fields))

    @classmethod
    def from_record(cls, record: "WalletConfig") -> "WalletConfig":
        """Extract the configuration part of a draft or wallet."""
        return cls.model_validate(record.config_dump())


class DraftWallet(WalletConfig):
    """Pre-commit wallet configuration shared through an invite link."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    owner_address: str
    migration_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class Wallet(WalletConfig):
    """A committed multisig wallet. Signers and threshold never change."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    script_cbor: str
    address: str
    stake_address: str | None = None
    drep_id: str | None = None
    owner_address: str = ""
    migration_id: str | None = None
    migration_target_wallet_id: str | None = None
    is_archived: bool = False
    created_at: datetime = Field(default_factory=datetime.now)

    def is_accessible_by(self, address: str) -> bool:
        """Signers and the owner may read the wallet."""
        return address in self.signers_addresses or self.owner_address in (address, "all")

    def migration_prefill(self) -> WalletConfig:
        """Starting configuration for the wallet that replaces this one."""
        stake_keys = [k if is_valid_stake_key(k) else "" for k in self.signers_stake_keys]
        return WalletConfig(
            name=f"{self.name} - Migrated",
            description=self.description,
            signers_addresses=list(self.signers_addresses),
            signers_descriptions=list(self.signers_descriptions),
            signers_stake_keys=stake_keys,
            signers_drep_keys=list(self.signers_drep_keys),
            num_required_signers=self.num_required_signers or 1,
            script_type=self.script_type,
            stake_credential_hash=self.stake_credential_hash,
        )


class DerivedScript(BaseModel):
    """Output of the script deriver for a configuration."""

    script_cbor: str
    address: str
    stake_address: str | None = None
    drep_id: str | None = None
