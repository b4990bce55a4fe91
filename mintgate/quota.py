"""
Per-identity quota ledger.

Charges return a staged WalletRecord rather than writing it; the orchestrator
commits the staged record in the same state transaction as every other
mutation of the request, so a check and its increment are never split.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from mintgate.errors import AlreadyClaimedAllowlist, ExceedsMintLimit


@dataclass(frozen=True)
class WalletRecord:
    """Mint history of a single identity."""
    public_minted: int = 0
    allowlist_claimed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "public_minted": self.public_minted,
            "allowlist_claimed": self.allowlist_claimed,
        }


class QuotaLedger:
    """Evaluates public and allowlist quota against wallet records."""

    BONUS_SLOTS = 1

    def __init__(self, public_limit: int):
        self.public_limit = public_limit

    def effective_limit(self, record: WalletRecord) -> int:
        """Public limit, plus the bonus slot once an allowlist claim is done."""
        if record.allowlist_claimed:
            return self.public_limit + self.BONUS_SLOTS
        return self.public_limit

    def charge_public(self, identity: str, quantity: int, record: Optional[WalletRecord] = None) -> WalletRecord:
        record = record or WalletRecord()
        limit = self.effective_limit(record)
        if record.public_minted + quantity > limit:
            raise ExceedsMintLimit(identity, record.public_minted, quantity, limit)
        return replace(record, public_minted=record.public_minted + quantity)

    def charge_allowlist(self, identity: str, record: Optional[WalletRecord] = None) -> WalletRecord:
        record = record or WalletRecord()
        if record.allowlist_claimed:
            raise AlreadyClaimedAllowlist(identity)
        return replace(record, allowlist_claimed=True)
