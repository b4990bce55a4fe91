"""
External collaborators of the mint authorizer.

The authorizer composes three capabilities instead of extending a ledger
base class:

    Issuer          issue(identity, quantity)         ownership ledger
    Clock           now() -> unix seconds             execution environment
    ValueTransfer   transfer(identity, amount) -> bool refunds and withdrawals

In-memory reference implementations are provided for local runs and tests.
They mirror the behaviour of their on-chain counterparts closely enough to
exercise every authorization path.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

from mintgate.validation import Validators


class Issuer(ABC):
    """Ownership ledger capability: the only operation the authorizer needs."""

    @abstractmethod
    def issue(self, identity: str, quantity: int) -> None:
        """Issue `quantity` new units to `identity`.

        Called only after supply capacity has been reserved, so it is not
        expected to fail.
        """
        raise NotImplementedError


class Clock(ABC):
    """Read-only time source."""

    @abstractmethod
    def now(self) -> int:
        """Current time as unix seconds."""
        raise NotImplementedError


class ValueTransfer(ABC):
    """Native value transfer primitive."""

    @abstractmethod
    def transfer(self, identity: str, amount: int) -> bool:
        """Send `amount` to `identity`; False when the transfer did not go through."""
        raise NotImplementedError


class SystemClock(Clock):
    def now(self) -> int:
        return int(time.time())


class ManualClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: int = 0):
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        self._now = int(timestamp)

    def advance(self, seconds: int) -> int:
        self._now += int(seconds)
        return self._now


@dataclass(frozen=True)
class TransferNotification:
    """Ownership change emitted by the ledger (mints come from the zero address)."""
    sender: str
    recipient: str
    token_id: int


class InMemoryLedger(Issuer):
    """
    Sequential-id ownership ledger.

    Token ids start at `first_token_id` and increase by one per issued unit.
    Every issued unit produces a TransferNotification from the zero address.
    """

    def __init__(self, first_token_id: int = 1):
        self._next_id = first_token_id
        self._owners: Dict[int, str] = {}
        self._balances: Dict[str, int] = defaultdict(int)
        self._notifications: List[TransferNotification] = []
        self._lock = threading.Lock()

    def issue(self, identity: str, quantity: int) -> None:
        if quantity <= 0:
            raise ValueError(f"quantity must be positive, got {quantity}")
        with self._lock:
            for _ in range(quantity):
                token_id = self._next_id
                self._next_id += 1
                self._owners[token_id] = identity
                self._notifications.append(TransferNotification(
                    sender=Validators.ZERO_ADDRESS,
                    recipient=identity,
                    token_id=token_id,
                ))
            self._balances[identity] += quantity

    def balance_of(self, identity: str) -> int:
        with self._lock:
            return self._balances.get(identity, 0)

    def owner_of(self, token_id: int) -> Optional[str]:
        with self._lock:
            return self._owners.get(token_id)

    @property
    def total_supply(self) -> int:
        with self._lock:
            return len(self._owners)

    @property
    def notifications(self) -> List[TransferNotification]:
        with self._lock:
            return list(self._notifications)


class InMemoryTransfer(ValueTransfer):
    """Records payouts; set `fail=True` to make every transfer report failure."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self._payouts: List[tuple] = []
        self._lock = threading.Lock()

    def transfer(self, identity: str, amount: int) -> bool:
        if self.fail:
            return False
        with self._lock:
            self._payouts.append((identity, amount))
        return True

    @property
    def payouts(self) -> List[tuple]:
        with self._lock:
            return list(self._payouts)

    def total_paid_to(self, identity: str) -> int:
        with self._lock:
            return sum(amount for who, amount in self._payouts if who == identity)
