"""
Authoritative issuance state.

One IssuanceState exists per deployed collection. It holds the issued
counter, the accumulated unwithdrawn funds, the metadata base and the wallet
records. Wallet records are appended on first committed interaction and
never removed.

All writes go through a StateTransaction. Each write is journaled; if the
body of `IssuanceState.transaction()` raises, the journal is replayed in
reverse and the state is exactly what it was before the request.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List

from mintgate.errors import InvariantViolation
from mintgate.quota import WalletRecord


class IssuanceState:
    """Counters and wallet records for a single collection."""

    def __init__(self, max_supply: int, metadata_base: str = ""):
        self.max_supply = max_supply
        self._total_issued = 0
        self._funds = 0
        self._metadata_base = metadata_base
        self._wallets: Dict[str, WalletRecord] = {}
        self._lock = threading.RLock()
        self._open = False

    @property
    def total_issued(self) -> int:
        return self._total_issued

    @property
    def funds(self) -> int:
        return self._funds

    @property
    def metadata_base(self) -> str:
        return self._metadata_base

    def wallet(self, identity: str) -> WalletRecord:
        """Record for `identity`; an empty record if it never minted."""
        with self._lock:
            return self._wallets.get(identity, WalletRecord())

    def has_wallet(self, identity: str) -> bool:
        with self._lock:
            return identity in self._wallets

    def wallet_count(self) -> int:
        with self._lock:
            return len(self._wallets)

    @contextmanager
    def transaction(self) -> Iterator["StateTransaction"]:
        """Apply writes atomically; any exception rolls every write back.

        Transactions do not nest: the undo journal restores absolute values,
        so an inner commit would be erased by an outer rollback.
        """
        with self._lock:
            if self._open:
                raise InvariantViolation("a state transaction is already open")
            self._open = True
            tx = StateTransaction(self)
            try:
                yield tx
            except BaseException:
                tx.rollback()
                raise
            finally:
                self._open = False


class StateTransaction:
    """Journaled writer over an IssuanceState."""

    def __init__(self, state: IssuanceState):
        self._state = state
        self._undo: List[Callable[[], None]] = []

    def add_issued(self, quantity: int) -> int:
        s = self._state
        if quantity <= 0:
            raise InvariantViolation(f"issued increment must be positive: {quantity}")
        if s._total_issued + quantity > s.max_supply:
            raise InvariantViolation(
                f"total_issued would exceed max_supply: {s._total_issued} + {quantity} > {s.max_supply}"
            )
        previous = s._total_issued
        s._total_issued = previous + quantity
        self._undo.append(lambda: setattr(s, "_total_issued", previous))
        return s._total_issued

    def add_funds(self, amount: int) -> int:
        s = self._state
        previous = s._funds
        s._funds = previous + amount
        self._undo.append(lambda: setattr(s, "_funds", previous))
        return s._funds

    def sub_funds(self, amount: int) -> int:
        s = self._state
        if amount > s._funds:
            raise InvariantViolation(f"Insufficient funds: have {s._funds}, need {amount}")
        previous = s._funds
        s._funds = previous - amount
        self._undo.append(lambda: setattr(s, "_funds", previous))
        return s._funds

    def put_wallet(self, identity: str, record: WalletRecord) -> None:
        wallets = self._state._wallets
        existed = identity in wallets
        previous = wallets.get(identity)
        if existed:
            if record.public_minted < previous.public_minted:
                raise InvariantViolation(f"public_minted cannot decrease for {identity}")
            if previous.allowlist_claimed and not record.allowlist_claimed:
                raise InvariantViolation(f"allowlist claim cannot be cleared for {identity}")
        wallets[identity] = record

        def undo() -> None:
            if existed:
                wallets[identity] = previous
            else:
                wallets.pop(identity, None)

        self._undo.append(undo)

    def set_metadata_base(self, value: str) -> None:
        s = self._state
        previous = s._metadata_base
        s._metadata_base = value
        self._undo.append(lambda: setattr(s, "_metadata_base", previous))

    def rollback(self) -> None:
        while self._undo:
            self._undo.pop()()
