"""
Stateless gates of the mint pipeline.

SupplyGuard, PaymentGuard and AccessControl only read; they raise a MintError
or return what the orchestrator needs to stage. Nothing here mutates state.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from enum import Enum

from mintgate.errors import (
    AccessDenied,
    CallerIsContract,
    ExceedsMaxSupply,
    IncorrectPaymentValue,
    InsufficientPayment,
)


class SupplyGuard:
    """Enforces total_issued + quantity <= max_supply."""

    def __init__(self, max_supply: int):
        self.max_supply = max_supply

    def remaining(self, total_issued: int) -> int:
        return max(self.max_supply - total_issued, 0)

    def reserve(self, quantity: int, total_issued: int) -> None:
        """Check capacity for `quantity`. Must run before any increment."""
        if total_issued + quantity > self.max_supply:
            raise ExceedsMaxSupply(total_issued, quantity, self.max_supply)


class PaymentPolicy(Enum):
    EXACT = "exact"
    REFUND = "refund"


class PaymentGuard:
    """
    Validates attached payment against the required amount.

    EXACT: attached must equal required.
    REFUND: attached must cover required; the excess is returned as refund.
    """

    def __init__(self, policy: PaymentPolicy = PaymentPolicy.EXACT):
        self.policy = policy

    def reconcile(self, attached: int, required: int) -> int:
        """Return the refund owed to the caller (0 under EXACT)."""
        if self.policy is PaymentPolicy.EXACT:
            if attached != required:
                raise IncorrectPaymentValue(attached, required)
            return 0

        if attached < required:
            raise InsufficientPayment(attached, required)
        return attached - required


class AccessControl:
    """Caller identity gates."""

    def __init__(self, admin: str):
        self.admin = admin

    @staticmethod
    def require_direct_caller(caller: str, origin: str) -> None:
        # Heuristic only: a relaying contract shows up as caller != origin.
        if caller != origin:
            raise CallerIsContract(caller, origin)

    def is_admin(self, caller: str) -> bool:
        return caller == self.admin

    def require_admin(self, caller: str, action: str = "") -> None:
        if not self.is_admin(caller):
            raise AccessDenied(caller, action)
