"""
Mint Authorization Errors

Every rejection in the mint pipeline is a terminal, structured error. The
request is aborted as a whole and no state mutation is observable; callers
resubmit a corrected request instead of relying on retries.

Each error carries an ErrorCode so that logs, audit records and callers can
switch on the kind without parsing messages.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Rejection kinds surfaced by the authorization pipeline."""
    PRESALE_ACTIVE = "PresaleActive"
    PUBLIC_SALE_ACTIVE = "PublicSaleActive"
    INVALID_QUANTITY = "InvalidQuantity"
    EXCEEDS_MAX_SUPPLY = "ExceedsMaxSupply"
    EXCEEDS_MINT_LIMIT = "ExceedsMintLimit"
    NOT_IN_ALLOWLIST = "NotInAllowlist"
    ALREADY_CLAIMED_ALLOWLIST = "AlreadyClaimedAllowlist"
    INCORRECT_PAYMENT_VALUE = "IncorrectPaymentValue"
    INSUFFICIENT_PAYMENT = "InsufficientPayment"
    CALLER_IS_CONTRACT = "CallerIsContract"
    ACCESS_DENIED = "AccessDenied"
    TRANSFER_FAILED = "TransferFailed"
    UNSUPPORTED_OPERATION = "UnsupportedOperation"
    REENTRANT_CALL = "ReentrantCall"


class MintError(Exception):
    """Base class for every pipeline rejection."""

    code: ErrorCode

    def __init__(self, message: str = "", **details: Any):
        self.details: Dict[str, Any] = details
        super().__init__(message or self.code.value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code.value,
            "message": str(self),
            "details": dict(self.details),
        }


class PresaleActive(MintError):
    code = ErrorCode.PRESALE_ACTIVE


class PublicSaleActive(MintError):
    code = ErrorCode.PUBLIC_SALE_ACTIVE


class InvalidQuantity(MintError):
    code = ErrorCode.INVALID_QUANTITY

    def __init__(self, quantity: int):
        super().__init__(f"Quantity must be positive, got {quantity}", quantity=quantity)


class ExceedsMaxSupply(MintError):
    code = ErrorCode.EXCEEDS_MAX_SUPPLY

    def __init__(self, total_issued: int, quantity: int, max_supply: int):
        super().__init__(
            f"Minting {quantity} would exceed max supply "
            f"({total_issued} issued, cap {max_supply})",
            total_issued=total_issued,
            quantity=quantity,
            max_supply=max_supply,
        )


class ExceedsMintLimit(MintError):
    code = ErrorCode.EXCEEDS_MINT_LIMIT

    def __init__(self, identity: str, minted: int, quantity: int, limit: int):
        super().__init__(
            f"Wallet {identity} limit exceeded (minted={minted}, requested={quantity}, limit={limit})",
            identity=identity,
            minted=minted,
            quantity=quantity,
            limit=limit,
        )


class NotInAllowlist(MintError):
    code = ErrorCode.NOT_IN_ALLOWLIST

    def __init__(self, identity: str):
        super().__init__(f"Address not on allowlist: {identity}", identity=identity)


class AlreadyClaimedAllowlist(MintError):
    code = ErrorCode.ALREADY_CLAIMED_ALLOWLIST

    def __init__(self, identity: str):
        super().__init__(f"Allowlist already claimed by {identity}", identity=identity)


class IncorrectPaymentValue(MintError):
    code = ErrorCode.INCORRECT_PAYMENT_VALUE

    def __init__(self, attached: int, required: int):
        super().__init__(
            f"Payment must equal {required}, got {attached}",
            attached=attached,
            required=required,
        )


class InsufficientPayment(MintError):
    code = ErrorCode.INSUFFICIENT_PAYMENT

    def __init__(self, attached: int, required: int):
        super().__init__(
            f"Payment of at least {required} required, got {attached}",
            attached=attached,
            required=required,
        )


class CallerIsContract(MintError):
    code = ErrorCode.CALLER_IS_CONTRACT

    def __init__(self, caller: str, origin: str):
        super().__init__(
            f"Caller {caller} does not match origin {origin}",
            caller=caller,
            origin=origin,
        )


class AccessDenied(MintError):
    code = ErrorCode.ACCESS_DENIED

    def __init__(self, caller: str, action: str = ""):
        super().__init__(
            f"{caller} is not permitted to {action or 'perform this action'}",
            caller=caller,
            action=action,
        )


class TransferFailed(MintError):
    code = ErrorCode.TRANSFER_FAILED

    def __init__(self, recipient: str, amount: int, reason: Optional[str] = None):
        message = f"Transfer of {amount} to {recipient} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, recipient=recipient, amount=amount)


class UnsupportedOperation(MintError):
    """Admin call that does not apply to the configured variant."""
    code = ErrorCode.UNSUPPORTED_OPERATION


class ReentrantCall(MintError):
    """A request arrived while another request on the same authorizer was still running."""
    code = ErrorCode.REENTRANT_CALL

    def __init__(self, action: str, active: str):
        super().__init__(
            f"{action} rejected: {active} is still in progress",
            action=action,
            active=active,
        )


class InvariantViolation(Exception):
    """State invariant would be broken by a commit."""
    pass
