"""
Mint Authorizer

Orchestrates the gates into a single all-or-nothing decision per request.

    public mint     AccessControl(direct caller) → PhaseClock(PUBLIC)
                    → quantity > 0 → SupplyGuard → QuotaLedger.charge_public
                    → PaymentGuard(unit_price × quantity) → commit + issue

    allowlist mint  AccessControl(direct caller) → PhaseClock(PRESALE)
                    → PaymentGuard(unit_price) → QuotaLedger.charge_allowlist
                    → AllowlistVerifier → SupplyGuard(1) → commit + issue 1

    admin mint      AccessControl(admin) → quantity > 0 → SupplyGuard
                    → commit + issue

Requests are serialized through one lock, which gives the total-order,
single-writer model the invariants rely on. Checks only read; every
mutation of a request (issued counter, wallet record, funds, refund) is
applied inside one state transaction. A refund transfer that fails raises
TransferFailed inside that transaction, which rolls everything back before
the issuer is ever called.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import pathlib
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Optional, Sequence, Tuple

from mintgate.audit import AuditEventType, AuditLogger
from mintgate.collection import (
    AllowlistMode,
    CollectionConfig,
    PhasePolicyKind,
    load_collection_config,
)
from mintgate.config import get_settings
from mintgate.errors import (
    InvalidQuantity,
    MintError,
    NotInAllowlist,
    PresaleActive,
    PublicSaleActive,
    ReentrantCall,
    TransferFailed,
    UnsupportedOperation,
)
from mintgate.guards import AccessControl, PaymentGuard, SupplyGuard
from mintgate.interfaces import Clock, Issuer, ValueTransfer
from mintgate.merkle import (
    AllowlistVerifier,
    ExplicitAllowlist,
    HashLike,
    MerkleAllowlist,
)
from mintgate.observability import (
    MintLogger,
    correlation_id_var,
    generate_correlation_id,
    get_logger,
    set_correlation_id,
)
from mintgate.phase import (
    AdminTogglePhasePolicy,
    Phase,
    PhaseClock,
    PhasePolicy,
    ThresholdPhasePolicy,
)
from mintgate.quota import QuotaLedger, WalletRecord
from mintgate.state import IssuanceState
from mintgate.validation import ValidationError, Validators, normalize_identity


@dataclass(frozen=True)
class MintRequest:
    """
    A single mint call.

    `caller` is the identity invoking the mint, `origin` the identity that
    started the call chain. `quantity` is ignored on the allowlist path,
    which always mints one unit.
    """
    caller: str
    origin: str
    value: int = 0
    quantity: int = 1
    proof: Tuple[HashLike, ...] = ()

    def __post_init__(self):
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValidationError("quantity", "Expected integer", self.quantity)
        result = Validators.validate_uint(self.value, "value")
        result.raise_if_invalid()
        object.__setattr__(self, "value", result.sanitized_value)
        object.__setattr__(self, "proof", tuple(self.proof or ()))

    @classmethod
    def direct(
        cls,
        identity: str,
        value: int = 0,
        quantity: int = 1,
        proof: Sequence[HashLike] = (),
    ) -> "MintRequest":
        """A request sent straight from `identity` (caller == origin)."""
        return cls(caller=identity, origin=identity, value=value, quantity=quantity, proof=tuple(proof))


@dataclass(frozen=True)
class MintReceipt:
    """Outcome of an accepted mint."""
    identity: str
    quantity: int
    phase: Phase
    paid: int
    refund: int
    total_issued: int

    @property
    def retained(self) -> int:
        return self.paid - self.refund

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "quantity": self.quantity,
            "phase": self.phase.value,
            "paid": str(self.paid),
            "refund": str(self.refund),
            "total_issued": self.total_issued,
        }


def build_phase_policy(config: CollectionConfig) -> PhasePolicy:
    if config.phase_policy is PhasePolicyKind.ADMIN:
        return AdminTogglePhasePolicy()
    return ThresholdPhasePolicy(config.public_sale_at)


def build_allowlist(config: CollectionConfig) -> AllowlistVerifier:
    if config.allowlist_mode is AllowlistMode.EXPLICIT:
        return ExplicitAllowlist()
    return MerkleAllowlist(config.allowlist_root)


class MintAuthorizer:
    """
    Single authoritative mint gate for one collection.

    Holds the issuance state and composes the external issuer, clock and
    value transfer primitive.
    """

    def __init__(
        self,
        config: CollectionConfig,
        issuer: Issuer,
        transfer: ValueTransfer,
        clock: Optional[Clock] = None,
        allowlist: Optional[AllowlistVerifier] = None,
        audit: Optional[AuditLogger] = None,
        logger: Optional[MintLogger] = None,
    ):
        self.config = config
        self._issuer = issuer
        self._transfer = transfer
        self._state = IssuanceState(config.max_supply, config.metadata_base)

        self.phase_clock = PhaseClock(build_phase_policy(config), clock)
        self.allowlist = allowlist or build_allowlist(config)
        self.access = AccessControl(config.admin)
        self.supply = SupplyGuard(config.max_supply)
        self.payment = PaymentGuard(config.payment_policy)
        self.quota = QuotaLedger(config.public_limit)

        if audit is None:
            settings = get_settings().audit
            audit = AuditLogger(max_events=settings.max_events.get(), enabled=settings.enabled.get())
        self.audit = audit
        self._logger = logger or get_logger("authorizer")
        self._lock = threading.RLock()
        self._active: Optional[str] = None

    @classmethod
    def from_file(
        cls,
        path: pathlib.Path,
        issuer: Issuer,
        transfer: ValueTransfer,
        clock: Optional[Clock] = None,
        **kwargs: Any,
    ) -> "MintAuthorizer":
        """Build an authorizer from a collection config file."""
        return cls(load_collection_config(path), issuer, transfer, clock=clock, **kwargs)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def total_issued(self) -> int:
        return self._state.total_issued

    @property
    def remaining_supply(self) -> int:
        return self.supply.remaining(self._state.total_issued)

    @property
    def funds(self) -> int:
        return self._state.funds

    @property
    def metadata_base(self) -> str:
        return self._state.metadata_base

    def wallet(self, identity: str) -> WalletRecord:
        return self._state.wallet(normalize_identity(identity))

    def current_phase(self) -> Phase:
        return self.phase_clock.current_phase()

    def is_allowlisted(self, identity: str, proof: Optional[Sequence[HashLike]] = None) -> bool:
        return self.allowlist.verify(identity, proof)

    # ------------------------------------------------------------------
    # Mint paths
    # ------------------------------------------------------------------

    def public_mint(self, request: MintRequest) -> MintReceipt:
        caller = normalize_identity(request.caller, "caller")
        origin = normalize_identity(request.origin, "origin")
        quantity = request.quantity

        with self._request("public_mint", caller, quantity=quantity, value=str(request.value)):
            self.access.require_direct_caller(caller, origin)

            phase = self.phase_clock.current_phase()
            if phase is not Phase.PUBLIC:
                raise PresaleActive("Public mint is closed while the presale is active")

            if quantity <= 0:
                raise InvalidQuantity(quantity)

            self.supply.reserve(quantity, self._state.total_issued)
            staged = self.quota.charge_public(caller, quantity, self._state.wallet(caller))
            refund = self.payment.reconcile(request.value, self.config.unit_price * quantity)

            total = self._commit(caller, quantity, staged, request.value, refund)
            receipt = MintReceipt(caller, quantity, phase, request.value, refund, total)
            self._accepted(AuditEventType.MINT_PUBLIC, "public_mint", caller, receipt)
            return receipt

    def allowlist_mint(self, request: MintRequest) -> MintReceipt:
        caller = normalize_identity(request.caller, "caller")
        origin = normalize_identity(request.origin, "origin")

        with self._request("allowlist_mint", caller, value=str(request.value)):
            self.access.require_direct_caller(caller, origin)

            phase = self.phase_clock.current_phase()
            if phase is not Phase.PRESALE:
                raise PublicSaleActive("Allowlist mint is closed once the public sale starts")

            refund = self.payment.reconcile(request.value, self.config.unit_price)
            staged = self.quota.charge_allowlist(caller, self._state.wallet(caller))

            # The claim flag is only committed together with a passing proof.
            if not self.allowlist.verify(caller, request.proof):
                raise NotInAllowlist(caller)

            self.supply.reserve(1, self._state.total_issued)

            total = self._commit(caller, 1, staged, request.value, refund)
            receipt = MintReceipt(caller, 1, phase, request.value, refund, total)
            self._accepted(AuditEventType.MINT_ALLOWLIST, "allowlist_mint", caller, receipt)
            return receipt

    def admin_mint(self, caller: str, quantity: int, recipient: Optional[str] = None) -> MintReceipt:
        """Supply-capped mint that skips payment and quota. Admin only."""
        caller = normalize_identity(caller, "caller")
        recipient = normalize_identity(recipient, "recipient") if recipient is not None else caller
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValidationError("quantity", "Expected integer", quantity)

        with self._request("admin_mint", caller, quantity=quantity, recipient=recipient):
            self.access.require_admin(caller, "admin_mint")

            if quantity <= 0:
                raise InvalidQuantity(quantity)

            self.supply.reserve(quantity, self._state.total_issued)

            total = self._commit(recipient, quantity, None, 0, 0)
            receipt = MintReceipt(recipient, quantity, self.phase_clock.current_phase(), 0, 0, total)
            self._accepted(AuditEventType.MINT_ADMIN, "admin_mint", caller, receipt)
            return receipt

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def set_phase_public(self, caller: str) -> bool:
        """Open the public sale. Returns False if it was already open."""
        caller = normalize_identity(caller, "caller")

        with self._request("set_phase_public", caller):
            self.access.require_admin(caller, "set_phase_public")
            policy = self.phase_clock.policy
            if not isinstance(policy, AdminTogglePhasePolicy):
                raise UnsupportedOperation("Phase follows the configured public sale time")

            changed = policy.advance()
            self._logger.info(
                "Public sale opened" if changed else "Public sale already open",
                operation="set_phase_public",
                caller=caller,
            )
            self._audit(AuditEventType.PHASE_ADVANCED, caller, "set_phase_public", {"changed": changed})
            return changed

    def populate_allowlist(self, caller: str, identities: Iterable[str]) -> int:
        """Add identities to an explicit allowlist. Returns how many were new."""
        caller = normalize_identity(caller, "caller")
        members = [normalize_identity(i) for i in identities]

        with self._request("populate_allowlist", caller, count=len(members)):
            self.access.require_admin(caller, "populate_allowlist")
            if not isinstance(self.allowlist, ExplicitAllowlist):
                raise UnsupportedOperation("Allowlist is a merkle commitment and cannot be populated")

            added = self.allowlist.populate(members)
            self._logger.info("Allowlist populated", operation="populate_allowlist", added=added, size=len(self.allowlist))
            self._audit(AuditEventType.ALLOWLIST_POPULATED, caller, "populate_allowlist", {"added": added})
            return added

    def set_metadata_base(self, caller: str, value: str) -> None:
        caller = normalize_identity(caller, "caller")
        if not isinstance(value, str):
            raise ValidationError("metadata_base", f"Expected string, got {type(value).__name__}", value)

        with self._request("set_metadata_base", caller):
            self.access.require_admin(caller, "set_metadata_base")
            with self._state.transaction() as tx:
                tx.set_metadata_base(value)
            self._logger.info("Metadata base updated", operation="set_metadata_base", metadata_base=value)
            self._audit(AuditEventType.METADATA_UPDATED, caller, "set_metadata_base", {"metadata_base": value})

    def withdraw_funds(self, caller: str) -> int:
        """Send the whole accumulated balance to the admin. Returns the amount."""
        caller = normalize_identity(caller, "caller")

        with self._request("withdraw_funds", caller):
            self.access.require_admin(caller, "withdraw_funds")
            amount = self._state.funds
            if amount:
                with self._state.transaction() as tx:
                    tx.sub_funds(amount)
                    self._send(self.config.admin, amount)
            self._logger.info("Funds withdrawn", operation="withdraw_funds", amount=str(amount))
            self._audit(AuditEventType.FUNDS_WITHDRAWN, caller, "withdraw_funds", {"amount": str(amount)})
            return amount

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _request(self, action: str, actor: str, **context: Any) -> Iterator[None]:
        """Serialize one request and report its rejection, if any.

        The lock is re-entrant so that a collaborator calling back into the
        authorizer during a transfer fails with ReentrantCall instead of
        deadlocking. Nested requests are never allowed to touch state.
        """
        token = set_correlation_id(generate_correlation_id())
        start = time.monotonic()
        try:
            with self._lock:
                if self._active is not None:
                    raise ReentrantCall(action, self._active)
                self._active = action
                try:
                    yield
                finally:
                    self._active = None
        except MintError as exc:
            self._logger.warning(
                f"{action} rejected: {exc}",
                operation=action,
                error_code=exc.code.value,
                duration_ms=(time.monotonic() - start) * 1000,
                actor=actor,
                **context,
            )
            self._audit(
                AuditEventType.REQUEST_REJECTED,
                actor,
                action,
                {"error": exc.code.value, **context},
                outcome="denied",
            )
            raise
        finally:
            correlation_id_var.reset(token)

    def _commit(
        self,
        identity: str,
        quantity: int,
        wallet: Optional[WalletRecord],
        attached: int,
        refund: int,
    ) -> int:
        with self._state.transaction() as tx:
            total = tx.add_issued(quantity)
            if wallet is not None:
                tx.put_wallet(identity, wallet)
            if attached:
                tx.add_funds(attached)
            if refund:
                self._send(identity, refund)
                tx.sub_funds(refund)
            self._issuer.issue(identity, quantity)
        return total

    def _send(self, recipient: str, amount: int) -> None:
        try:
            ok = self._transfer.transfer(recipient, amount)
        except Exception as ex:
            raise TransferFailed(recipient, amount, str(ex)) from ex
        if not ok:
            raise TransferFailed(recipient, amount)

    def _accepted(self, event_type: AuditEventType, action: str, actor: str, receipt: MintReceipt) -> None:
        self._logger.info(
            f"{action} accepted",
            operation=action,
            actor=actor,
            **receipt.to_dict(),
        )
        self._audit(event_type, actor, action, receipt.to_dict())

    def _audit(
        self,
        event_type: AuditEventType,
        actor: str,
        action: str,
        details: Dict[str, Any],
        outcome: str = "success",
    ) -> None:
        self.audit.log(
            event_type=event_type,
            actor=actor,
            action=action,
            outcome=outcome,
            details=details,
            correlation_id=correlation_id_var.get(),
        )
