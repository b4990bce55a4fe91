import pytest

from mintgate.errors import (
    AccessDenied,
    AlreadyClaimedAllowlist,
    CallerIsContract,
    ErrorCode,
    ExceedsMaxSupply,
    ExceedsMintLimit,
    IncorrectPaymentValue,
    InsufficientPayment,
)
from mintgate.guards import AccessControl, PaymentGuard, PaymentPolicy, SupplyGuard
from mintgate.interfaces import ManualClock
from mintgate.phase import (
    AdminTogglePhasePolicy,
    Phase,
    PhaseClock,
    ThresholdPhasePolicy,
)
from mintgate.quota import QuotaLedger, WalletRecord
from mintgate.validation import ValidationError, Validators

ALICE = "0x" + "1" * 40
BOB = "0x" + "2" * 40
ADMIN = "0x" + "a" * 40
PRICE = 50000000000000000


class TestPhaseClock:

    def test_threshold_policy(self):
        clock = ManualClock(start=999)
        phase_clock = PhaseClock(ThresholdPhasePolicy(1000), clock)
        assert phase_clock.current_phase() is Phase.PRESALE

        clock.set(1000)
        assert phase_clock.current_phase() is Phase.PUBLIC

        clock.advance(10**6)
        assert phase_clock.current_phase() is Phase.PUBLIC
        assert not phase_clock.admin_controlled

    def test_admin_toggle_is_one_way(self):
        policy = AdminTogglePhasePolicy()
        phase_clock = PhaseClock(policy, ManualClock())
        assert phase_clock.admin_controlled
        assert phase_clock.current_phase() is Phase.PRESALE

        assert policy.advance() is True
        assert phase_clock.current_phase() is Phase.PUBLIC

        assert policy.advance() is False
        assert phase_clock.current_phase() is Phase.PUBLIC

    def test_admin_toggle_ignores_time(self):
        clock = ManualClock()
        phase_clock = PhaseClock(AdminTogglePhasePolicy(), clock)
        clock.advance(10**9)
        assert phase_clock.current_phase() is Phase.PRESALE

    def test_defaults_to_system_clock(self):
        phase_clock = PhaseClock(ThresholdPhasePolicy(0))
        assert phase_clock.current_phase() is Phase.PUBLIC


class TestSupplyGuard:

    def test_reserve_within_capacity(self):
        guard = SupplyGuard(10)
        guard.reserve(3, 7)
        assert guard.remaining(7) == 3

    def test_reserve_beyond_capacity(self):
        guard = SupplyGuard(10)
        with pytest.raises(ExceedsMaxSupply) as exc:
            guard.reserve(3, 8)
        assert exc.value.code is ErrorCode.EXCEEDS_MAX_SUPPLY
        assert exc.value.details == {"total_issued": 8, "quantity": 3, "max_supply": 10}


class TestPaymentGuard:

    def test_exact_match(self):
        guard = PaymentGuard(PaymentPolicy.EXACT)
        assert guard.reconcile(3 * PRICE, 3 * PRICE) == 0

    @pytest.mark.parametrize("attached", [0, PRICE - 1, PRICE + 1])
    def test_exact_mismatch(self, attached):
        guard = PaymentGuard(PaymentPolicy.EXACT)
        with pytest.raises(IncorrectPaymentValue):
            guard.reconcile(attached, PRICE)

    def test_refund_policy_returns_excess(self):
        guard = PaymentGuard(PaymentPolicy.REFUND)
        assert guard.reconcile(PRICE, PRICE) == 0
        assert guard.reconcile(PRICE + 123, PRICE) == 123

    def test_refund_policy_insufficient(self):
        guard = PaymentGuard(PaymentPolicy.REFUND)
        with pytest.raises(InsufficientPayment):
            guard.reconcile(PRICE - 1, PRICE)


class TestAccessControl:

    def test_direct_caller(self):
        AccessControl.require_direct_caller(ALICE, ALICE)
        with pytest.raises(CallerIsContract):
            AccessControl.require_direct_caller(BOB, ALICE)

    def test_admin_gate(self):
        access = AccessControl(ADMIN)
        access.require_admin(ADMIN)
        with pytest.raises(AccessDenied) as exc:
            access.require_admin(ALICE, "withdraw_funds")
        assert "withdraw_funds" in str(exc.value)


class TestQuotaLedger:

    def test_charge_public_stages_increment(self):
        ledger = QuotaLedger(public_limit=5)
        record = WalletRecord()
        staged = ledger.charge_public(ALICE, 5, record)
        assert staged.public_minted == 5
        assert record.public_minted == 0

    def test_charge_public_over_limit(self):
        ledger = QuotaLedger(public_limit=5)
        with pytest.raises(ExceedsMintLimit) as exc:
            ledger.charge_public(ALICE, 1, WalletRecord(public_minted=5))
        assert exc.value.details["limit"] == 5

    def test_claimed_wallet_gets_one_bonus_slot(self):
        ledger = QuotaLedger(public_limit=5)
        claimed = WalletRecord(public_minted=5, allowlist_claimed=True)
        assert ledger.effective_limit(claimed) == 6
        staged = ledger.charge_public(ALICE, 1, claimed)
        assert staged.public_minted == 6
        with pytest.raises(ExceedsMintLimit):
            ledger.charge_public(ALICE, 1, staged)

    def test_charge_allowlist_once(self):
        ledger = QuotaLedger(public_limit=5)
        staged = ledger.charge_allowlist(ALICE, WalletRecord(public_minted=2))
        assert staged == WalletRecord(public_minted=2, allowlist_claimed=True)
        with pytest.raises(AlreadyClaimedAllowlist):
            ledger.charge_allowlist(ALICE, staged)

    def test_missing_record_defaults_to_empty(self):
        ledger = QuotaLedger(public_limit=2)
        assert ledger.charge_public(BOB, 2).public_minted == 2
        assert ledger.charge_allowlist(BOB).allowlist_claimed


class TestUintValidation:

    def test_decimal_strings_accepted(self):
        result = Validators.validate_uint(" 50000000000000000 ", "value")
        assert result.is_valid
        assert result.sanitized_value == PRICE

    @pytest.mark.parametrize("text", ["²", "٣", "1²", "-1", "1.0", ""])
    def test_non_ascii_and_malformed_digits_rejected(self, text):
        result = Validators.validate_uint(text, "value")
        assert not result.is_valid
        assert result.errors[0].field == "value"
        with pytest.raises(ValidationError):
            result.raise_if_invalid()

    def test_bool_rejected(self):
        assert not Validators.validate_uint(True, "quantity").is_valid
