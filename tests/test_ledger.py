"""
CarbonLedger - Account Ledger Tests
====================================
Unit tests for balances, supply and logical clock.
"""

import pytest

from carbon_ledger.constants import ErrorKind, OffsetStatus
from carbon_ledger.domain.clock import BlockHeightClock, SystemClock, create_clock
from carbon_ledger.domain.ledger import AccountLedger
from carbon_ledger.domain.models import OffsetRecord, UserAggregate
from carbon_ledger.domain.validation import (
    require_bounded_list,
    require_bounded_string,
    require_uint,
)
from carbon_ledger.errors import (
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidConfigError,
    MaxSupplyExceededError,
    MetadataTooLongError,
)


class TestAccountLedger:
    """Test AccountLedger class"""

    def test_unknown_account_has_zero_balance(self):
        """Test default balance"""
        ledger = AccountLedger()

        assert ledger.balance_of("nobody") == 0
        assert ledger.total_supply == 0

    def test_mint_increases_balance_and_supply(self):
        """Test mint"""
        ledger = AccountLedger()
        ledger.mint(500, "wallet_1")
        ledger.mint(250, "wallet_1")

        assert ledger.balance_of("wallet_1") == 750
        assert ledger.total_supply == 750

    def test_mint_over_cap_fails(self):
        """Test max supply cap"""
        ledger = AccountLedger(max_supply=1000)
        ledger.mint(1000, "wallet_1")

        with pytest.raises(MaxSupplyExceededError) as exc_info:
            ledger.mint(1, "wallet_2")

        assert exc_info.value.kind == ErrorKind.INVALID_AMOUNT
        assert ledger.total_supply == 1000
        assert ledger.balance_of("wallet_2") == 0

    def test_burn_insufficient_balance(self):
        """Test burn oltre il balance"""
        ledger = AccountLedger()
        ledger.mint(100, "wallet_1")

        with pytest.raises(InsufficientBalanceError):
            ledger.burn(101, "wallet_1")

        assert ledger.balance_of("wallet_1") == 100

    def test_burn_decreases_balance_and_supply(self):
        """Test burn"""
        ledger = AccountLedger()
        ledger.mint(100, "wallet_1")
        ledger.burn(40, "wallet_1")

        assert ledger.balance_of("wallet_1") == 60
        assert ledger.total_supply == 60

    @pytest.mark.parametrize("amount", [0, -5])
    def test_transfer_non_positive_amount(self, amount):
        """Test transfer amount <= 0"""
        ledger = AccountLedger()
        ledger.mint(100, "wallet_1")

        with pytest.raises(InvalidAmountError):
            ledger.transfer("wallet_1", "wallet_2", amount)

    def test_transfer_moves_balance(self):
        """Test transfer keeps supply constant"""
        ledger = AccountLedger()
        ledger.mint(100, "wallet_1")
        ledger.transfer("wallet_1", "wallet_2", 30)

        assert ledger.balance_of("wallet_1") == 70
        assert ledger.balance_of("wallet_2") == 30
        assert ledger.total_supply == 100
        assert ledger.check_invariants() == []

    def test_holders_skips_empty_accounts(self):
        """Test holders iterator"""
        ledger = AccountLedger()
        ledger.mint(10, "wallet_1")
        ledger.transfer("wallet_1", "wallet_2", 10)

        assert dict(ledger.holders()) == {"wallet_2": 10}

    def test_check_invariants_detects_supply_mismatch(self):
        """Test invariant check"""
        ledger = AccountLedger()
        ledger.mint(10, "wallet_1")
        ledger.total_supply = 11

        violations = ledger.check_invariants()

        assert len(violations) == 1
        assert "sum(balances)" in violations[0]


class TestValidation:
    """Test input guards"""

    @pytest.mark.parametrize("value", [-1, 1.5, "10", True, None])
    def test_require_uint_rejects(self, value):
        with pytest.raises(InvalidAmountError):
            require_uint("amount", value)

    def test_require_uint_accepts_zero(self):
        assert require_uint("amount", 0) == 0

    def test_bounded_string_limit(self):
        assert require_bounded_string("notes", "x" * 256, 256) == "x" * 256

        with pytest.raises(MetadataTooLongError):
            require_bounded_string("notes", "x" * 257, 256)

    def test_bounded_list_returns_tuple(self):
        assert require_bounded_list("tags", ["a", "b"], 10, 32) == ("a", "b")

    def test_bounded_list_rejects_bare_string(self):
        with pytest.raises(InvalidAmountError):
            require_bounded_list("tags", "solar", 10, 32)

    @pytest.mark.parametrize("values", [None, 7])
    def test_bounded_list_rejects_non_iterable(self, values):
        with pytest.raises(InvalidAmountError):
            require_bounded_list("tags", values, 10, 32)

    def test_bounded_list_too_many_items(self):
        with pytest.raises(MetadataTooLongError):
            require_bounded_list("tags", ["t"] * 11, 10, 32)


class TestClock:
    """Test logical clocks"""

    def test_block_height_clock_advance(self):
        clock = BlockHeightClock(1000)

        assert clock.now() == 1000
        assert clock.advance(5) == 1005
        assert clock.now() == 1005

    def test_block_height_clock_never_goes_back(self):
        clock = BlockHeightClock(1000)

        with pytest.raises(ValueError):
            clock.set_height(999)

        with pytest.raises(ValueError):
            clock.advance(-1)

    def test_system_clock_is_monotonic(self):
        clock = SystemClock()
        first = clock.now()

        assert clock.now() >= first > 0

    def test_create_clock(self):
        assert isinstance(create_clock("block", 42), BlockHeightClock)
        assert create_clock("block", 42).now() == 42
        assert isinstance(create_clock("system"), SystemClock)

        with pytest.raises(InvalidConfigError):
            create_clock("lunar")


class TestModels:
    """Test domain models"""

    def test_offset_record_dict_round_trip(self):
        record = OffsetRecord(
            offset_id=1, owner="wallet_1", amount=500, pool="pool",
            payment=50_000, metadata="wind farm", created_at=1000,
        )

        data = record.to_dict()

        assert data["status"] == "active"
        assert OffsetRecord.from_dict(data) == record

    def test_retired_record_is_verified(self):
        record = OffsetRecord(
            offset_id=1, owner="wallet_1", amount=500, pool="pool",
            payment=50_000, metadata="", created_at=1000,
        )

        retired = record.retired()

        assert retired.status == OffsetStatus.RETIRED
        assert retired.verified is True
        assert record.is_active()

    def test_user_aggregate_transitions(self):
        aggregate = UserAggregate().with_issued(500, 1000).with_retired(200, 1005)

        assert aggregate == UserAggregate(
            total_offset=500, active_offset=300, retired_offset=200, last_offset_time=1005
        )
        assert aggregate.is_consistent()
        assert UserAggregate.from_dict(aggregate.to_dict()) == aggregate
