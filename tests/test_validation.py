"""Tests for amount entry, submission validation and confirmation building."""

from decimal import Decimal
from uuid import uuid4

import pytest

from eminent_bank.domain import AccountSnapshot, AccountType, mask_account_number, to_money
from eminent_bank.exceptions import InsufficientFundsError, TransferValidationError, WorkflowStateError
from eminent_bank.workflow.confirmation import build_confirmation, format_amount
from eminent_bank.workflow.validation import (
    apply_amount_keystroke,
    is_acceptable_amount_input,
    parse_amount,
    validate_transfer_input,
)


@pytest.fixture
def checking() -> AccountSnapshot:
    return AccountSnapshot(
        account_id=uuid4(),
        account_number="1000000001",
        account_type=AccountType.CHECKING,
        balance=Decimal("500.00"),
        owner_id=uuid4(),
    )


@pytest.fixture
def recipient() -> AccountSnapshot:
    return AccountSnapshot(
        account_id=uuid4(),
        account_number="9876543210",
        account_type=AccountType.SAVINGS,
        balance=Decimal("0.00"),
        owner_id=uuid4(),
        nickname="Rainy Day",
    )


class TestDomainHelpers:
    def test_mask_account_number(self) -> None:
        assert mask_account_number("1234567890") == "****7890"
        assert mask_account_number("") == "N/A"
        assert mask_account_number(None) == "N/A"

    def test_label_without_nickname(self, checking) -> None:
        assert checking.label == "checking (****0001)"

    def test_label_with_nickname(self, recipient) -> None:
        assert recipient.label == "savings (Rainy Day) (****3210)"

    def test_to_money(self) -> None:
        assert to_money(10) == Decimal("10.00")
        assert to_money(Decimal("1.239")) == Decimal("1.24")
        assert str(to_money(2.5)) == "2.50"


class TestAmountEntry:
    """The amount field only takes digits with at most one decimal point."""

    @pytest.mark.parametrize("value", ["", "0", "12", "12.", "12.5", ".5", "100.00"])
    def test_acceptable(self, value) -> None:
        assert is_acceptable_amount_input(value)

    @pytest.mark.parametrize("value", ["12a", "1.2.3", "-5", "1e5", " 12", "1,000"])
    def test_rejected(self, value) -> None:
        assert not is_acceptable_amount_input(value)

    def test_rejected_keystroke_keeps_previous_value(self) -> None:
        assert apply_amount_keystroke("12.5", "12.5x") == "12.5"
        assert apply_amount_keystroke("12.", "12.3") == "12.3"
        assert apply_amount_keystroke("12", "") == ""

    def test_parse_amount(self) -> None:
        assert parse_amount("100") == Decimal("100")
        assert parse_amount(" 0.50 ") == Decimal("0.50")
        assert parse_amount("0") is None
        assert parse_amount(".") is None
        assert parse_amount("abc") is None
        assert parse_amount("") is None
        assert parse_amount(None) is None


class TestSubmissionValidation:
    def test_valid_request(self, checking) -> None:
        req = validate_transfer_input([checking], checking.account_id, " 9876543210 ", "100", "Rent")

        assert req.source == checking
        assert req.destination_account_number == "9876543210"
        assert req.amount == Decimal("100")
        assert req.purpose == "Rent"
        assert req.destination is None

    def test_blank_purpose_defaults(self, checking) -> None:
        req = validate_transfer_input([checking], checking.account_id, "9876543210", "10", "   ")
        assert req.purpose == "General Transfer"

    def test_custom_default_purpose(self, checking) -> None:
        req = validate_transfer_input([checking], checking.account_id, "9876543210", "10", None, default_purpose="Misc")
        assert req.purpose == "Misc"

    @pytest.mark.parametrize(
        "source,destination,amount",
        [
            (None, "9876543210", "10"),
            ("use-checking", "", "10"),
            ("use-checking", "9876543210", ""),
            ("use-checking", "9876543210", "0"),
            ("use-checking", "9876543210", "abc"),
        ],
    )
    def test_missing_fields(self, checking, source, destination, amount) -> None:
        source_id = checking.account_id if source == "use-checking" else source
        with pytest.raises(TransferValidationError) as exc:
            validate_transfer_input([checking], source_id, destination, amount, None)
        assert exc.value.message == "Please fill in all required fields and ensure the amount is valid."

    def test_too_many_decimal_places(self, checking) -> None:
        with pytest.raises(TransferValidationError, match="two decimal places"):
            validate_transfer_input([checking], checking.account_id, "9876543210", "1.005", None)

    @pytest.mark.parametrize("amount_text,expected", [("1.000", "1"), ("1.50", "1.5"), ("12.3400", "12.34"), ("100", "100")])
    def test_trailing_zeros_allowed(self, checking, amount_text, expected) -> None:
        req = validate_transfer_input([checking], checking.account_id, "9876543210", amount_text, None)
        assert req.amount == Decimal(expected)

    def test_unknown_source(self, checking) -> None:
        with pytest.raises(TransferValidationError) as exc:
            validate_transfer_input([checking], uuid4(), "9876543210", "10", None)
        assert exc.value.message == 'Invalid "from" account selected.'

    def test_insufficient_funds(self, checking) -> None:
        with pytest.raises(InsufficientFundsError) as exc:
            validate_transfer_input([checking], checking.account_id, "9876543210", "500.01", None)
        assert exc.value.message == "Insufficient funds in the selected account."

    def test_full_balance_allowed(self, checking) -> None:
        req = validate_transfer_input([checking], checking.account_id, "9876543210", "500", None)
        assert req.amount == Decimal("500")


class TestConfirmation:
    def test_format_amount(self) -> None:
        assert format_amount(Decimal("1234.5")) == "$1,234.50"

    def test_build_confirmation(self, checking, recipient) -> None:
        req = validate_transfer_input([checking], checking.account_id, "9876543210", "100", "Rent")
        req.destination = recipient

        conf = build_confirmation(req, "Customer Transfer")

        assert conf.source_label == "checking (****0001)"
        assert conf.destination_label == "savings (Rainy Day) (****3210)"
        assert conf.destination_account_id == recipient.account_id
        assert conf.amount == Decimal("100")
        assert conf.purpose == "Rent"
        assert conf.classification == "Customer Transfer"
        assert len(conf.idempotency_key) == 32

    def test_each_confirmation_gets_a_fresh_key(self, checking, recipient) -> None:
        req = validate_transfer_input([checking], checking.account_id, "9876543210", "100", None)
        req.destination = recipient

        assert build_confirmation(req, "x").idempotency_key != build_confirmation(req, "x").idempotency_key

    def test_unresolved_request(self, checking) -> None:
        req = validate_transfer_input([checking], checking.account_id, "9876543210", "100", None)
        with pytest.raises(WorkflowStateError):
            build_confirmation(req, "Customer Transfer")
