from datetime import date, datetime
from decimal import Decimal

import pytest

from validation import (
    is_email_valid,
    is_password_valid,
    is_valid_partial_transaction,
    is_valid_transaction,
)


class TestPassword:

    @pytest.mark.parametrize("password", ["", "a", "asdf", "1234567"])
    def test_short_passwords_are_rejected(self, password):
        result = is_password_valid(password)
        assert result.ok is False
        assert result.error == "The password should be at least 8 characters long."

    @pytest.mark.parametrize("password", ["12345678", "testing12345", "x" * 64])
    def test_long_enough_passwords_are_accepted(self, password):
        result = is_password_valid(password)
        assert result.ok is True
        assert result.error is None

    def test_non_string_names_the_type(self):
        result = is_password_valid(1234)
        assert result.ok is False
        assert result.error == "The password should be a string, instead got a int"


class TestEmail:

    @pytest.mark.parametrize("email", [None, 1233, "testing", "testing.com", "testing-testing.com", "a@b@budget.com"])
    def test_invalid_emails(self, email):
        result = is_email_valid(email)
        assert result.ok is False
        assert result.error == f"The given email is not valid: {email}"

    @pytest.mark.parametrize("email", ["john@budget.com", "john@budget.com.uy", "john-123@budget.com.uy"])
    def test_valid_emails(self, email):
        result = is_email_valid(email)
        assert result.ok is True
        assert result.error is None


class TestTransaction:

    def test_valid_transaction(self):
        result = is_valid_transaction(name="Test transaction", amount=10, date=datetime.now())
        assert result.ok is True
        assert result.error is None

    def test_decimal_amount_and_plain_date_are_accepted(self):
        assert is_valid_transaction("Rent", Decimal("10.50"), date(2023, 1, 1), "January").ok

    def test_invalid_name(self):
        result = is_valid_transaction(name="", amount=10, date=datetime.now())
        assert result.error == "The transaction's name should be a valid non-empty string."

    @pytest.mark.parametrize("amount", ["10", None, True, float("nan"), float("inf")])
    def test_invalid_amount(self, amount):
        result = is_valid_transaction(name="Test", amount=amount, date=datetime.now())
        assert result.ok is False
        assert result.error == "The transaction's amount should be a valid number."

    @pytest.mark.parametrize("value", ["2022-01-01", 100, None])
    def test_invalid_date(self, value):
        result = is_valid_transaction(name="Test", amount=10, date=value)
        assert result.ok is False
        assert result.error == "The transaction's date should be a valid date."

    def test_first_failure_wins(self):
        result = is_valid_transaction(name=None, amount="x", date="y")
        assert result.error == "The transaction's name should be a valid non-empty string."

        result = is_valid_transaction(name="Test", amount="x", date="y")
        assert result.error == "The transaction's amount should be a valid number."

    def test_note_must_be_a_string(self):
        result = is_valid_transaction("Test", 10, datetime.now(), note=5)
        assert result.error == "The transaction's note should be a string."


class TestPartialTransaction:

    def test_no_fields(self):
        result = is_valid_partial_transaction({})
        assert result.ok is False
        assert result.error.startswith("At least one of the following properties should be given")

    def test_unknown_fields_do_not_count(self):
        assert is_valid_partial_transaction({"colour": "red"}).ok is False

    def test_single_field(self):
        assert is_valid_partial_transaction({"name": "Groceries"}).ok is True
        assert is_valid_partial_transaction({"amount": 12.5}).ok is True

    @pytest.mark.parametrize("fields", [{"category": "Home"}, {"type": "expense"}])
    def test_type_and_category_go_together(self, fields):
        result = is_valid_partial_transaction(fields)
        assert result.ok is False
        assert result.error == "Both the type and the category should be given to change a transaction's category."

    def test_type_must_be_income_or_expense(self):
        result = is_valid_partial_transaction({"type": "savings", "category": "Home"})
        assert result.error == "The transaction's type should be either income or expense, instead got: savings"

    def test_wrong_field_types(self):
        assert is_valid_partial_transaction({"name": 3}).ok is False
        assert is_valid_partial_transaction({"note": 3}).ok is False
        assert is_valid_partial_transaction({"amount": "3"}).ok is False
        assert is_valid_partial_transaction({"date": "2022-01-01"}).ok is False

    def test_full_change(self):
        fields = {
            "name": "Rent",
            "note": "March",
            "type": "expense",
            "category": "Home",
            "amount": 900,
            "date": datetime(2023, 3, 1),
        }
        assert is_valid_partial_transaction(fields).ok is True
