import math
from datetime import date as date_type
from decimal import Decimal
from typing import Any, Mapping, Optional

from email_validator import EmailNotValidError, validate_email

from config import PASSWORD_MIN_LENGTH
from errors import Result

TRANSACTION_TYPES = ("income", "expense")
PARTIAL_TRANSACTION_FIELDS = ("name", "note", "type", "category", "amount", "date")


def is_password_valid(password: Any) -> Result:
    """
    Check that the password is a string of at least PASSWORD_MIN_LENGTH
    characters.
    """
    if not isinstance(password, str):
        return Result.failure(
            f"The password should be a string, instead got a {type(password).__name__}"
        )
    if len(password) < PASSWORD_MIN_LENGTH:
        return Result.failure(
            f"The password should be at least {PASSWORD_MIN_LENGTH} characters long."
        )
    return Result.success()


def is_email_valid(email: Any) -> Result:
    """
    Check the email against the address grammar (single `@`, valid
    local-part and dotted domain). Deliverability is not checked.
    """
    if not isinstance(email, str):
        return Result.failure(f"The given email is not valid: {email}")
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return Result.failure(f"The given email is not valid: {email}")
    return Result.success()


def _is_valid_amount(amount: Any) -> bool:
    if isinstance(amount, bool):
        return False
    if isinstance(amount, Decimal):
        return amount.is_finite()
    if isinstance(amount, (int, float)):
        return math.isfinite(amount)
    return False


def _is_valid_date(value: Any) -> bool:
    # datetime is a subclass of date
    return isinstance(value, date_type)


def _is_valid_name(name: Any) -> bool:
    return isinstance(name, str) and len(name) > 0


def is_valid_transaction(name: Any, amount: Any, date: Any, note: Optional[Any] = None) -> Result:
    """
    Validate the fields of a new transaction.

    Checks run in a fixed order (name, amount, date, note) and the first
    failure is the one reported.
    """
    if not _is_valid_name(name):
        return Result.failure("The transaction's name should be a valid non-empty string.")
    if not _is_valid_amount(amount):
        return Result.failure("The transaction's amount should be a valid number.")
    if not _is_valid_date(date):
        return Result.failure("The transaction's date should be a valid date.")
    if note is not None and not isinstance(note, str):
        return Result.failure("The transaction's note should be a string.")
    return Result.success()


def is_valid_partial_transaction(fields: Mapping[str, Any]) -> Result:
    """
    Validate the changes of a transaction edit, where any subset of
    name/note/type/category/amount/date may be given.

    `type` and `category` go together: one without the other is rejected.
    """
    present = {k: v for k, v in fields.items() if k in PARTIAL_TRANSACTION_FIELDS and v is not None}

    if not present:
        return Result.failure(
            "At least one of the following properties should be given: "
            + ", ".join(PARTIAL_TRANSACTION_FIELDS)
            + "."
        )

    if ("type" in present) != ("category" in present):
        return Result.failure(
            "Both the type and the category should be given to change a transaction's category."
        )

    if "name" in present and not _is_valid_name(present["name"]):
        return Result.failure("The transaction's name should be a valid non-empty string.")
    if "note" in present and not isinstance(present["note"], str):
        return Result.failure("The transaction's note should be a string.")
    if "amount" in present and not _is_valid_amount(present["amount"]):
        return Result.failure("The transaction's amount should be a valid number.")
    if "date" in present and not _is_valid_date(present["date"]):
        return Result.failure("The transaction's date should be a valid date.")
    if "type" in present and present["type"] not in TRANSACTION_TYPES:
        return Result.failure(
            f"The transaction's type should be either income or expense, instead got: {present['type']}"
        )
    if "category" in present and not _is_valid_name(present["category"]):
        return Result.failure("The transaction's category should be a valid non-empty string.")

    return Result.success()
