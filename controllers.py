"""
Operations behind the HTTP routes.

Each controller runs one linear sequence (validate, look up, mutate or
query, build the payload) against the injected Repository and raises an
ApiError subclass on the first failure. main.py turns those errors into
the `{ok: false, error}` envelope.
"""

import logging
from typing import Any, List, Mapping, Tuple

from data_preparation import create_transaction_filter, parse_date
from errors import Conflict, Forbidden, InvalidInput, NotFound, OperationFailed, Unauthenticated
from repository import Repository, transaction_view
from schemas import (
    CategoryMap,
    CategoryRequest,
    EditUserRequest,
    LoginRequest,
    RegisterRequest,
    Transaction,
    TransactionCreate,
    TransactionOut,
    TransactionUpdate,
    User,
)
from security import generate_token, hash_password, is_password_match
from validation import (
    TRANSACTION_TYPES,
    is_email_valid,
    is_password_valid,
    is_valid_partial_transaction,
    is_valid_transaction,
)

logger = logging.getLogger("budget-backend.controllers")

INVALID_CREDENTIALS = "Invalid username or password"


# ----------------------
# Users
# ----------------------

def register_user(repo: Repository, body: RegisterRequest) -> str:
    """Create the user and return a fresh token for it."""
    if repo.get_user_by_username(body.username):
        raise Conflict("That username is already taken, please choose another one.")

    email_validity = is_email_valid(body.email)
    if not email_validity.ok:
        raise InvalidInput(email_validity.error)

    password_validity = is_password_valid(body.password)
    if not password_validity.ok:
        raise InvalidInput(password_validity.error)

    hashed = hash_password(body.password)
    if not hashed.ok:
        raise InvalidInput(hashed.error)

    user_id = repo.create_user(User(username=body.username, email=body.email, password_hash=hashed.data))
    logger.info("Registered user %s (%s)", body.username, user_id)
    return generate_token(user_id)


def login_user(repo: Repository, body: LoginRequest) -> str:
    # unknown user and wrong password must be indistinguishable
    user = repo.get_user_by_username(body.username)
    if user is None or not is_password_match(user.password_hash, body.password):
        logger.warning("Rejected login for %s", body.username)
        raise Unauthenticated(INVALID_CREDENTIALS)

    return generate_token(user.id)


def edit_user(repo: Repository, user_id: str, body: EditUserRequest) -> None:
    user = repo.get_user(user_id)
    if user is None:
        raise NotFound(f"No user was found with the given id: {user_id}")

    changes = {}

    if body.username:
        if repo.get_user_by_username(body.username):
            raise Conflict("That username is already taken.")
        changes["username"] = body.username

    if body.email:
        email_validity = is_email_valid(body.email)
        if not email_validity.ok:
            raise InvalidInput(email_validity.error)
        changes["email"] = body.email

    if bool(body.old_password) != bool(body.new_password):
        raise InvalidInput("One of the passwords is missing.")

    if body.old_password and body.new_password:
        password_validity = is_password_valid(body.new_password)
        if not password_validity.ok:
            raise InvalidInput(password_validity.error)

        if not is_password_match(user.password_hash, body.old_password):
            raise Forbidden("The given (existing) password is not correct.")

        hashed = hash_password(body.new_password)
        if not hashed.ok:
            raise InvalidInput(hashed.error)
        changes["password_hash"] = hashed.data

    if not changes:
        raise InvalidInput("No user properties were given to update.")

    if repo.update_user(user_id, changes) != 1:
        raise OperationFailed("The user data was not updated.")
    logger.info("Updated user %s: %s", user_id, ", ".join(sorted(changes)))


def delete_user(repo: Repository, user_id: str) -> None:
    if not user_id:
        raise InvalidInput(f"The userId is incorrect: {user_id}")

    if repo.get_user(user_id) is None:
        raise NotFound(f"No user was found with the given id: {user_id}")

    if repo.delete_user(user_id) == 0:
        raise OperationFailed("The operation to delete the user failed.")
    logger.info("Deleted user %s", user_id)


# ----------------------
# Categories
# ----------------------

def _require_user(repo: Repository, user_id: str) -> User:
    user = repo.get_user(user_id)
    if user is None:
        raise NotFound("The given user was not found in the database.")
    return user


def _check_category_request(body: CategoryRequest) -> None:
    if body.type not in TRANSACTION_TYPES:
        raise InvalidInput(f"The given type is not valid: {body.type}")
    if not body.category:
        raise InvalidInput(f"The given category is not valid: {body.category}")


def get_categories(repo: Repository, user_id: str) -> CategoryMap:
    _require_user(repo, user_id)
    return repo.get_user_categories(user_id)


def add_category(repo: Repository, user_id: str, body: CategoryRequest) -> CategoryMap:
    """Find or create the category, associate it to the user, return the user's categories."""
    _require_user(repo, user_id)
    _check_category_request(body)

    category = repo.add_user_category(user_id, body.type, body.category)
    logger.info("User %s added %s category %s", user_id, category.type, category.name)
    return repo.get_user_categories(user_id)


def delete_category(repo: Repository, user_id: str, body: CategoryRequest) -> None:
    _require_user(repo, user_id)
    _check_category_request(body)

    category = repo.find_category(body.type, body.category)
    if category is None:
        raise NotFound(f"The given {body.type} category was not found: {body.category}")

    if repo.remove_user_category(user_id, category.id) != 1:
        raise NotFound(
            f"The {body.type} with a name of {body.category} was not found "
            f"for the user with the id of {user_id}."
        )
    logger.info("User %s removed %s category %s", user_id, body.type, body.category)


# ----------------------
# Transactions
# ----------------------

def _owned_transaction(repo: Repository, user_id: str, transaction_id: str) -> Transaction:
    transaction = repo.get_transaction(transaction_id)
    if transaction is None or transaction.user_id != str(user_id):
        raise NotFound(f"The transaction with the given id ({transaction_id}) was not found.")
    return transaction


def add_transaction(repo: Repository, user_id: str, body: TransactionCreate) -> str:
    # an unparseable date is passed through so the validator reports it
    date = parse_date(body.date) or body.date

    validity = is_valid_transaction(body.name, body.amount, date, body.note)
    if not validity.ok:
        raise InvalidInput(validity.error)

    category = repo.find_category(body.type, body.category)
    if category is None:
        raise NotFound(f'The "{body.type}" category of "{body.category}" was not found in the database.')

    transaction_id = repo.create_transaction(
        Transaction(
            user_id=str(user_id),
            category_id=category.id,
            name=body.name,
            amount=body.amount,
            date=date,
            note=body.note,
        )
    )
    logger.info("User %s added transaction %s", user_id, transaction_id)
    return transaction_id


def get_transaction(repo: Repository, user_id: str, transaction_id: str) -> TransactionOut:
    transaction = _owned_transaction(repo, user_id, transaction_id)
    return transaction_view(transaction, repo.get_category(transaction.category_id))


def get_transactions(repo: Repository, user_id: str, params: Mapping[str, Any]) -> Tuple[List[TransactionOut], int]:
    """List the user's transactions matching the query parameters."""
    raw = dict(params)
    raw["userId"] = str(user_id) if user_id else None

    result = create_transaction_filter(raw)
    if not result.ok:
        raise InvalidInput(result.error)

    return repo.find_transactions(result.data)


def edit_transaction(repo: Repository, user_id: str, transaction_id: str, body: TransactionUpdate) -> None:
    changes = body.model_dump(exclude_none=True)
    if "date" in changes:
        changes["date"] = parse_date(changes["date"]) or changes["date"]

    validity = is_valid_partial_transaction(changes)
    if not validity.ok:
        raise InvalidInput(validity.error)

    _owned_transaction(repo, user_id, transaction_id)

    if "type" in changes and "category" in changes:
        type_, name = changes.pop("type"), changes.pop("category")
        category = repo.find_category(type_, name)
        if category is None:
            raise NotFound(f"The given {type_} category was not found: {name}")
        changes["category_id"] = category.id

    if repo.update_transaction(transaction_id, user_id, changes) == 0:
        raise OperationFailed("The transaction was not modified.")
    logger.info("User %s edited transaction %s", user_id, transaction_id)


def delete_transaction(repo: Repository, user_id: str, transaction_id: str) -> None:
    _owned_transaction(repo, user_id, transaction_id)

    if repo.delete_transaction(transaction_id, user_id) == 0:
        raise OperationFailed(
            f"The transaction with the id: {transaction_id} was not deleted from the database"
        )
    logger.info("User %s deleted transaction %s", user_id, transaction_id)
