"""
Seed the configured storage with demo users, categories and transactions.

    python seed.py
"""

import logging
from datetime import datetime, timezone

from main import build_repository
from repository import Repository
from schemas import Transaction, User
from security import hash_password

logger = logging.getLogger("budget-backend.seed")

SEED_PASS = "pass12345"

USERS = [
    {"username": "john", "email": "john@budgetingapp.com"},
    {"username": "david", "email": "david@budgetingapp.com"},
    {"username": "susan", "email": "susan@budgetingapp.com"},
]

CATEGORIES = [
    ("income", "Paycheck"),
    ("income", "Etsy Sale"),
    ("income", "Refund"),
    ("expense", "Groceries"),
    ("expense", "Takeout"),
    ("expense", "Entertainment"),
    ("expense", "Home"),
    ("expense", "Debt Repayment"),
    ("expense", "Health"),
    ("expense", "Education"),
]

# (username, name, amount, type, category)
TRANSACTIONS = [
    ("john", "Salary", 2000, "income", "Paycheck"),
    ("john", "Rent", 1000, "expense", "Home"),
    ("david", "Freelance work", 500, "income", "Etsy Sale"),
    ("david", "Grocery shopping", 100, "expense", "Groceries"),
]


def seed(repo: Repository) -> dict:
    """
    Create the demo data. Existing users are reused and only users created
    by this run get the demo transactions. Returns {username: id}.
    """
    user_ids = {}
    created = set()
    for data in USERS:
        existing = repo.get_user_by_username(data["username"])
        if existing:
            user_ids[data["username"]] = existing.id
            continue
        hashed = hash_password(SEED_PASS)
        user_ids[data["username"]] = repo.create_user(User(password_hash=hashed.data, **data))
        created.add(data["username"])

    for user_id in user_ids.values():
        for type_, name in CATEGORIES:
            repo.add_user_category(user_id, type_, name)

    now = datetime.now(timezone.utc).replace(tzinfo=None)
    added = 0
    for username, name, amount, type_, category in TRANSACTIONS:
        if username not in created:
            continue
        cat = repo.find_category(type_, category)
        repo.create_transaction(
            Transaction(user_id=user_ids[username], category_id=cat.id, name=name, amount=amount, date=now)
        )
        added += 1

    logger.info("Seeded %d new users, %d categories, %d transactions", len(created), len(CATEGORIES), added)
    return user_ids


if __name__ == "__main__":
    seed(build_repository())
