"""
Persistence port used by the controllers, and the in-memory adapter.

Controllers only talk to a Repository. The MongoDB adapter lives in
database.py; InMemoryRepository backs the tests and the
`STORAGE_BACKEND=memory` development mode.
"""

import itertools
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from data_preparation import Range
from schemas import Category, CategoryMap, Transaction, TransactionOut, User


def transaction_view(transaction: Transaction, category: Category) -> TransactionOut:
    return TransactionOut(
        id=transaction.id,
        name=transaction.name,
        amount=transaction.amount,
        date=transaction.date,
        note=transaction.note,
        type=category.type,
        category=category.name,
    )


def category_map(categories: List[Category]) -> CategoryMap:
    result = CategoryMap()
    for cat in categories:
        getattr(result, cat.type).append(cat.name)
    result.income.sort()
    result.expense.sort()
    return result


class Repository(ABC):

    # users
    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    def create_user(self, user: User) -> str: ...

    @abstractmethod
    def update_user(self, user_id: str, changes: dict) -> int:
        """Apply `changes` to the user. Returns the number of matched users."""

    @abstractmethod
    def delete_user(self, user_id: str) -> int:
        """Delete the user and every transaction it owns. Returns the number of deleted users."""

    # categories
    @abstractmethod
    def get_category(self, category_id: str) -> Optional[Category]: ...

    @abstractmethod
    def find_category(self, type: str, name: str) -> Optional[Category]: ...

    @abstractmethod
    def get_or_create_category(self, type: str, name: str) -> Category: ...

    @abstractmethod
    def get_user_categories(self, user_id: str) -> CategoryMap: ...

    @abstractmethod
    def add_user_category(self, user_id: str, type: str, name: str) -> Category:
        """
        Find or create the category and associate it to the user. Concurrent
        identical calls never create duplicate categories.
        """

    @abstractmethod
    def remove_user_category(self, user_id: str, category_id: str) -> int:
        """Remove the association. Returns 1 if it existed, else 0."""

    # transactions
    @abstractmethod
    def create_transaction(self, transaction: Transaction) -> str: ...

    @abstractmethod
    def get_transaction(self, transaction_id: str) -> Optional[Transaction]: ...

    @abstractmethod
    def find_transactions(self, filter_data: dict) -> Tuple[List[TransactionOut], int]:
        """Run a filter built by data_preparation.create_transaction_filter."""

    @abstractmethod
    def update_transaction(self, transaction_id: str, user_id: str, changes: dict) -> int: ...

    @abstractmethod
    def delete_transaction(self, transaction_id: str, user_id: str) -> int: ...


def _matches(value, condition) -> bool:
    if isinstance(condition, Range):
        return condition.contains(value)
    return value == condition


class InMemoryRepository(Repository):
    """Dictionary-backed repository. All access is serialized by one lock."""

    def __init__(self):
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self.users: Dict[str, User] = {}
        self.categories: Dict[str, Category] = {}
        self.transactions: Dict[str, Transaction] = {}

    def _next_id(self) -> str:
        return str(next(self._ids))

    # ----------------------
    # Users
    # ----------------------
    def get_user(self, user_id):
        with self._lock:
            user = self.users.get(str(user_id))
            return user.model_copy(deep=True) if user else None

    def get_user_by_username(self, username):
        with self._lock:
            for user in self.users.values():
                if user.username == username:
                    return user.model_copy(deep=True)
            return None

    def create_user(self, user):
        with self._lock:
            user_id = self._next_id()
            self.users[user_id] = user.model_copy(update={"id": user_id}, deep=True)
            return user_id

    def update_user(self, user_id, changes):
        with self._lock:
            user = self.users.get(str(user_id))
            if user is None:
                return 0
            self.users[user.id] = user.model_copy(update=changes)
            return 1

    def delete_user(self, user_id):
        with self._lock:
            if self.users.pop(str(user_id), None) is None:
                return 0
            owned = [t.id for t in self.transactions.values() if t.user_id == str(user_id)]
            for transaction_id in owned:
                del self.transactions[transaction_id]
            return 1

    # ----------------------
    # Categories
    # ----------------------
    def get_category(self, category_id):
        with self._lock:
            return self.categories.get(str(category_id))

    def find_category(self, type, name):
        with self._lock:
            for cat in self.categories.values():
                if cat.type == type and cat.name == name:
                    return cat
            return None

    def get_or_create_category(self, type, name):
        with self._lock:
            cat = self.find_category(type, name)
            if cat is None:
                cat = Category(id=self._next_id(), type=type, name=name)
                self.categories[cat.id] = cat
            return cat

    def get_user_categories(self, user_id):
        with self._lock:
            user = self.users.get(str(user_id))
            ids = user.category_ids if user else []
            return category_map([self.categories[i] for i in ids if i in self.categories])

    def add_user_category(self, user_id, type, name):
        with self._lock:
            cat = self.get_or_create_category(type, name)
            user = self.users[str(user_id)]
            if cat.id not in user.category_ids:
                user.category_ids.append(cat.id)
            return cat

    def remove_user_category(self, user_id, category_id):
        with self._lock:
            user = self.users.get(str(user_id))
            if user is None or category_id not in user.category_ids:
                return 0
            user.category_ids.remove(category_id)
            return 1

    # ----------------------
    # Transactions
    # ----------------------
    def create_transaction(self, transaction):
        with self._lock:
            transaction_id = self._next_id()
            self.transactions[transaction_id] = transaction.model_copy(update={"id": transaction_id})
            return transaction_id

    def get_transaction(self, transaction_id):
        with self._lock:
            return self.transactions.get(str(transaction_id))

    def find_transactions(self, filter_data):
        with self._lock:
            found = []
            for transaction in self.transactions.values():
                category = self.categories[transaction.category_id]
                fields = {
                    "user_id": transaction.user_id,
                    "date": transaction.date,
                    "amount": transaction.amount,
                    "name": transaction.name,
                    "note": transaction.note,
                    "type": category.type,
                    "category": category.name,
                }
                if all(_matches(fields[key], cond) for key, cond in filter_data.items()):
                    found.append(transaction_view(transaction, category))
            found.sort(key=lambda t: t.date, reverse=True)
            return found, len(found)

    def update_transaction(self, transaction_id, user_id, changes):
        with self._lock:
            transaction = self.transactions.get(str(transaction_id))
            if transaction is None or transaction.user_id != str(user_id):
                return 0
            self.transactions[transaction.id] = transaction.model_copy(update=changes)
            return 1

    def delete_transaction(self, transaction_id, user_id):
        with self._lock:
            transaction = self.transactions.get(str(transaction_id))
            if transaction is None or transaction.user_id != str(user_id):
                return 0
            del self.transactions[transaction.id]
            return 1
