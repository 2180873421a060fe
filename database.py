"""
MongoDB access: connection helpers and the MongoRepository adapter.

Collections: "user", "category", "transaction". Category and transaction
references are stored as ObjectIds; `transaction.user_id` is the user's id
string, like the token subject.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from config import DATABASE_NAME, DATABASE_URL
from data_preparation import Range
from repository import Repository, category_map, transaction_view
from schemas import Category, Transaction, User

logger = logging.getLogger("budget-backend.database")


def get_database(url: str = DATABASE_URL, name: str = DATABASE_NAME) -> Database:
    client = MongoClient(url)
    return client[name]


def create_document(db: Database, collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document with created_at/updated_at timestamps and return its id."""
    doc = data.model_dump(exclude={"id"}) if isinstance(data, BaseModel) else dict(data)
    now = datetime.now(timezone.utc)
    doc["created_at"] = now
    doc["updated_at"] = now
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def _oid(value) -> Optional[ObjectId]:
    # ObjectId(None) would mint a fresh id
    if value is None:
        return None
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _condition(value):
    if isinstance(value, Range):
        cond = {}
        if value.gt is not None:
            cond["$gt"] = value.gt
        if value.lt is not None:
            cond["$lt"] = value.lt
        return cond
    return value


def _to_user(doc: dict) -> User:
    return User(
        id=str(doc["_id"]),
        username=doc["username"],
        email=doc["email"],
        password_hash=doc["password_hash"],
        category_ids=[str(i) for i in doc.get("category_ids", [])],
    )


def _to_category(doc: dict) -> Category:
    return Category(id=str(doc["_id"]), type=doc["type"], name=doc["name"])


def _to_transaction(doc: dict) -> Transaction:
    return Transaction(
        id=str(doc["_id"]),
        user_id=doc["user_id"],
        category_id=str(doc["category_id"]),
        name=doc["name"],
        amount=float(doc["amount"]),
        date=doc["date"],
        note=doc.get("note"),
    )


class MongoRepository(Repository):

    def __init__(self, db: Database):
        self.db = db
        self.ensure_indexes()

    def ensure_indexes(self):
        self.db["user"].create_index([("username", ASCENDING)], unique=True)
        self.db["category"].create_index([("type", ASCENDING), ("name", ASCENDING)], unique=True)
        self.db["transaction"].create_index([("user_id", ASCENDING), ("date", DESCENDING)])

    # ----------------------
    # Users
    # ----------------------
    def get_user(self, user_id):
        oid = _oid(user_id)
        if oid is None:
            return None
        doc = self.db["user"].find_one({"_id": oid})
        return _to_user(doc) if doc else None

    def get_user_by_username(self, username):
        doc = self.db["user"].find_one({"username": username})
        return _to_user(doc) if doc else None

    def create_user(self, user):
        doc = user.model_dump(exclude={"id"})
        doc["category_ids"] = [_oid(i) for i in user.category_ids]
        return create_document(self.db, "user", doc)

    def update_user(self, user_id, changes):
        oid = _oid(user_id)
        if oid is None:
            return 0
        update = dict(changes, updated_at=datetime.now(timezone.utc))
        return self.db["user"].update_one({"_id": oid}, {"$set": update}).matched_count

    def delete_user(self, user_id):
        oid = _oid(user_id)
        if oid is None:
            return 0
        deleted = self.db["user"].delete_one({"_id": oid}).deleted_count
        if deleted:
            removed = self.db["transaction"].delete_many({"user_id": str(user_id)}).deleted_count
            logger.info("Deleted %s transactions of user %s", removed, user_id)
        return deleted

    # ----------------------
    # Categories
    # ----------------------
    def get_category(self, category_id):
        oid = _oid(category_id)
        if oid is None:
            return None
        doc = self.db["category"].find_one({"_id": oid})
        return _to_category(doc) if doc else None

    def find_category(self, type, name):
        doc = self.db["category"].find_one({"type": type, "name": name})
        return _to_category(doc) if doc else None

    def get_or_create_category(self, type, name):
        query = {"type": type, "name": name}
        try:
            doc = self.db["category"].find_one_and_update(
                query,
                {"$setOnInsert": query},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # lost an upsert race; the winner's document is there now
            doc = self.db["category"].find_one(query)
        return _to_category(doc)

    def get_user_categories(self, user_id):
        user = self.get_user(user_id)
        if user is None or not user.category_ids:
            return category_map([])
        docs = self.db["category"].find({"_id": {"$in": [_oid(i) for i in user.category_ids]}})
        return category_map([_to_category(d) for d in docs])

    def add_user_category(self, user_id, type, name):
        cat = self.get_or_create_category(type, name)
        self.db["user"].update_one(
            {"_id": _oid(user_id)},
            {"$addToSet": {"category_ids": ObjectId(cat.id)}},
        )
        return cat

    def remove_user_category(self, user_id, category_id):
        oid, cat_oid = _oid(user_id), _oid(category_id)
        if oid is None or cat_oid is None:
            return 0
        result = self.db["user"].update_one(
            {"_id": oid, "category_ids": cat_oid},
            {"$pull": {"category_ids": cat_oid}},
        )
        return result.modified_count

    # ----------------------
    # Transactions
    # ----------------------
    def create_transaction(self, transaction):
        doc = transaction.model_dump(exclude={"id"})
        doc["category_id"] = ObjectId(transaction.category_id)
        return create_document(self.db, "transaction", doc)

    def get_transaction(self, transaction_id):
        oid = _oid(transaction_id)
        if oid is None:
            return None
        doc = self.db["transaction"].find_one({"_id": oid})
        return _to_transaction(doc) if doc else None

    def find_transactions(self, filter_data):
        query = {}
        for key in ("user_id", "date", "amount", "name", "note"):
            if key in filter_data:
                query[key] = _condition(filter_data[key])

        category_query = {}
        if "type" in filter_data:
            category_query["type"] = filter_data["type"]
        if "category" in filter_data:
            category_query["name"] = filter_data["category"]
        if category_query:
            ids = [d["_id"] for d in self.db["category"].find(category_query, {"_id": 1})]
            query["category_id"] = {"$in": ids}

        docs = list(self.db["transaction"].find(query).sort("date", DESCENDING))
        category_ids = list({d["category_id"] for d in docs})
        categories = {
            str(d["_id"]): _to_category(d)
            for d in self.db["category"].find({"_id": {"$in": category_ids}})
        }

        transactions = []
        for doc in docs:
            transaction = _to_transaction(doc)
            transactions.append(transaction_view(transaction, categories[transaction.category_id]))
        return transactions, len(transactions)

    def update_transaction(self, transaction_id, user_id, changes):
        oid = _oid(transaction_id)
        if oid is None:
            return 0
        update = dict(changes, updated_at=datetime.now(timezone.utc))
        if "category_id" in update:
            update["category_id"] = ObjectId(update["category_id"])
        result = self.db["transaction"].update_one(
            {"_id": oid, "user_id": str(user_id)},
            {"$set": update},
        )
        return result.matched_count

    def delete_transaction(self, transaction_id, user_id):
        oid = _oid(transaction_id)
        if oid is None:
            return 0
        return self.db["transaction"].delete_one({"_id": oid, "user_id": str(user_id)}).deleted_count
