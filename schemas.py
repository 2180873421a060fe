"""
Schemas for the Budgeting backend.

Documents: each stored model maps to a collection named after the
lowercase class name (User -> "user", Category -> "category",
Transaction -> "transaction").

Requests: one DTO per endpoint body. Field aliases keep the camelCase
wire names.

Responses: every response extends Envelope, so the JSON always carries
`ok` and `error`.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# ----------------------
# Documents
# ----------------------

class User(BaseModel):
    """
    Users collection schema
    Collection name: "user"
    """
    id: Optional[str] = None
    username: str = Field(..., description="Unique username")
    email: EmailStr = Field(..., description="Email address")
    password_hash: str = Field(..., description="BCrypt hashed password")
    category_ids: List[str] = Field(default_factory=list, description="Categories the user has")


class Category(BaseModel):
    """
    Categories collection schema, shared by every user
    Collection name: "category"
    """
    id: Optional[str] = None
    type: str = Field(..., description="income or expense")
    name: str


class Transaction(BaseModel):
    """
    Transactions collection schema
    Collection name: "transaction"
    """
    id: Optional[str] = None
    user_id: str = Field(..., description="ID of the user who owns the transaction")
    category_id: str
    name: str
    amount: float
    date: datetime
    note: Optional[str] = None


# ----------------------
# Requests
# ----------------------

class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str


class LoginRequest(BaseModel):
    username: str
    password: str


class EditUserRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: Optional[str] = None
    email: Optional[str] = None
    old_password: Optional[str] = Field(None, alias="oldPassword")
    new_password: Optional[str] = Field(None, alias="newPassword")


class CategoryRequest(BaseModel):
    type: str
    category: str


class TransactionCreate(BaseModel):
    name: Optional[str] = None
    amount: Any = None  # validated by the transaction validators
    date: Optional[str] = None
    note: Optional[str] = None
    type: str
    category: str


class TransactionUpdate(BaseModel):
    name: Optional[str] = None
    amount: Any = None  # validated by the transaction validators
    date: Optional[str] = None
    note: Optional[str] = None
    type: Optional[str] = None
    category: Optional[str] = None


# ----------------------
# Responses
# ----------------------

class Envelope(BaseModel):
    ok: bool = True
    error: Optional[str] = None


class TokenResponse(Envelope):
    token: str


class CategoryMap(BaseModel):
    income: List[str] = Field(default_factory=list)
    expense: List[str] = Field(default_factory=list)


class CategoriesResponse(Envelope):
    categories: CategoryMap


class TransactionOut(BaseModel):
    id: str
    name: str
    amount: float
    date: datetime
    note: Optional[str] = None
    type: str
    category: str


class TransactionResponse(Envelope):
    transaction: TransactionOut


class TransactionCreatedResponse(Envelope):
    model_config = ConfigDict(populate_by_name=True)

    transaction_id: str = Field(..., alias="transactionId")


class TransactionListResponse(Envelope):
    model_config = ConfigDict(populate_by_name=True)

    transactions: List[TransactionOut]
    transaction_count: int = Field(..., alias="transactionCount")
