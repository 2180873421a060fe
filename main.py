import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import controllers
from config import CORS_ORIGINS, LOG_LEVEL, PORT, STORAGE_BACKEND
from errors import ApiError, Unauthenticated
from repository import InMemoryRepository, Repository
from schemas import (
    CategoriesResponse,
    CategoryRequest,
    EditUserRequest,
    Envelope,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    TransactionCreate,
    TransactionCreatedResponse,
    TransactionListResponse,
    TransactionResponse,
    TransactionUpdate,
)
from security import verify_token

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("budget-backend")


# ----------------------
# Dependencies
# ----------------------

def build_repository() -> Repository:
    if STORAGE_BACKEND == "memory":
        logger.info("Using in-memory storage")
        return InMemoryRepository()

    from database import MongoRepository, get_database
    logger.info("Using MongoDB storage")
    return MongoRepository(get_database())


def get_repository(request: Request) -> Repository:
    return request.app.state.repository


def get_current_user(authorization: Optional[str] = Header(None)) -> dict:
    """Verify the bearer token and expose `{"user_id": ...}` to the route."""
    return verify_token(authorization)


def _set_token_header(response: Response, token: str):
    response.headers["Authorization"] = f"Bearer {token}"


# ----------------------
# User Endpoints
# ----------------------
user_router = APIRouter(prefix="/user", tags=["user"])


@user_router.post("/register", response_model=TokenResponse)
def register(payload: RegisterRequest, response: Response, repo: Repository = Depends(get_repository)):
    token = controllers.register_user(repo, payload)
    _set_token_header(response, token)
    return TokenResponse(token=token)


@user_router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, response: Response, repo: Repository = Depends(get_repository)):
    token = controllers.login_user(repo, payload)
    _set_token_header(response, token)
    return TokenResponse(token=token)


@user_router.put("/", response_model=Envelope)
def edit_user(
    payload: EditUserRequest,
    current_user: dict = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    controllers.edit_user(repo, current_user["user_id"], payload)
    return Envelope()


@user_router.delete("/", response_model=Envelope)
def delete_user(current_user: dict = Depends(get_current_user), repo: Repository = Depends(get_repository)):
    controllers.delete_user(repo, current_user["user_id"])
    return Envelope()


# ----------------------
# Category Endpoints
# ----------------------
category_router = APIRouter(prefix="/category", tags=["category"])


@category_router.get("/", response_model=CategoriesResponse)
def list_categories(current_user: dict = Depends(get_current_user), repo: Repository = Depends(get_repository)):
    categories = controllers.get_categories(repo, current_user["user_id"])
    return CategoriesResponse(categories=categories)


@category_router.post("/", response_model=CategoriesResponse)
def add_category(
    payload: CategoryRequest,
    current_user: dict = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    categories = controllers.add_category(repo, current_user["user_id"], payload)
    return CategoriesResponse(categories=categories)


@category_router.delete("/", response_model=Envelope)
def delete_category(
    payload: CategoryRequest,
    current_user: dict = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    controllers.delete_category(repo, current_user["user_id"], payload)
    return Envelope()


# ----------------------
# Transaction Endpoints
# ----------------------
transaction_router = APIRouter(prefix="/transaction", tags=["transaction"])


@transaction_router.get("/", response_model=TransactionListResponse)
def list_transactions(
    request: Request,
    current_user: dict = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    # fromDate, toDate, amount, minAmount, maxAmount, name, note, type, category
    transactions, count = controllers.get_transactions(repo, current_user["user_id"], request.query_params)
    return TransactionListResponse(transactions=transactions, transaction_count=count)


@transaction_router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: str,
    current_user: dict = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    transaction = controllers.get_transaction(repo, current_user["user_id"], transaction_id)
    return TransactionResponse(transaction=transaction)


@transaction_router.post("/", response_model=TransactionCreatedResponse)
def add_transaction(
    payload: TransactionCreate,
    current_user: dict = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    transaction_id = controllers.add_transaction(repo, current_user["user_id"], payload)
    return TransactionCreatedResponse(transaction_id=transaction_id)


@transaction_router.put("/{transaction_id}", response_model=Envelope)
def edit_transaction(
    transaction_id: str,
    payload: TransactionUpdate,
    current_user: dict = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    controllers.edit_transaction(repo, current_user["user_id"], transaction_id, payload)
    return Envelope()


@transaction_router.delete("/{transaction_id}", response_model=Envelope)
def delete_transaction(
    transaction_id: str,
    current_user: dict = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    controllers.delete_transaction(repo, current_user["user_id"], transaction_id)
    return Envelope()


# ----------------------
# Error Envelope
# ----------------------

def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message}, headers=headers)


async def api_error_handler(request: Request, exc: ApiError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return _error(exc.status_code, exc.message, headers)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return _error(400, "Invalid request")
    first = errors[0]
    field = first.get("loc", ["request"])[-1]
    return _error(400, f"{field}: {first.get('msg', 'invalid value')}")


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


# ----------------------
# App
# ----------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.repository is None:
        app.state.repository = build_repository()
    yield


def create_app(repository: Optional[Repository] = None) -> FastAPI:
    app = FastAPI(title="Budgeting Backend", lifespan=lifespan)
    app.state.repository = repository

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Authorization"],
    )

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(user_router)
    app.include_router(category_router)
    app.include_router(transaction_router)

    @app.get("/")
    def read_root():
        return {"message": "Budgeting Backend Running"}

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
