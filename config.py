import os
from dotenv import load_dotenv

load_dotenv()

# ----------------------
# Auth / Security
# ----------------------
SECRET_KEY = os.getenv("SECRET_KEY", os.getenv("TOKEN_SECRET", "super-secret-key-change-me"))
ALGORITHM = "HS256"
TOKEN_ISSUER = os.getenv("TOKEN_ISSUER", "BudgetingApp")
TOKEN_TTL_DAYS = int(os.getenv("TOKEN_TTL_DAYS", 1))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 10))
PASSWORD_MIN_LENGTH = 8

# ----------------------
# Storage
# ----------------------
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "mongo")
DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "budgeting")

# ----------------------
# Server
# ----------------------
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", 8000))
