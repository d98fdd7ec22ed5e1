# config.py
import os
from dotenv import load_dotenv

load_dotenv()

APP_NAME = "ISP Billing API"
APP_VERSION = "2.0.0"

DB_HOST = os.getenv("DB_HOST", "localhost").strip()
DB_PORT = int(os.getenv("DB_PORT", "5432"))
DB_USER = os.getenv("DB_USER", "ispuser").strip()
DB_PASSWORD = os.getenv("DB_PASSWORD", "").strip()
DB_NAME = os.getenv("DB_NAME", "ispbilling").strip()

DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
if not DATABASE_URL:
  DATABASE_URL = f"postgresql+psycopg2://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"

DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "20"))
DB_POOL_TIMEOUT = float(os.getenv("DB_POOL_TIMEOUT", "2"))
DB_IDLE_TIMEOUT = int(os.getenv("DB_IDLE_TIMEOUT", "30"))

CORS_ORIGINS = [
  x.strip()
  for x in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
  if x.strip()
]

JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production-0123456789abcdef").strip()
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256").strip()
SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "24"))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))

ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin").strip().lower()
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "changeme123")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@ispbilling.com").strip()

PORT = int(os.getenv("PORT", "5000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()
