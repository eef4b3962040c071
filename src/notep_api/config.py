import os

from dotenv import load_dotenv

# Load .env into os.environ
load_dotenv()

# Use SQLite file by default; can be overridden by DATABASE_URL env
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./notes.db")

# Convert old-style "postgres://" URIs if necessary
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Comma-separated list of origins allowed to call the API
FRONTEND_ORIGINS = [
    origin.strip()
    for origin in os.getenv("FRONTEND_ORIGIN", "*").split(",")
    if origin.strip()
]
