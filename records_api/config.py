import os

from dotenv import load_dotenv

load_dotenv()

APP_TITLE = os.getenv("APP_TITLE", "Healthcare API")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# "memory://" selects the in-process store; "sqlite:///path.db" or an empty
# value (falls back to DATABASE_PATH) selects SQLite.
DATABASE_URL = os.getenv("DATABASE_URL", "")
DATABASE_PATH = os.getenv("DATABASE_PATH", "records.db")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]
