import os
from dotenv import load_dotenv

# Load .env from the backend directory
load_dotenv(os.path.join(os.path.dirname(__file__), "..", "..", ".env"))

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
BACKEND_DIR = os.path.abspath(os.path.join(BASE_DIR, "..", ".."))

# Database: stored in backend/data/
DATABASE_PATH: str = os.getenv(
    "DATABASE_PATH",
    os.path.join(BACKEND_DIR, "data", "eligibility.db"),
)
MIGRATIONS_DIR: str = os.getenv("MIGRATIONS_DIR", os.path.join(BACKEND_DIR, "migrations"))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Stamped on every persisted validation result
ENGINE_VERSION: str = os.getenv("ENGINE_VERSION", "1.0.0")

# Minimum total credit hours for each undergraduate standing
SOPHOMORE_MIN_HOURS: int = int(os.getenv("SOPHOMORE_MIN_HOURS", "30"))
JUNIOR_MIN_HOURS: int = int(os.getenv("JUNIOR_MIN_HOURS", "60"))
SENIOR_MIN_HOURS: int = int(os.getenv("SENIOR_MIN_HOURS", "90"))
