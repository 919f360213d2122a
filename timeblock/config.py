"""Runtime configuration for the timeblock scheduling engine."""
import os
from dotenv import load_dotenv

# Load environment variables from a local .env if present
load_dotenv()

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./timeblock.db")
IS_SQLITE = DATABASE_URL.startswith("sqlite")

# How far ahead recurring occurrences are ever materialized
MATERIALIZATION_HORIZON_DAYS = int(os.environ.get("MATERIALIZATION_HORIZON_DAYS", "90"))

# Zone used to interpret wall-clock input that carries no offset
DEFAULT_TIMEZONE = os.environ.get("DEFAULT_TIMEZONE", "UTC")

# Analytics
CATEGORY_TOP_N = int(os.environ.get("CATEGORY_TOP_N", "5"))
EXPORT_MIN_COMPLETED = int(os.environ.get("EXPORT_MIN_COMPLETED", "4"))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
