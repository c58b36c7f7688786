import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./appointments.db")

# Daily schedule: labels run from START_HOUR:00 up to (not including) END_HOUR:00
SCHEDULE_START_HOUR = int(os.getenv("SCHEDULE_START_HOUR", "8"))
SCHEDULE_END_HOUR = int(os.getenv("SCHEDULE_END_HOUR", "22"))
SCHEDULE_SLOT_MINUTES = int(os.getenv("SCHEDULE_SLOT_MINUTES", "30"))

# When enabled, writes must target a label of the daily schedule, not just any HH:MM
STRICT_SCHEDULE_TIMES = os.getenv("STRICT_SCHEDULE_TIMES", "false").lower() == "true"

EARLIEST_FREE_HORIZON_DAYS = int(os.getenv("EARLIEST_FREE_HORIZON_DAYS", "366"))

# Full reads are paged so large tables don't get silently truncated
READ_PAGE_SIZE = int(os.getenv("READ_PAGE_SIZE", "1000"))
READ_MAX_ROWS = int(os.getenv("READ_MAX_ROWS", "50000"))

# Sync client
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
API_TIMEOUT_SECONDS = float(os.getenv("API_TIMEOUT_SECONDS", "10"))
POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", "4"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
