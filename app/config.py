import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    import warnings

    warnings.warn(
        "DATABASE_URL not set! Using local SQLite file - DO NOT USE IN PRODUCTION",
        RuntimeWarning,
        stacklevel=2,
    )
    DATABASE_URL = "sqlite:///./bloco_cirurgico.db"

# Clinic wall clock. Appointment timestamps are stored as naive datetimes in this zone.
CLINIC_TIMEZONE = os.getenv("CLINIC_TIMEZONE", "America/Sao_Paulo")

# Surgical block working window used when the caller does not send one
DEFAULT_START_HOUR = int(os.getenv("DEFAULT_START_HOUR", "7"))
DEFAULT_END_HOUR = int(os.getenv("DEFAULT_END_HOUR", "14"))
DEFAULT_SLOT_DURATION = int(os.getenv("DEFAULT_SLOT_DURATION", "30"))

# Appointment duration rules
MIN_APPOINTMENT_MINUTES = int(os.getenv("MIN_APPOINTMENT_MINUTES", "30"))
# Used when a request omits the estimated end time
DEFAULT_APPOINTMENT_MINUTES = int(os.getenv("DEFAULT_APPOINTMENT_MINUTES", "120"))

# Audit trail: attempts before a history row goes to the dead-letter log
HISTORY_WRITE_ATTEMPTS = int(os.getenv("HISTORY_WRITE_ATTEMPTS", "3"))

# Frontend base URL (CORS)
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Rate limiting (Redis is optional, memory-only when REDIS_URL is not set)
REDIS_URL = os.getenv("REDIS_URL")
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
SCHEDULE_REQUEST_RATE_LIMIT = int(os.getenv("SCHEDULE_REQUEST_RATE_LIMIT", "20"))
SCHEDULE_REQUEST_RATE_WINDOW = int(os.getenv("SCHEDULE_REQUEST_RATE_WINDOW", "60"))
