import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./viewings.db")

# Redis / ARQ Configuration
REDIS_URL = os.getenv("REDIS_URL")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
REDIS_SSL = os.getenv("REDIS_SSL", "false").lower() == "true"

ARQ_MAX_JOBS = int(os.getenv("ARQ_MAX_JOBS", "20"))
ARQ_JOB_TIMEOUT = int(os.getenv("ARQ_JOB_TIMEOUT", "120"))

# Twilio Messaging Configuration
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_FROM_NUMBER = os.getenv("TWILIO_FROM_NUMBER")
TWILIO_MESSAGING_SERVICE_SID = os.getenv("TWILIO_MESSAGING_SERVICE_SID")
TWILIO_API_BASE_URL = os.getenv("TWILIO_API_BASE_URL", "https://api.twilio.com/2010-04-01")
# "sms" or "whatsapp" - WhatsApp numbers get the "whatsapp:" address prefix
MESSAGING_CHANNEL = os.getenv("MESSAGING_CHANNEL", "whatsapp").lower()

# Scheduling defaults (used when an agent has not overridden them)
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "Africa/Cairo")
DEFAULT_VIEWING_DURATION_MINUTES = int(os.getenv("DEFAULT_VIEWING_DURATION_MINUTES", "60"))
DEFAULT_BUFFER_MINUTES = int(os.getenv("DEFAULT_BUFFER_MINUTES", "30"))

# Reminder triggers, in hours before the viewing
LONG_LEAD_HOURS = int(os.getenv("LONG_LEAD_HOURS", "24"))
SHORT_LEAD_HOURS = int(os.getenv("SHORT_LEAD_HOURS", "2"))

# Reminder delivery retry policy (exponential backoff between attempts)
REMINDER_MAX_TRIES = int(os.getenv("REMINDER_MAX_TRIES", "3"))
REMINDER_RETRY_BASE_SECONDS = int(os.getenv("REMINDER_RETRY_BASE_SECONDS", "30"))
