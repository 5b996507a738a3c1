import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./booking_engine.db")

# Booking lifecycle timing
# Pending bookings are auto-rejected when the provider has not answered in time
AUTO_REJECT_MINUTES = int(os.getenv("AUTO_REJECT_MINUTES", "15"))
# Client may mark the provider as no-show this many minutes after the start
CLIENT_NO_SHOW_DELAY_MINUTES = int(os.getenv("CLIENT_NO_SHOW_DELAY_MINUTES", "5"))
# Provider may mark the client as no-show this many minutes after the start
PROVIDER_NO_SHOW_DELAY_MINUTES = int(os.getenv("PROVIDER_NO_SHOW_DELAY_MINUTES", "10"))
# Confirmed bookings become completed once their end + grace has passed
COMPLETION_GRACE_MINUTES = int(os.getenv("COMPLETION_GRACE_MINUTES", "60"))

# Slot generation
SLOT_GRID_MINUTES = int(os.getenv("SLOT_GRID_MINUTES", "15"))  # Boundary rounding granularity
SLOT_RETENTION_DAYS = int(os.getenv("SLOT_RETENTION_DAYS", "30"))  # Keep stale unbooked slots
TIMER_BATCH_SIZE = int(os.getenv("TIMER_BATCH_SIZE", "50"))

DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "America/New_York")

# Billing collaborator (invoices are created only when a definition carries a price)
BILLING_API_URL = os.getenv("BILLING_API_URL")
BILLING_API_KEY = os.getenv("BILLING_API_KEY")

# Notification collaborator (fire-and-forget webhook)
NOTIFICATION_WEBHOOK_URL = os.getenv("NOTIFICATION_WEBHOOK_URL")

COLLABORATOR_TIMEOUT = float(os.getenv("COLLABORATOR_TIMEOUT", "10.0"))
