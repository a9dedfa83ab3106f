import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./agenda.db")

# Bounded retries for store transactions that fail on lock/serialization errors
DB_TRANSACTION_MAX_RETRIES = int(os.getenv("DB_TRANSACTION_MAX_RETRIES", "3"))

# Business clock - schedules and "today" are evaluated in this zone
BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "America/Mexico_City")

# Default slot length (minutes) when the caller does not ask for one
SLOT_GRANULARITY_MINUTES = int(os.getenv("SLOT_GRANULARITY_MINUTES", "30"))

# Mercado Pago Configuration
MERCADO_PAGO_API_URL = os.getenv("MERCADO_PAGO_API_URL", "https://api.mercadopago.com")
MERCADO_PAGO_ACCESS_TOKEN = os.getenv("MERCADO_PAGO_ACCESS_TOKEN")
MERCADO_PAGO_WEBHOOK_SECRET = os.getenv("MERCADO_PAGO_WEBHOOK_SECRET")
# Id sent by the Mercado Pago dashboard "simulate notification" button
MERCADO_PAGO_TEST_NOTIFICATION_ID = os.getenv("MERCADO_PAGO_TEST_NOTIFICATION_ID", "123456")
GATEWAY_TIMEOUT_SECONDS = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10"))
GATEWAY_MAX_RETRIES = int(os.getenv("GATEWAY_MAX_RETRIES", "2"))
# 0 disables the freshness check on x-signature timestamps
WEBHOOK_MAX_AGE_SECONDS = int(os.getenv("WEBHOOK_MAX_AGE_SECONDS", "0"))

# Payment credentials encryption key (generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())")
PAYMENT_ENCRYPTION_KEY = os.getenv("PAYMENT_ENCRYPTION_KEY")

# Public booking rate limit
BOOKING_RATE_LIMIT = int(os.getenv("BOOKING_RATE_LIMIT", "30"))
BOOKING_RATE_WINDOW_SECONDS = int(os.getenv("BOOKING_RATE_WINDOW_SECONDS", "60"))
