# config.py
import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./campaign_codes.db")

# How many times the store re-reads and re-applies a transition after
# another writer committed first
CODE_TX_MAX_ATTEMPTS = int(os.getenv("CODE_TX_MAX_ATTEMPTS", "3"))

# Calendar day boundaries for campaign start/end dates
CAMPAIGN_TIMEZONE = os.getenv("CAMPAIGN_TIMEZONE", "UTC")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

CODE_LENGTH = 9
CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
MAX_CODES_PER_BATCH = 50
MAX_DRAWS_PER_CODE = 100
