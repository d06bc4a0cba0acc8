"""
Application configuration: loaded once at startup.
"""

import os

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "motovibe")
PORT = int(os.getenv("PORT", "8000"))

# Client side: mock mode keeps every collection in the local key/value store
USE_MOCK_API = os.getenv("USE_MOCK_API", "0") == "1"
API_URL = os.getenv("API_URL", "http://localhost:8000/api")
DATA_DIR = os.getenv("DATA_DIR", os.path.join(os.path.expanduser("~"), ".motovibe"))
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "10"))

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@motovibe.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin")

TOAST_TIMEOUT_SECONDS = 4.0

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
