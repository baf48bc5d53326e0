"""Default configuration constants for safekeep."""

# HTTP settings (milliseconds)
DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_RETRY_DELAY_MS = 1_000
DEFAULT_MAX_RETRIES = 3

# Default retry status codes
DEFAULT_RETRY_STATUS_CODES = (408, 429, 500, 502, 503, 504)

# Server-side persistence
DEFAULT_DATA_PATH = "data.json"
DEFAULT_KEY_DIR = "."
PUBLIC_KEY_FILENAME = "public_key.pem"
PRIVATE_KEY_FILENAME = "private_key.pem"
