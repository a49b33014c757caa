"""Configuration constants for the App Store Connect CLI."""

# API endpoints
API_BASE_URL = "https://api.appstoreconnect.apple.com"
TOKEN_AUDIENCE = "appstoreconnect-v1"

# Token lifetime (Apple allows up to 20 minutes)
TOKEN_DURATION = 15 * 60          # seconds
TOKEN_REFRESH_BUFFER = 2 * 60     # refresh this long before real expiry

# HTTP configuration
REQUEST_TIMEOUT = 30
POOL_MAXSIZE = 16
READ_CHUNK_SIZE = 8192

# Environment variables
ENV_ISSUER_ID = "ASC_ISSUER_ID"
ENV_KEY_ID = "ASC_KEY_ID"
ENV_PRIVATE_KEY_PATH = "ASC_PRIVATE_KEY_PATH"
ENV_BASE_URL = "ASC_BASE_URL"
ENV_REQUEST_TIMEOUT = "ASC_REQUEST_TIMEOUT"

REQUIRED_VARIABLES = (ENV_ISSUER_ID, ENV_KEY_ID, ENV_PRIVATE_KEY_PATH)
