"""Network configuration constants for the quiz portal."""

DEFAULT_HOST: str = "127.0.0.1"
DEFAULT_PORT: int = 8000

REMOTE_URL_PLACEHOLDER: str = "https://script.google.com/macros/s/YOUR_DEPLOYMENT_ID/exec"
REMOTE_PLACEHOLDER_MARKER: str = "YOUR_DEPLOYMENT_ID"
DEFAULT_REMOTE_TIMEOUT_SECONDS: float = 30.0
RESPONSE_STATUS_SUCCESS: str = "success"
