"""
Application constants and metadata.
"""

# Application info
APP_NAME = "Dideban Agent"
APP_VERSION = "0.1.0"
USER_AGENT = f"dideban-agent/{APP_VERSION}"

# Runtime modes
MODE_PRODUCTION = "production"
MODE_DEVELOPMENT = "development"

# Environment variable prefix for config overrides
ENV_PREFIX = "DIDEBAN"

# Default values
DEFAULT_INTERVAL = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_RETRY_DELAY = 1.0
DEFAULT_MAX_RETRY_DELAY = 30.0
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_CLIENT_TIMEOUT = 30.0
DEFAULT_MOCK_DELAY = 0.1
DEFAULT_CPU_SAMPLE_INTERVAL = 1.0
DEFAULT_DISK_PATH = "/"
