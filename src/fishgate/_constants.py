"""Internal constants shared across the library."""

ATTRIBUTION_BASE_URL = "https://gcdsdk.appsflyer.com/install_data/v4.0/"
RESOLVE_URL = "https://dailynotesplus.com/config.php"
FLAG_PATH = "users/log/data"
DEFAULT_USER_AGENT = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Mobile/15E148"

DEFAULT_REQUEST_TIMEOUT: float = 30.0
DEFAULT_BOOT_TIMEOUT: float = 30.0
DEFAULT_FIRST_RUN_DELAY: float = 5.0

#: A dismissed permission prompt is not shown again for three days.
PERMISSION_COOLDOWN_SECONDS: float = 3 * 24 * 3600

STATUS_ACTIVE = "Active"
STATUS_INACTIVE = "Inactive"
ORGANIC_STATUS = "Organic"
ATTRIBUTION_STATUS_KEY = "af_status"

# ------------------------------------------------------------------
# Persistent storage keys
# ------------------------------------------------------------------

KEY_CACHED_DESTINATION = "cached_endpoint"
KEY_STATUS = "app_status"
KEY_LAUNCHED_BEFORE = "launchedBefore"
KEY_PERMISSION_REQUEST = "permission_request_time"
KEY_PERMISSION_GRANTED = "permissions_accepted"
KEY_PERMISSION_DENIED = "permissions_denied"
KEY_TEMPORARY_DESTINATION = "temp_url"
KEY_PUSH_TOKEN = "push_token"
