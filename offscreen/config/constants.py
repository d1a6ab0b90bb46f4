"""All constants for offscreen - single source of truth."""

# === TV (Sony Bravia REST IP control) ===
DEFAULT_TIMEOUT = 10.0         # seconds per HTTP request
PSK_HEADER = "X-Auth-PSK"

# === Monitor identification ===
# EDID manufacturer ID / product code of the TV as seen by the X server
DEFAULT_MANUFACTURER_ID = "SNY"
DEFAULT_PRODUCT_CODE = 63747

# === X server ===
RANDR_EXTENSION = "RANDR"
SCREENSAVER_EXTENSION = "MIT-SCREEN-SAVER"
EDID_PROPERTY = "EDID"
# GetOutputProperty length is counted in 32-bit units: 64 * 4 = 256 bytes,
# the largest EDID we accept.
EDID_PROPERTY_LENGTH = 64

# === Options ===
DEFAULT_LOG_LEVEL = "INFO"
