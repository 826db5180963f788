# Presigned download links stay valid for one day
PRESIGNED_URL_EXPIRY_HOURS = 24

# Files left in the working directory longer than this are removed at startup
STALE_FILE_MAX_AGE_MINUTES = 60

# --- Queue delivery ---

# Redeliveries allowed after the first attempt (attached to each message at send time)
DEFAULT_RETRY_LIMIT = 3

# Pub/Sub dead-letter policy bounds
MIN_DELIVERY_ATTEMPTS = 5
MAX_DELIVERY_ATTEMPTS = 100

# Subscription retry policy (seconds)
RETRY_MIN_BACKOFF_SECONDS = 30
RETRY_MAX_BACKOFF_SECONDS = 600

# Pub/Sub ack deadline for the worker subscriptions (seconds)
ACK_DEADLINE_SECONDS = 600

# How long a publish may block before failing the attempt (seconds)
PUBLISH_TIMEOUT_SECONDS = 60

# Suffixes for derived Pub/Sub resource names
SUBSCRIPTION_SUFFIX = "-worker"
DEAD_LETTER_SUFFIX = "-dead-letter"

# --- Transfers ---

STREAM_CHUNK_SIZE = 64 * 1024

PDF_CONTENT_TYPE = "application/pdf"
ZIP_CONTENT_TYPE = "application/zip"

CURRENCY = "MXN"
