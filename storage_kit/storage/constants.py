"""Limits and defaults shared by every storage backend."""

# Default expiration for presigned URLs (1 hour)
DEFAULT_SIGNED_URL_EXPIRATION = 3600

# Longest expiration a caller may request (7 days)
MAX_SIGNED_URL_EXPIRATION = 604800

# Maximum keys allowed in one bulk delete
MAX_BULK_DELETE_KEYS = 1000

# Concurrent deletions per round for backends without a batch-delete API
BULK_DELETE_BATCH_SIZE = 50

# Default maximum upload size (10MB)
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Placeholder bucket name meaning "use the configured default bucket"
DEFAULT_BUCKET_PLACEHOLDER = "_"
