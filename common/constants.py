"""Project-wide constants shared by the server and the upload client."""

DEFAULT_CHUNK_SIZE_BYTES: int = 5 * 1024 * 1024  # 5 MiB, matches the browser uploader

API_PREFIX: str = "/api/upload"

SERVER_PORT: int = 8080

COPY_BUFFER_SIZE: int = 1024 * 1024

# Characters allowed in a sanitized file name and in an upload identifier.
SAFE_NAME_PATTERN: str = r"[^a-zA-Z0-9._-]"
UPLOAD_ID_PATTERN: str = r"[A-Za-z0-9._-]+"
