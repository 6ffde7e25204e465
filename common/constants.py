"""Project-wide constants (fan-out, default ports, streaming sizes)."""

DEFAULT_BUCKET_COUNT: int = 3

FILESERVER_PORT: int = 8000
BUCKETSERVER_PORT: int = 8100

STREAM_PIECE_SIZE_BYTES: int = 64 * 1024

BUCKET_TIMEOUT_SECONDS: float = 30.0

CHUNK_FILE_SUFFIX: str = ".chk"
