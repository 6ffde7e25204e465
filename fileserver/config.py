"""Configuration settings for the file server."""

import os

from common.constants import DEFAULT_BUCKET_COUNT, FILESERVER_PORT


DATABASE_PATH = os.environ.get("SPLITSTORE_DATABASE_PATH", "/app/data/catalog.db")

FILESERVER_HOST = os.environ.get("SPLITSTORE_HOST", "0.0.0.0")

FILESERVER_PORT = int(os.environ.get("SPLITSTORE_PORT", str(FILESERVER_PORT)))

BUCKET_COUNT = int(os.environ.get("SPLITSTORE_BUCKET_COUNT", str(DEFAULT_BUCKET_COUNT)))

# Parent directory of the local bucket1..bucketN directories
BUCKET_ROOT = os.environ.get("SPLITSTORE_BUCKET_ROOT", "/tmp")

# Comma-separated bucket server URLs; when set they replace the local directories
BUCKET_URLS = [
    url.strip()
    for url in os.environ.get("SPLITSTORE_BUCKET_URLS", "").split(",")
    if url.strip()
]

ORPHAN_CLEANUP_INTERVAL_SECONDS = int(os.environ.get("SPLITSTORE_ORPHAN_CLEANUP_INTERVAL", str(6 * 3600)))

CLEANUP_MAX_ATTEMPTS = 3
