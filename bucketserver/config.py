"""Configuration settings for the bucket server."""

import os

from common.constants import BUCKETSERVER_PORT


BUCKET_DATA_PATH = os.environ.get("SPLITSTORE_BUCKET_DATA_PATH", "/tmp/bucket1")

BUCKETSERVER_HOST = os.environ.get("SPLITSTORE_BUCKETSERVER_HOST", "0.0.0.0")

BUCKETSERVER_PORT = int(os.environ.get("SPLITSTORE_BUCKETSERVER_PORT", str(BUCKETSERVER_PORT)))
