"""Services package for the upload and download paths."""

from fileserver.services.chunk_cleanup import ChunkCleaner
from fileserver.services.fanout_writer import ChunkWrite, FanoutWriter
from fileserver.services.file_service import FileService
from fileserver.services.reassembler import Reassembler

__all__ = ["ChunkCleaner", "ChunkWrite", "FanoutWriter", "FileService", "Reassembler"]
