"""Chunked-object file server: partitioning, fan-out writes, catalog and reassembly."""
