"""HTTP service exposing a single bucket's chunk store."""
