"""Interactive command-line client for the file server."""
