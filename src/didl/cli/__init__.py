"""Command-line interface for didl."""
