"""Command line interface for monolink."""
