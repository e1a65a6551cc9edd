"""
CLI commands for monolink.

Each command lives in its own module and is registered in cli/main.py.
"""
