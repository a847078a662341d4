"""Command-line entrypoint and slash commands."""
