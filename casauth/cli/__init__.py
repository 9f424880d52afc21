"""Command-line interface for casauth."""
