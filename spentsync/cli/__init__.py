"""Command-line interface for spentsync."""
