"""Command-line interface for serialframe."""
