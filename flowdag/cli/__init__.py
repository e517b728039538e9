"""Command-line interface for flowdag."""
