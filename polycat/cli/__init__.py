"""Command line interface for polycat."""
