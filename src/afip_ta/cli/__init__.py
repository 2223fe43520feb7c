"""Command-line interface for afip-ta."""
