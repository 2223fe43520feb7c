"""Utility modules for afip-ta."""
