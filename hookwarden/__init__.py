"""Hookwarden: webhook notification routing for self-hosted media services."""
__version__ = "0.4.0"
