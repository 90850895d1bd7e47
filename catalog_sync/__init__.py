"""Distributor feed to storefront catalog sync."""

__version__ = "1.0.0"
