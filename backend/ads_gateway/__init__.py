"""Authenticated proxy between the PPC dashboard and the Google Ads API."""

__version__ = "1.0.0"
