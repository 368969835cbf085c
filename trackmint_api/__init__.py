"""Trackmint API: wallet onboarding and collectible purchase service."""

__version__ = "0.3.1"
