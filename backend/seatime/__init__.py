"""Automated sea-time detection engine for mariner certification credit."""

__version__ = "0.1.0"
