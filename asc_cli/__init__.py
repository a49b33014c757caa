"""Command-line client for the App Store Connect API."""

__version__ = "0.1.0"
