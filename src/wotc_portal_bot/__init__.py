"""Browser-driven WOTC batch submission for state portals without an API."""

__version__ = "0.1.0"
