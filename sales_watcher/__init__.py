"""Store deal posts, parse their titles into listings, and flag posts that match user rules."""

__version__ = "0.1.0"
