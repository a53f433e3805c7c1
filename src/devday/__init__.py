"""devday - end-of-day recaps of AI-assisted coding sessions."""

__version__ = "0.1.0"
