"""Scheduled article publishing for the blog CMS."""

__version__ = "0.1.0"
