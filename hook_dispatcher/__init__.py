"""Relay publish/subscribe messages to a webhook endpoint under a rate ceiling."""

__version__ = "0.1.0"
