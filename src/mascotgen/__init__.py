"""Slack relay that turns chat requests into branded persona images."""

__version__ = "0.1.0"
