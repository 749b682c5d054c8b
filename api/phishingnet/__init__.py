"""PhishingNet: sender authentication verdict engine."""

__version__ = "0.1.0"
