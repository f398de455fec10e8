"""Membership roster, mailing list and payment synchronization jobs."""

__version__ = "1.0.0"
