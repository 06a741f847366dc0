"""Core models, exceptions and the safety gate."""
