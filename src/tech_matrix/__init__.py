"""Technology Matrix: TIME assessments of customer technology, proxied to a hosted document store."""

__all__ = ["classification", "config", "models", "restdb", "server"]
