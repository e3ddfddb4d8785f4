"""Core configuration, identity and error types."""
