"""Outbound clients for other components."""
