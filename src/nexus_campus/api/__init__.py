"""HTTP API for the campus service."""
