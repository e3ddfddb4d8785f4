"""Nexus Campus: events, projects, badges and signed internal ads for an academic network."""
