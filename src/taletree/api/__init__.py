"""HTTP API for the Taletree service."""
