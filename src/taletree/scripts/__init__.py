"""Operational scripts for the Taletree service."""
