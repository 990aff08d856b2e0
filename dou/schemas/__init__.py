"""Envelope and demo payload schemas."""
