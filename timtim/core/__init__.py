"""Core infrastructure: configuration, storage and shared math."""
