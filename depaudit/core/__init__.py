"""Core infrastructure: configuration, logging and errors."""
