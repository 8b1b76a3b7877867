"""Core configuration, errors, events and permissions."""
