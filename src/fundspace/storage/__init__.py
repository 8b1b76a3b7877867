"""Object storage and persisted client state."""
