"""Plugin registry and remote sources."""
