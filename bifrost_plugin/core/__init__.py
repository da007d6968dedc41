"""Plugin installation core."""
