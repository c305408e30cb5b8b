"""Profile content catalogue and per-user fallback data."""
