"""GhostMedia realtime core."""
