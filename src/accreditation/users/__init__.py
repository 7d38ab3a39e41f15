"""Identity directory and user endpoints."""
