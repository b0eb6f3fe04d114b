"""Admin HTTP API for starting and monitoring migrations."""
