"""CharityHub notification and rate limiting service."""
