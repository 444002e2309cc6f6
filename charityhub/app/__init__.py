"""CharityHub FastAPI application."""
