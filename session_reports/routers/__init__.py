"""API routers for the report job pipeline."""
