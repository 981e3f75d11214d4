"""api/ -- FastAPI application, rate limiter, and transport models."""
