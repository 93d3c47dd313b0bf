"""Infrastructure layer - persistence, caching and metrics."""
