"""Infrastructure adapters for the response cache."""
