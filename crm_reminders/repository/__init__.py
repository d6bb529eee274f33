"""Event repository implementations."""
