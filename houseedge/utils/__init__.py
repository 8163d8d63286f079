"""Statistics and identifier helpers."""
