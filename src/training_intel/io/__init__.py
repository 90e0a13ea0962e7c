"""File persistence and JSON serialization."""
