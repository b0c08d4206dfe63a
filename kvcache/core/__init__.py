"""Core Application Layer: maps user commands onto cache operations."""
