"""Service layer: user, thread and activity operations."""
