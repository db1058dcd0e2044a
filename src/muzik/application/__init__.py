"""Application layer: use-case services."""
