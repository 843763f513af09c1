"""Application layer - auth use cases."""
