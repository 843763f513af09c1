"""Infrastructure layer - crypto, persistence and retry adapters."""
