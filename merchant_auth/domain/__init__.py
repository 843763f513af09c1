"""Domain layer - pure identity model, no framework imports."""
