"""Domain layer: framework-free models, errors and ports."""
