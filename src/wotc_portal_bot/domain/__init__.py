"""Domain layer: pure models and business rules."""
