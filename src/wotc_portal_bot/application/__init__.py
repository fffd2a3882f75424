"""Application layer: service interfaces and their implementations."""
