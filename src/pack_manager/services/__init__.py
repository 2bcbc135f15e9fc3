"""Service layer: manifest caching and operation tracking."""
