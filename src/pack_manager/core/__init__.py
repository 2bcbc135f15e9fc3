"""Core application infrastructure: configuration, logging, database, background work."""
