"""Core engine: configuration, rules, adapters and sync."""
