"""Platform synchronisation commands."""
