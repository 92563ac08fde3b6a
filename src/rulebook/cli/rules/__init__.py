"""Rule inspection commands."""
