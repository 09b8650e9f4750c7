"""Copy trade decisions, execution and stats."""
