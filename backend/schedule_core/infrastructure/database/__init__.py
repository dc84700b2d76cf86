"""Database infrastructure: tables, repositories and the unit of work."""
