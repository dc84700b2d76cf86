"""Scheduling bounded context: entries, recurrence and conflicts."""
