"""Recurring bill and income schedule engine for a personal budget."""
