# Schemas package init
"""Pydantic models describing how records are written and read."""
