"""
Switchboard — Package Initializer
===================================

Two independent halves that share configuration, logging and errors:

    ┌─────────────────────────────────────┐
    │  dispatch/  + main.py               │  ← prefix-routed handler chain over HTTP
    ├─────────────────────────────────────┤
    │  models/ schemas/ registry.py       │  ← "User" record shape and readable form
    │  database.py services/              │  ← connect() bootstrap and user service
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
