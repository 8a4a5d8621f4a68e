"""
Core utilities shared across the dispatch package.

This package hosts:
- configuration helpers (env vars, paths, backend selection)
- logging setup
- the error taxonomy raised by drivers and services
- the notification gateway used to reach people outside the system
"""
