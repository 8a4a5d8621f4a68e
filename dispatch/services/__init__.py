"""
High-level use cases for the dispatch backend.

The storage facade is the only door to the drivers; the lifecycle services
compose facade calls into invariant-preserving sequences (shift cascades,
assignment status changes) and publish notifications as they go.
"""
