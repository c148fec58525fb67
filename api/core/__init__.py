"""
Shared, cross-cutting code for the API.

`core/` holds small building blocks that features use (settings, storage
adapters). Keep submission-specific SQL and business logic in `submissions/`.
"""
