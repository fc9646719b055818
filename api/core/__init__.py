"""
Shared, cross-cutting code for the API.

`core/` holds the small building blocks both verticals use (DB pool,
settings, logging, value helpers). Feature-specific SQL and business rules
live in the feature package (`carry/`, `airports/`).
"""
