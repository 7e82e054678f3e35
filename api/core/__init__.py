"""
Shared, cross-cutting code for the API.

`core/` holds small building blocks that every feature uses (DB handle,
settings, logging). Feature-specific SQL and business logic stay in the
corresponding feature package (e.g. `item/`).
"""
