"""
Database package initialization.

The package is organized as:
- base: declarative base and model mixins
- connection: async engine, sessions and health checks
- models: ORM models for the catalog, customers, staff and orders
- seed: sample catalog and staff allow-list loader

Submodules are imported explicitly where needed to avoid circular imports.
"""

__all__ = []
