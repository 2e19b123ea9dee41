"""
CRM record service root package.

This package contains all application source code organized by responsibility:
- api/          : FastAPI routes and HTTP handling
- core/         : Configuration, logging, errors and middleware
- database/     : Connection pool, table metadata, migrations and seed
- repositories/ : Tenant-scoped record access per entity
- services/     : Cross-entity logic (field history tracking)
- models/       : Pydantic request/response schemas
"""

__version__ = "0.1.0"
