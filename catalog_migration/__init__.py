"""
Catalog Migration

Moves the hosting-comparison catalog from the legacy MySQL database into the
Postgres-backed catalog.

Supports:
- Reference taxonomies (CMS, control panels, countries, data stores,
  operating systems, programming languages)
- Hostings, tariffs and tariff relations, content blocks
- Logo migration to S3-compatible object storage with thumbnails
- Dry runs and idempotent re-runs
- A JSON run report per run
"""

__version__ = "0.1.0"
