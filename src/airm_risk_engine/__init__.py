"""AIRM risk engine: risk scoring, risk velocity, and bulk import.

Subpackages:
- core      — domain types, scoring math, ORM models, and adapter protocols
- velocity  — rate-of-change calculation over score history
- importer  — CSV/XLSX parsing, row validation, chunked commit, templates
- adapters  — SQLAlchemy and in-memory storage
- api       — FastAPI routes
"""

__version__ = "0.1.0"
