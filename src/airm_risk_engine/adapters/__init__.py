"""Adapters — storage integrations for the risk engine.

Contains:
- repositories.py  — SQLAlchemy score history repository and import store
- memory.py        — in-memory score history and import stores
"""

__all__: list[str] = []
