from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from datastore.base import ReadingStore
from datastore.document import DocumentReadingStore
from datastore.json_file import JsonFileReadingStore
from settings import get_settings


@lru_cache
def build_default_store(backend: Optional[str] = None) -> ReadingStore:
    """Build the configured backend; callers only see :class:`ReadingStore`."""
    settings = get_settings()
    selected = settings.store_backend if backend is None else backend
    if selected == "document":
        return DocumentReadingStore(path=settings.db_path)
    if selected == "file":
        path = Path(settings.data_path) if settings.data_path else None
        return JsonFileReadingStore(persistence_path=path, max_readings=settings.max_readings)
    raise ValueError(f"Unknown store backend {selected!r}.")
