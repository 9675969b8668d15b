"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from aetherscribe.api import create_app

    uvicorn aetherscribe.api.app:app --reload
"""

from aetherscribe.api.app import create_app

__all__ = ["create_app"]
