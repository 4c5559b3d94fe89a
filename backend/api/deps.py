"""
api/deps.py
-----------
FastAPI dependency injection helpers.
Route handlers that need the shared singletons declare them as
Depends(get_*) parameters.

The singletons are stored on app.state by the lifespan handler in main.py.

Owner: API team
"""

from fastapi import Request

from core.pipeline import SkillPipeline
from core.registry_store import RegistryStore


def get_registry_store(request: Request) -> RegistryStore:
    return request.app.state.registry_store


def get_pipeline(request: Request) -> SkillPipeline:
    return request.app.state.pipeline
