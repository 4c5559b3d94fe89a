"""
api/main.py
-----------
FastAPI application entry point.
Listens on localhost:8000 by default:

  cd backend && uvicorn api.main:app --port 8000

Startup (lifespan):
  Builds the shared singletons — RegistryStore (with optional SQLite cache)
  and SkillPipeline — loads the skill library once, and stores both on
  app.state for dependency injection in route handlers.

  A library that fails to load (missing directory, timeout, no usable
  skills) does not stop the server: it starts with an empty snapshot,
  query routes answer 503, and POST /registry/reload can be retried.

Owner: API team
Depends on: core/config, core/registry_store, core/pipeline
Depended on by: scripts/explore.py, external agent hosts
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import assemble, match, registry
from core.config import Config
from core.errors import EmptyRegistryError, LoadTimeoutError
from core.pipeline import SkillPipeline
from core.registry_cache import open_cache
from core.registry_store import RegistryStore
from utilities.source_collector import SourceCollector

logger = logging.getLogger(__name__)


def _default_store() -> RegistryStore:
    return RegistryStore(
        collector=SourceCollector(Config.get_skills_dir()),
        cache=open_cache(Config.get_cache_path()),
        load_timeout=Config.get_load_timeout(),
    )


def create_app(store: RegistryStore | None = None, load_on_startup: bool = True) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # --- startup ---
        Config.configure_logging()
        registry_store = store or _default_store()

        if load_on_startup:
            try:
                registry_store.reload_with_retry(
                    max_attempts=Config.RELOAD_MAX_ATTEMPTS,
                    initial_delay=Config.RELOAD_INITIAL_DELAY,
                )
            except (EmptyRegistryError, LoadTimeoutError, FileNotFoundError) as exc:
                logger.error("Skill library failed to load at startup: %s", exc)

        app.state.registry_store = registry_store
        app.state.pipeline = SkillPipeline(registry_store, weights=Config.get_match_weights())

        yield
        # --- shutdown (nothing to clean up) ---

    app = FastAPI(title="Skill Context Engine", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(match.router, prefix="/match", tags=["match"])
    app.include_router(assemble.router, prefix="/assemble", tags=["assemble"])
    app.include_router(registry.router, prefix="/registry", tags=["registry"])

    @app.get("/health")
    async def health():
        current = app.state.registry_store.current()
        return {"status": "ok", "descriptors": len(current)}

    return app


app = create_app()
