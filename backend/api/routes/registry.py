"""
api/routes/registry.py
----------------------
Inspection and refresh of the loaded skill library.

GET  /registry            — descriptors (without bodies), load errors, content hash
GET  /registry/conflicts  — duplicate-name groups with winner and shadowed ids
POST /registry/reload     — rebuild the snapshot from the skills directory

A failed reload keeps the previous snapshot:
  504 — load timed out (safe to retry)
  422 — no usable skills found
  404 — skills directory missing

Owner: API team
Depends on: core/registry_store
"""

from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_registry_store
from core.errors import EmptyRegistryError, LoadTimeoutError
from core.models import ConflictGroup
from core.registry_store import RegistryStore
from skills.skill_registry import Registry

router = APIRouter()


def _summary(registry: Registry) -> dict:
    return {
        "contentHash": registry.content_hash,
        "descriptors": len(registry),
        "conflicts": len(registry.conflicts),
        "loadErrors": [e.to_dict() for e in registry.load_errors],
    }


@router.get("")
async def list_descriptors(store: RegistryStore = Depends(get_registry_store)):
    """
    Returns: {
      contentHash, descriptors: int, conflicts: int, loadErrors: [ {path, reason} ],
      skills: [ { id, name, triggerText, sizeBytes, relatedIds, shadowed } ]
    }
    """
    registry = store.current()
    return {
        **_summary(registry),
        "skills": [
            {
                "id": d.id,
                "name": d.name,
                "triggerText": d.trigger_text,
                "sizeBytes": d.size_bytes,
                "relatedIds": list(d.related_ids),
                "shadowed": registry.is_shadowed(d.id),
            }
            for d in registry
        ],
    }


@router.get("/conflicts", response_model=list[ConflictGroup])
async def list_conflicts(store: RegistryStore = Depends(get_registry_store)):
    return list(store.current().conflicts)


@router.post("/reload")
def reload_registry(store: RegistryStore = Depends(get_registry_store)):
    """Blocking I/O — declared sync so FastAPI runs it in the threadpool."""
    try:
        registry = store.reload()
    except LoadTimeoutError as exc:
        raise HTTPException(status_code=504, detail=exc.message)
    except EmptyRegistryError as exc:
        raise HTTPException(
            status_code=422,
            detail={
                "message": exc.message,
                "loadErrors": [e.to_dict() for e in exc.errors],
            },
        )
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return _summary(registry)
