"""
api/routes/assemble.py
----------------------
Builds a byte-bounded context bundle for a request.

POST /assemble — { text, maxBytes?, activeSkills? }
  → { text, totalBytes, included: [ {name, id, reason} ], warnings: [...] }

A budget too small for any candidate is not an error: the response is an
empty bundle with a BudgetTooSmallError entry in `warnings`.

Owner: API team
Depends on: core/pipeline, core/config
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from api.deps import get_pipeline
from core.config import Config
from core.errors import EmptyRegistryError
from core.models import ContextBundle, Query
from core.pipeline import SkillPipeline

router = APIRouter()


class AssembleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    max_bytes: int | None = Field(default=None, ge=0, alias="maxBytes")
    active_skills: list[str] = Field(default_factory=list, alias="activeSkills")


class AssembleResponse(ContextBundle):
    warnings: list[dict] = Field(default_factory=list)


@router.post("", response_model=AssembleResponse)
async def assemble_context(
    body: AssembleRequest,
    pipeline: SkillPipeline = Depends(get_pipeline),
):
    max_bytes = body.max_bytes if body.max_bytes is not None else Config.DEFAULT_MAX_BYTES
    query = Query(text=body.text, active_context_names=body.active_skills)
    try:
        outcome = pipeline.assemble(query, max_bytes=max_bytes)
    except EmptyRegistryError as exc:
        raise HTTPException(status_code=503, detail=exc.message)

    return AssembleResponse(
        **outcome.bundle.model_dump(),
        warnings=[w.to_dict() for w in outcome.warnings],
    )
