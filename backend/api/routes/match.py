"""
api/routes/match.py
-------------------
Ranks skills against a request.

POST /match — { text, activeSkills?, ids? } → MatchResult[]

  activeSkills  names already in the agent's context; they are not
                returned again, and skills they reference get a bonus
  ids           descriptor ids requested explicitly; this is the only way
                a shadowed (duplicate-name, non-winner) skill can match

Owner: API team
Depends on: core/pipeline
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from api.deps import get_pipeline
from core.errors import EmptyRegistryError
from core.models import MatchResult, Query
from core.pipeline import SkillPipeline

router = APIRouter()


class MatchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    active_skills: list[str] = Field(default_factory=list, alias="activeSkills")
    ids: list[str] = Field(default_factory=list)


@router.post("", response_model=list[MatchResult])
async def match_skills(
    body: MatchRequest,
    pipeline: SkillPipeline = Depends(get_pipeline),
):
    """
    Returns: [ { descriptorId, name, score, matchedTerms } ] sorted by score.
    Skills scoring zero are left out.
    """
    query = Query(
        text=body.text,
        active_context_names=body.active_skills,
        requested_ids=body.ids,
    )
    try:
        return pipeline.match(query)
    except EmptyRegistryError as exc:
        raise HTTPException(status_code=503, detail=exc.message)
