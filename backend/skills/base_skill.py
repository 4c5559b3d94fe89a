"""
skills/base_skill.py
--------------------
Pydantic models for a skill as it enters and lives in the engine.

RawSkillSource is what a collector hands the loader: the path it came from,
the raw YAML front matter and the markdown body.

SkillDescriptor is the parsed, immutable record the registry owns.
Its id is derived from the source path and is the only stable handle;
the declared name is NOT unique across a skill library.

Owner: Skills team
Depends on: pydantic
Depended on by: skill_loader, skill_registry, conflict_resolver, core/*
"""

import re
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field


_FRONT_MATTER_RE = re.compile(r"^\ufeff?---\s*\n(.*?)\n---\s*(?:\n|$)", re.DOTALL)

SKILL_FILENAME = "SKILL.md"


def descriptor_id_for(path: str) -> str:
    """
    Derive a stable descriptor id from a source path.

      phoenix/realtime-ux/SKILL.md  → "phoenix/realtime-ux"
      notes/quick-tips.md           → "notes/quick-tips"
    """
    posix = PurePosixPath(path.replace("\\", "/"))
    if posix.name == SKILL_FILENAME and str(posix.parent) not in ("", "."):
        return str(posix.parent)
    return str(posix.with_suffix(""))


class RawSkillSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    front_matter_yaml: str
    body: str

    @classmethod
    def from_text(cls, path: str, text: str) -> "RawSkillSource":
        """
        Split a markdown document into front matter and body.
        A document without a leading '---' block gets empty front matter,
        which the loader reports as malformed.
        """
        match = _FRONT_MATTER_RE.match(text)
        if not match:
            return cls(path=path, front_matter_yaml="", body=text)
        return cls(
            path=path,
            front_matter_yaml=match.group(1),
            body=text[match.end():].lstrip("\n"),
        )


class SkillDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    trigger_text: str               # front matter `description`
    body: str
    size_bytes: int                 # UTF-8 length of body
    related_ids: tuple[str, ...] = ()
    source_path: str = ""
    metadata: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def build(
        cls,
        *,
        id: str,
        name: str,
        trigger_text: str,
        body: str,
        related_ids: tuple[str, ...] = (),
        source_path: str = "",
        metadata: dict[str, str] | None = None,
    ) -> "SkillDescriptor":
        """Construct a descriptor, computing size_bytes from the body."""
        return cls(
            id=id,
            name=name,
            trigger_text=trigger_text,
            body=body,
            size_bytes=len(body.encode("utf-8")),
            related_ids=tuple(related_ids),
            source_path=source_path,
            metadata=metadata or {},
        )
