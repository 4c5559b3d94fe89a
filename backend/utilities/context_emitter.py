"""
utilities/context_emitter.py
----------------------------
Serialises a skill selection into the single context string handed to
the consuming agent.

Structure (one block per selected skill, in selection order):

  --- SKILL: <name> (id=<id>, reason=<primary|related>) ---
  <body>

Blocks are separated by a blank line. total_bytes is the sum of the
included bodies' size_bytes — provenance headers are not counted — so
callers can audit it against the budget they asked for.

Pure: no I/O, no side effects.

Owner: Utilities team
Depends on: core/models
Depended on by: pipeline, API routes, scripts/skillctl
"""

from core.models import ContextBundle, IncludedSkill, SelectedSkill


def format_header(selected: SelectedSkill) -> str:
    d = selected.descriptor
    return f"--- SKILL: {d.name} (id={d.id}, reason={selected.reason.value}) ---"


def emit(selected: list[SelectedSkill]) -> ContextBundle:
    blocks = []
    included = []
    total_bytes = 0
    for item in selected:
        d = item.descriptor
        blocks.append(f"{format_header(item)}\n{d.body}")
        included.append(IncludedSkill(name=d.name, id=d.id, reason=item.reason))
        total_bytes += d.size_bytes

    return ContextBundle(
        text="\n\n".join(blocks),
        total_bytes=total_bytes,
        included=included,
    )
