from pathlib import Path

import pytest
import yaml

from skills.base_skill import RawSkillSource
from skills.conflict_resolver import resolve
from skills.skill_loader import load
from skills.skill_registry import Registry


def make_source(
    path: str,
    name: str | None,
    description: str | None,
    body: str,
    related: list[str] | None = None,
) -> RawSkillSource:
    front_matter: dict = {}
    if name is not None:
        front_matter["name"] = name
    if description is not None:
        front_matter["description"] = description
    if related:
        front_matter["related"] = related
    return RawSkillSource(
        path=path,
        front_matter_yaml=yaml.safe_dump(front_matter, sort_keys=False).strip(),
        body=body,
    )


REALTIME_PHOENIX = make_source(
    "phoenix/realtime-ux/SKILL.md",
    "realtime-ux",
    'Use this skill whenever building realtime UX in Phoenix LiveView - "typing indicator", '
    "presence, optimistic updates, or LiveView streams for chat.",
    "# Realtime UX (Phoenix)\n\nBroadcast typing events over PubSub and expire them after 3s.\n"
    "Track users with Phoenix.Presence once connected.\n",
    related=["elixir-liveview"],
)

REALTIME_REACT = make_source(
    "react/realtime-ux/SKILL.md",
    "realtime-ux",
    "Realtime UX for React clients - websocket reconnection and typing indicators.",
    "# Realtime UX (React)\n\nReconnect with jittered backoff.\n",
)

FRONTEND_TAILWIND = make_source(
    "frontend-tailwind/SKILL.md",
    "frontend-tailwind",
    "Use when styling frontend UI with Tailwind CSS - utility classes, responsive layout, "
    "dark mode, and theming.",
    "# Frontend with Tailwind\n\nCompose utilities in markup; keep brand colors in the theme.\n",
)

ELIXIR_LIVEVIEW = make_source(
    "elixir-liveview/SKILL.md",
    "elixir-liveview",
    "Use when building Phoenix LiveView pages - mount, handle_event lifecycle, assigns, forms.",
    "# Phoenix LiveView\n\nSubscribe only when connected. Keep handle_event thin.\n",
    related=["elixir-otp"],
)

ELIXIR_OTP = make_source(
    "elixir-otp/SKILL.md",
    "elixir-otp",
    "Use when designing OTP processes - GenServer, Supervisor trees, restart strategies.",
    "# Elixir OTP\n\nOne GenServer per unit of concurrency.\n",
)

ELIXIR_ECTO = make_source(
    "elixir-ecto/SKILL.md",
    "elixir-ecto",
    "Use when working with Ecto - schemas, changesets, migrations, queries.",
    "# Ecto\n\nValidate in changesets; constrain in the database.\n",
)

DESIGN_SYSTEM = make_source(
    "design/component-design-system/SKILL.md",
    "component-design-system",
    "Use when defining a component design system - design tokens, component APIs, variants, "
    "accessibility.",
    "# Component Design System\n\nComponents consume tokens, never raw values.\n"
    "Prefer a few variants over boolean flags.\n",
)

DESIGN_SYSTEM_TAILWIND = make_source(
    "tailwind/component-design-system/SKILL.md",
    "component-design-system",
    "Component design system conventions for Tailwind projects.",
    "# Component Design System (Tailwind)\n\nOne helper for variants.\n",
)


@pytest.fixture
def sample_sources() -> list[RawSkillSource]:
    return [
        REALTIME_PHOENIX,
        REALTIME_REACT,
        FRONTEND_TAILWIND,
        ELIXIR_LIVEVIEW,
        ELIXIR_OTP,
        ELIXIR_ECTO,
        DESIGN_SYSTEM,
        DESIGN_SYSTEM_TAILWIND,
    ]


@pytest.fixture
def registry(sample_sources) -> Registry:
    return resolve(load(sample_sources))


def write_skill(root: Path, source: RawSkillSource) -> Path:
    path = root / source.path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"---\n{source.front_matter_yaml}\n---\n\n{source.body}", encoding="utf-8")
    return path


@pytest.fixture
def skills_dir(tmp_path, sample_sources) -> Path:
    root = tmp_path / "skills"
    for source in sample_sources:
        write_skill(root, source)
    return root
