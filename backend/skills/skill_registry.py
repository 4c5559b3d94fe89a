"""
skills/skill_registry.py
------------------------
Immutable, ordered collection of SkillDescriptors for one load cycle.

  - Primary index:   id   → descriptor (unique)
  - Secondary index: name → ids        (NOT unique, duplicates are expected)

A Registry is never mutated after construction. Resolving conflicts or
reloading produces a new instance, so any number of match calls can read
one snapshot concurrently without locking.

Owner: Skills team
Depends on: base_skill, core/models, core/errors
Depended on by: skill_loader, conflict_resolver, matcher, assembler, registry_store
"""

from collections.abc import Iterable, Iterator
from types import MappingProxyType

from core.errors import MalformedSkillError
from core.models import ConflictGroup
from skills.base_skill import SkillDescriptor


class Registry:
    def __init__(
        self,
        descriptors: Iterable[SkillDescriptor] = (),
        *,
        conflicts: Iterable[ConflictGroup] = (),
        load_errors: Iterable[MalformedSkillError] = (),
        content_hash: str = "",
    ):
        ordered = tuple(descriptors)
        by_id: dict[str, SkillDescriptor] = {}
        by_name: dict[str, list[str]] = {}
        for descriptor in ordered:
            if descriptor.id in by_id:
                raise ValueError(f"Duplicate descriptor id {descriptor.id!r} in registry.")
            by_id[descriptor.id] = descriptor
            by_name.setdefault(descriptor.name, []).append(descriptor.id)

        self._descriptors = ordered
        self._by_id = MappingProxyType(by_id)
        self._by_name = MappingProxyType({k: tuple(v) for k, v in by_name.items()})
        self._conflicts = tuple(conflicts)
        self._shadowed = frozenset(
            sid for group in self._conflicts for sid in group.shadowed_ids
        )
        self._load_errors = tuple(load_errors)
        self.content_hash = content_hash

    @classmethod
    def empty(cls) -> "Registry":
        return cls(())

    # ------------------------------------------------------------------
    # Collection protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[SkillDescriptor]:
        return iter(self._descriptors)

    def __contains__(self, descriptor_id: object) -> bool:
        return descriptor_id in self._by_id

    def __repr__(self) -> str:
        return (
            f"Registry(descriptors={len(self)}, conflicts={len(self._conflicts)}, "
            f"load_errors={len(self._load_errors)})"
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def descriptors(self) -> tuple[SkillDescriptor, ...]:
        return self._descriptors

    @property
    def names(self) -> list[str]:
        """Distinct names in first-seen order."""
        return list(self._by_name)

    def get(self, descriptor_id: str) -> SkillDescriptor:
        """Retrieve a descriptor by id. Raises KeyError if not found."""
        return self._by_id[descriptor_id]

    def ids_for_name(self, name: str) -> tuple[str, ...]:
        return self._by_name.get(name, ())

    def find_by_name(self, name: str) -> list[SkillDescriptor]:
        return [self._by_id[did] for did in self.ids_for_name(name)]

    # ------------------------------------------------------------------
    # Conflict metadata (populated by conflict_resolver.resolve)
    # ------------------------------------------------------------------

    @property
    def conflicts(self) -> tuple[ConflictGroup, ...]:
        return self._conflicts

    @property
    def shadowed_ids(self) -> frozenset[str]:
        return self._shadowed

    @property
    def is_resolved(self) -> bool:
        """True once every duplicated name carries a ConflictGroup."""
        duplicated = {n for n, ids in self._by_name.items() if len(ids) > 1}
        return duplicated == {g.name for g in self._conflicts}

    def is_shadowed(self, descriptor_id: str) -> bool:
        return descriptor_id in self._shadowed

    def conflict_for(self, name: str) -> ConflictGroup | None:
        for group in self._conflicts:
            if group.name == name:
                return group
        return None

    def winner_for(self, name: str) -> SkillDescriptor | None:
        """The descriptor that answers to `name`: the conflict winner, or the sole owner."""
        group = self.conflict_for(name)
        if group is not None:
            return self._by_id[group.winner_id]
        ids = self.ids_for_name(name)
        return self._by_id[ids[0]] if ids else None

    def with_conflicts(self, conflicts: Iterable[ConflictGroup]) -> "Registry":
        """Return a new Registry with the same descriptors and the given conflict groups."""
        return Registry(
            self._descriptors,
            conflicts=conflicts,
            load_errors=self._load_errors,
            content_hash=self.content_hash,
        )

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    @property
    def load_errors(self) -> tuple[MalformedSkillError, ...]:
        return self._load_errors

    @property
    def is_partial(self) -> bool:
        return bool(self._load_errors)
