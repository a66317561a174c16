"""
Ontology Registries
===================

Passive, insertion-ordered holders for the designer's ontology.

Registries are owned by the authoring side; the engine only reads them.
Every mutation bumps ``revision`` so observers can tell when a recompute is
needed without diffing contents.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Iterator, Optional, TypeVar

from hexrules.core.schema import (
    CompareOp,
    Concept,
    ConceptBinding,
    Constraint,
    EntityRole,
    EntityType,
    EnumDefinition,
    ModifyProperty,
    PropertyCompare,
    PropertyValue,
    Relation,
    RelationTrigger,
    TypeId,
)


T = TypeVar("T")


class _Table(Generic[T]):
    """Id-keyed, insertion-ordered storage shared by the registries."""

    def __init__(self, owner: "_Registry"):
        self._owner = owner
        self._items: dict[TypeId, T] = {}

    def add(self, item: T) -> TypeId:
        """Register (or replace) an item, returning its id."""
        self._items[item.id] = item
        self._owner._touch()
        return item.id

    def remove(self, item_id: TypeId) -> bool:
        """Remove an item by id. Returns True if it was present."""
        if item_id in self._items:
            del self._items[item_id]
            self._owner._touch()
            return True
        return False

    def get(self, item_id: TypeId) -> Optional[T]:
        return self._items.get(item_id)

    def list(self) -> list[T]:
        return list(self._items.values())

    def clear(self) -> None:
        if self._items:
            self._items.clear()
            self._owner._touch()

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)


class _Registry:
    """Base class tracking a mutation revision."""

    def __init__(self):
        self._revision = 0

    @property
    def revision(self) -> int:
        """Monotonic counter, bumped on every mutation."""
        return self._revision

    def _touch(self) -> None:
        self._revision += 1


# =============================================================================
# Registries
# =============================================================================


class EntityTypeRegistry(_Registry):
    """Entity types and the enum definitions their properties reference."""

    def __init__(self):
        super().__init__()
        self.types: _Table[EntityType] = _Table(self)
        self.enum_definitions: _Table[EnumDefinition] = _Table(self)

    def add(self, entity_type: EntityType) -> TypeId:
        return self.types.add(entity_type)

    def remove(self, type_id: TypeId) -> bool:
        return self.types.remove(type_id)

    def get(self, type_id: TypeId) -> Optional[EntityType]:
        return self.types.get(type_id)

    def get_enum(self, enum_id: TypeId) -> Optional[EnumDefinition]:
        return self.enum_definitions.get(enum_id)

    def by_role(self, role: EntityRole) -> list[EntityType]:
        """Entity types filling the given board role."""
        return [t for t in self.types if t.role == role]

    def name_of(self, type_id: TypeId, default: str = "Unknown") -> str:
        entity_type = self.types.get(type_id)
        return entity_type.name if entity_type is not None else default

    def __repr__(self) -> str:
        return f"EntityTypeRegistry(types={len(self.types)}, enums={len(self.enum_definitions)})"


class ConceptRegistry(_Registry):
    """Concepts and the bindings of entity types to their roles."""

    def __init__(self):
        super().__init__()
        self.concepts: _Table[Concept] = _Table(self)
        self.bindings: _Table[ConceptBinding] = _Table(self)

    def add_concept(self, concept: Concept) -> TypeId:
        return self.concepts.add(concept)

    def add_binding(self, binding: ConceptBinding) -> TypeId:
        return self.bindings.add(binding)

    def remove_concept(self, concept_id: TypeId) -> bool:
        return self.concepts.remove(concept_id)

    def remove_binding(self, binding_id: TypeId) -> bool:
        return self.bindings.remove(binding_id)

    def get_concept(self, concept_id: TypeId) -> Optional[Concept]:
        return self.concepts.get(concept_id)

    def bindings_for_type(self, entity_type_id: TypeId) -> list[ConceptBinding]:
        return [b for b in self.bindings if b.entity_type_id == entity_type_id]

    def bindings_for_role(self, concept_id: TypeId, role_id: TypeId) -> list[ConceptBinding]:
        return [
            b for b in self.bindings
            if b.concept_id == concept_id and b.concept_role_id == role_id
        ]

    def binding_for(
        self,
        entity_type_id: TypeId,
        concept_id: TypeId,
        role_id: TypeId,
    ) -> list[ConceptBinding]:
        """Bindings placing an entity type in one concept role."""
        return [
            b for b in self.bindings
            if b.entity_type_id == entity_type_id
            and b.concept_id == concept_id
            and b.concept_role_id == role_id
        ]

    def is_bound(self, entity_type_id: TypeId, concept_id: TypeId, role_id: TypeId) -> bool:
        return bool(self.binding_for(entity_type_id, concept_id, role_id))

    def roles_of(self, entity_type_id: TypeId, concept_id: TypeId) -> list[TypeId]:
        """Role ids an entity type fills within a concept, in binding order."""
        roles: list[TypeId] = []
        for binding in self.bindings:
            if (
                binding.entity_type_id == entity_type_id
                and binding.concept_id == concept_id
                and binding.concept_role_id not in roles
            ):
                roles.append(binding.concept_role_id)
        return roles

    def __repr__(self) -> str:
        return f"ConceptRegistry(concepts={len(self.concepts)}, bindings={len(self.bindings)})"


class RelationRegistry(_Registry):
    """Designer-defined relations."""

    def __init__(self):
        super().__init__()
        self.relations: _Table[Relation] = _Table(self)

    def add(self, relation: Relation) -> TypeId:
        return self.relations.add(relation)

    def remove(self, relation_id: TypeId) -> bool:
        return self.relations.remove(relation_id)

    def get(self, relation_id: TypeId) -> Optional[Relation]:
        return self.relations.get(relation_id)

    def by_trigger(self, trigger: RelationTrigger) -> list[Relation]:
        return [r for r in self.relations if r.trigger == trigger]

    def __len__(self) -> int:
        return len(self.relations)

    def __repr__(self) -> str:
        return f"RelationRegistry(relations={len(self.relations)})"


class ConstraintRegistry(_Registry):
    """Named constraints, designer-authored or auto-generated."""

    def __init__(self):
        super().__init__()
        self.constraints: _Table[Constraint] = _Table(self)

    def add(self, constraint: Constraint) -> TypeId:
        return self.constraints.add(constraint)

    def remove(self, constraint_id: TypeId) -> bool:
        return self.constraints.remove(constraint_id)

    def get(self, constraint_id: TypeId) -> Optional[Constraint]:
        return self.constraints.get(constraint_id)

    def for_relation(self, relation_id: TypeId) -> list[Constraint]:
        return [c for c in self.constraints if c.relation_id == relation_id]

    def is_empty(self) -> bool:
        return len(self.constraints) == 0

    def __len__(self) -> int:
        return len(self.constraints)

    def __repr__(self) -> str:
        auto = sum(1 for c in self.constraints if c.auto_generated)
        return f"ConstraintRegistry(constraints={len(self.constraints)}, auto={auto})"


@dataclass
class OntologyRegistries:
    """
    The four registries, passed explicitly into every engine call.

    Example
    -------
    >>> registries = OntologyRegistries()
    >>> registries.entity_types.add(EntityType(name="Plains", role=EntityRole.BOARD_POSITION))
    >>> validation = validate_schema(registries)
    """

    entity_types: EntityTypeRegistry = field(default_factory=EntityTypeRegistry)
    concepts: ConceptRegistry = field(default_factory=ConceptRegistry)
    relations: RelationRegistry = field(default_factory=RelationRegistry)
    constraints: ConstraintRegistry = field(default_factory=ConstraintRegistry)

    @property
    def revision(self) -> tuple[int, int, int, int]:
        """Combined revision; changes whenever any registry mutates."""
        return (
            self.entity_types.revision,
            self.concepts.revision,
            self.relations.revision,
            self.constraints.revision,
        )


# =============================================================================
# Auto-generated constraints
# =============================================================================


def auto_constraint_for(relation: Relation) -> Optional[Constraint]:
    """
    Companion constraint for a subtract relation: ``subject.target >= 0``.

    Returns None for relations that do not subtract.
    """
    effect = relation.effect
    if not isinstance(effect, ModifyProperty) or not relation.is_subtract:
        return None

    target = effect.target_property
    return Constraint(
        name=f"[auto] {target} >= 0",
        description=(
            f"Auto-generated: ensures {target} does not go negative "
            f"from relation \"{relation.name}\""
        ),
        concept_id=relation.concept_id,
        relation_id=relation.id,
        expression=PropertyCompare(
            role_id=relation.subject_role_id,
            property_name=target,
            operator=CompareOp.GE,
            value=PropertyValue.integer(0),
        ),
        auto_generated=True,
    )


def sync_auto_constraints(relations: RelationRegistry, constraints: ConstraintRegistry) -> int:
    """
    Keep one auto-generated constraint per subtract relation.

    Stale auto constraints are regenerated, orphaned ones removed.
    Designer-authored constraints are left alone.

    Returns
    -------
    int
        Number of constraints created, regenerated or removed.
    """
    subtract_relations = {r.id: r for r in relations.relations if r.is_subtract}
    changes = 0

    for constraint in constraints.constraints:
        if not constraint.auto_generated or constraint.relation_id is None:
            continue
        if constraint.relation_id not in subtract_relations:
            constraints.remove(constraint.id)
            changes += 1
            print(f"[ConstraintRegistry] Removed orphaned auto constraint: {constraint.name}")

    for relation in subtract_relations.values():
        expected = auto_constraint_for(relation)
        if expected is None:
            continue
        existing = [c for c in constraints.for_relation(relation.id) if c.auto_generated]

        if existing and all(
            c.expression == expected.expression and c.concept_id == expected.concept_id
            for c in existing
        ):
            continue

        for stale in existing:
            constraints.remove(stale.id)
        constraints.add(expected)
        changes += 1
        verb = "Regenerated" if existing else "Generated"
        print(f"[ConstraintRegistry] {verb} auto constraint: {expected.name} ({relation.name})")

    return changes
