"""
Schema Validator
================

Static consistency check of the whole ontology, independent of board state.

Validation is advisory: every problem is reported as a ``SchemaError`` and
nothing is rejected, so the designer never loses work. Evaluation of a schema
with errors still proceeds (conservatively) in the evaluator.

Checks:
- DANGLING_REFERENCE: ids that do not resolve in their target registry
- ROLE_MISMATCH: binding whose entity role the concept role does not allow
- PROPERTY_MISMATCH: bound property missing, or its type unusable as used
- MISSING_BINDING: concept role with no entity type bound to it
- INVALID_EXPRESSION: role/property references no binding can satisfy
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from hexrules.core.registry import OntologyRegistries
from hexrules.core.schema import (
    NUMERIC_KINDS,
    Allow,
    AllOf,
    AnyOf,
    Block,
    Concept,
    ConceptBinding,
    CrossCompare,
    EntityType,
    IsNotType,
    IsType,
    ModifyProperty,
    Not,
    PathBudget,
    PropertyCompare,
    PropertyDefinition,
    PropertyKind,
    Relation,
    TypeId,
)


class SchemaErrorCategory(str, Enum):
    """Category of schema-level error."""

    DANGLING_REFERENCE = "dangling_reference"
    """A reference points to a type/concept/role/property that doesn't exist."""

    ROLE_MISMATCH = "role_mismatch"
    """An entity type's role is not allowed by the concept role it binds to."""

    PROPERTY_MISMATCH = "property_mismatch"
    """A bound property is missing, or its type is incompatible with its use."""

    MISSING_BINDING = "missing_binding"
    """A concept role has no entity types bound to it."""

    INVALID_EXPRESSION = "invalid_expression"
    """An expression references roles or properties that cannot resolve."""


@dataclass(frozen=True)
class SchemaError:
    """A single schema-level validation error."""

    category: SchemaErrorCategory
    message: str
    source_id: TypeId
    """Id of the offending definition (entity type, binding, relation, ...)."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "message": self.message,
            "source_id": str(self.source_id),
        }


@dataclass
class SchemaValidation:
    """Validation results for the whole ontology."""

    errors: list[SchemaError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def by_category(self, category: SchemaErrorCategory) -> list[SchemaError]:
        return [e for e in self.errors if e.category == category]

    def for_source(self, source_id: TypeId) -> list[SchemaError]:
        return [e for e in self.errors if e.source_id == source_id]

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "error_count": len(self.errors),
            "errors": [e.to_dict() for e in self.errors],
        }

    def __repr__(self) -> str:
        return f"SchemaValidation(is_valid={self.is_valid}, errors={len(self.errors)})"


class SchemaValidator:
    """
    Walks the ontology registries and collects structural errors.

    A validator instance is single-use per ``validate`` call; the function
    ``validate_schema`` is the usual entry point.
    """

    def __init__(self, registries: OntologyRegistries):
        self._registries = registries
        self._errors: list[SchemaError] = []

    def validate(self) -> SchemaValidation:
        """Run every check and return the collected errors."""
        self._errors = []

        for entity_type in self._registries.entity_types.types:
            self._check_entity_type(entity_type)

        for binding in self._registries.concepts.bindings:
            self._check_binding(binding)

        for relation in self._registries.relations.relations:
            self._check_relation(relation)

        for constraint in self._registries.constraints.constraints:
            concept = self._registries.concepts.get_concept(constraint.concept_id)
            if concept is None:
                self._error(
                    SchemaErrorCategory.DANGLING_REFERENCE,
                    f"Constraint \"{constraint.name}\" references non-existent concept "
                    f"{constraint.concept_id}",
                    constraint.id,
                )
                continue

            if (
                constraint.relation_id is not None
                and self._registries.relations.get(constraint.relation_id) is None
            ):
                self._error(
                    SchemaErrorCategory.DANGLING_REFERENCE,
                    f"Constraint \"{constraint.name}\" references non-existent relation "
                    f"{constraint.relation_id}",
                    constraint.id,
                )

            self._check_expr(constraint.expression, concept, constraint.id)

        for concept in self._registries.concepts.concepts:
            self._check_concept_bound(concept)

        return SchemaValidation(errors=list(self._errors))

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def _check_entity_type(self, entity_type: EntityType) -> None:
        for definition in entity_type.property_schema:
            enum_id = definition.property_type.enum_id
            if enum_id is not None and self._registries.entity_types.get_enum(enum_id) is None:
                self._error(
                    SchemaErrorCategory.DANGLING_REFERENCE,
                    f"Property \"{definition.name}\" on entity type \"{entity_type.name}\" "
                    f"references non-existent enum definition {enum_id}",
                    entity_type.id,
                )

    def _check_binding(self, binding: ConceptBinding) -> None:
        entity_type = self._registries.entity_types.get(binding.entity_type_id)
        if entity_type is None:
            self._error(
                SchemaErrorCategory.DANGLING_REFERENCE,
                f"ConceptBinding references non-existent entity type {binding.entity_type_id}",
                binding.id,
            )

        concept = self._registries.concepts.get_concept(binding.concept_id)
        if concept is None:
            self._error(
                SchemaErrorCategory.DANGLING_REFERENCE,
                f"ConceptBinding references non-existent concept {binding.concept_id}",
                binding.id,
            )

        concept_role = concept.role(binding.concept_role_id) if concept is not None else None
        if concept is not None and concept_role is None:
            self._error(
                SchemaErrorCategory.DANGLING_REFERENCE,
                f"ConceptBinding references non-existent role {binding.concept_role_id} "
                f"within concept \"{concept.name}\"",
                binding.id,
            )

        if (
            entity_type is not None
            and concept_role is not None
            and entity_type.role not in concept_role.allowed_entity_roles
        ):
            allowed = ", ".join(r.value for r in concept_role.allowed_entity_roles) or "nothing"
            self._error(
                SchemaErrorCategory.ROLE_MISMATCH,
                f"Entity type \"{entity_type.name}\" has role {entity_type.role.value} but "
                f"concept role \"{concept_role.name}\" only allows {allowed}",
                binding.id,
            )

        if entity_type is None:
            return

        seen_names: set[str] = set()
        for property_binding in binding.property_bindings:
            if entity_type.get_property(property_binding.property_id) is None:
                self._error(
                    SchemaErrorCategory.PROPERTY_MISMATCH,
                    f"PropertyBinding references non-existent property "
                    f"{property_binding.property_id} on entity type \"{entity_type.name}\"",
                    binding.id,
                )
            if property_binding.concept_local_name in seen_names:
                self._error(
                    SchemaErrorCategory.PROPERTY_MISMATCH,
                    f"Concept-local name \"{property_binding.concept_local_name}\" is bound "
                    f"more than once for entity type \"{entity_type.name}\"",
                    binding.id,
                )
            seen_names.add(property_binding.concept_local_name)

    def _check_relation(self, relation: Relation) -> None:
        concept = self._registries.concepts.get_concept(relation.concept_id)
        if concept is None:
            self._error(
                SchemaErrorCategory.DANGLING_REFERENCE,
                f"Relation \"{relation.name}\" references non-existent concept {relation.concept_id}",
                relation.id,
            )
            return

        subject_exists = concept.has_role(relation.subject_role_id)
        object_exists = concept.has_role(relation.object_role_id)

        if not subject_exists:
            self._error(
                SchemaErrorCategory.DANGLING_REFERENCE,
                f"Relation \"{relation.name}\" references non-existent subject role "
                f"{relation.subject_role_id} in concept \"{concept.name}\"",
                relation.id,
            )
        if not object_exists:
            self._error(
                SchemaErrorCategory.DANGLING_REFERENCE,
                f"Relation \"{relation.name}\" references non-existent object role "
                f"{relation.object_role_id} in concept \"{concept.name}\"",
                relation.id,
            )
        if subject_exists and object_exists and relation.subject_role_id == relation.object_role_id:
            self._error(
                SchemaErrorCategory.INVALID_EXPRESSION,
                f"Relation \"{relation.name}\" has the same role for subject and object",
                relation.id,
            )

        effect = relation.effect
        if isinstance(effect, ModifyProperty):
            if subject_exists:
                self._check_role_property(
                    relation.subject_role_id, effect.target_property, concept, relation.id,
                    numeric=True,
                )
            if object_exists:
                self._check_role_property(
                    relation.object_role_id, effect.source_property, concept, relation.id,
                    numeric=True,
                )
        elif isinstance(effect, (Block, Allow)):
            if effect.condition is not None:
                self._check_expr(effect.condition, concept, relation.id)
        else:
            raise TypeError(f"Unknown relation effect: {type(effect).__name__}")

    def _check_expr(self, expr: Any, concept: Concept, source_id: TypeId) -> None:
        """Recursively validate an expression tree within a concept."""
        if isinstance(expr, PropertyCompare):
            definitions = self._check_role_property(
                expr.role_id, expr.property_name, concept, source_id,
                numeric=expr.operator.is_ordering,
            )
            literal_kind = expr.value.kind
            if expr.operator.is_ordering and literal_kind not in NUMERIC_KINDS:
                self._error(
                    SchemaErrorCategory.PROPERTY_MISMATCH,
                    f"Operator {expr.operator.value} cannot compare against a "
                    f"{literal_kind.value} literal",
                    source_id,
                )
            for definition in definitions or []:
                if not _kinds_comparable(definition.property_type.kind, literal_kind):
                    self._error(
                        SchemaErrorCategory.PROPERTY_MISMATCH,
                        f"Property \"{expr.property_name}\" is {definition.property_type.kind.value} "
                        f"but is compared against a {literal_kind.value} literal",
                        source_id,
                    )
        elif isinstance(expr, CrossCompare):
            left = self._check_role_property(
                expr.left_role_id, expr.left_property, concept, source_id,
                numeric=expr.operator.is_ordering,
            )
            right = self._check_role_property(
                expr.right_role_id, expr.right_property, concept, source_id,
                numeric=expr.operator.is_ordering,
            )
            left_kinds = {d.property_type.kind for d in left or []}
            right_kinds = {d.property_type.kind for d in right or []}
            for left_kind in sorted(left_kinds, key=lambda k: k.value):
                for right_kind in sorted(right_kinds, key=lambda k: k.value):
                    if not _kinds_comparable(left_kind, right_kind):
                        self._error(
                            SchemaErrorCategory.PROPERTY_MISMATCH,
                            f"Cannot compare \"{expr.left_property}\" ({left_kind.value}) with "
                            f"\"{expr.right_property}\" ({right_kind.value})",
                            source_id,
                        )
        elif isinstance(expr, (IsType, IsNotType)):
            if not concept.has_role(expr.role_id):
                self._unknown_role(expr.role_id, concept, source_id)
            if self._registries.entity_types.get(expr.entity_type_id) is None:
                self._error(
                    SchemaErrorCategory.DANGLING_REFERENCE,
                    f"Type check references non-existent entity type {expr.entity_type_id}",
                    source_id,
                )
        elif isinstance(expr, PathBudget):
            budget_concept = self._registries.concepts.get_concept(expr.concept_id)
            if budget_concept is None:
                self._error(
                    SchemaErrorCategory.DANGLING_REFERENCE,
                    f"Path budget references non-existent concept {expr.concept_id}",
                    source_id,
                )
                return
            self._check_role_property(
                expr.cost_role_id, expr.cost_property, budget_concept, source_id, numeric=True
            )
            self._check_role_property(
                expr.budget_role_id, expr.budget_property, budget_concept, source_id, numeric=True
            )
        elif isinstance(expr, (AllOf, AnyOf)):
            for sub in expr.exprs:
                self._check_expr(sub, concept, source_id)
        elif isinstance(expr, Not):
            self._check_expr(expr.expr, concept, source_id)
        else:
            raise TypeError(f"Unknown constraint expression: {type(expr).__name__}")

    def _check_role_property(
        self,
        role_id: TypeId,
        property_name: str,
        concept: Concept,
        source_id: TypeId,
        numeric: bool = False,
    ) -> Optional[list[PropertyDefinition]]:
        """
        Validate that ``property_name`` is bound for ``role_id`` in ``concept``.

        Returns the property definitions it resolves to, or None when the
        reference could not be checked.
        """
        if not concept.has_role(role_id):
            self._unknown_role(role_id, concept, source_id)
            return None

        bindings = self._registries.concepts.bindings_for_role(concept.id, role_id)
        if not bindings:
            # MissingBinding reports the unbound role.
            return None

        definitions: list[PropertyDefinition] = []
        found = False
        for binding in bindings:
            property_id = binding.property_for(property_name)
            if property_id is None:
                continue
            found = True
            entity_type = self._registries.entity_types.get(binding.entity_type_id)
            definition = entity_type.get_property(property_id) if entity_type else None
            if definition is not None:
                definitions.append(definition)

        if not found:
            role = concept.role(role_id)
            self._error(
                SchemaErrorCategory.INVALID_EXPRESSION,
                f"Unknown concept-local property \"{property_name}\" for role "
                f"\"{role.name if role else role_id}\" in concept \"{concept.name}\"",
                source_id,
            )
            return None

        if numeric:
            for definition in definitions:
                if not definition.property_type.is_numeric:
                    self._error(
                        SchemaErrorCategory.PROPERTY_MISMATCH,
                        f"Property \"{property_name}\" is {definition.property_type.kind.value}; "
                        f"numeric use requires int or float",
                        source_id,
                    )
        return definitions

    def _check_concept_bound(self, concept: Concept) -> None:
        for role in concept.role_labels:
            if not self._registries.concepts.bindings_for_role(concept.id, role.id):
                self._error(
                    SchemaErrorCategory.MISSING_BINDING,
                    f"Role \"{role.name}\" of concept \"{concept.name}\" has no entity types bound to it",
                    concept.id,
                )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _unknown_role(self, role_id: TypeId, concept: Concept, source_id: TypeId) -> None:
        self._error(
            SchemaErrorCategory.INVALID_EXPRESSION,
            f"Expression references non-existent role {role_id} in concept \"{concept.name}\"",
            source_id,
        )

    def _error(self, category: SchemaErrorCategory, message: str, source_id: TypeId) -> None:
        self._errors.append(SchemaError(category=category, message=message, source_id=source_id))


def _kinds_comparable(left: PropertyKind, right: PropertyKind) -> bool:
    """Numeric kinds compare with each other; anything else needs the same kind."""
    if left in NUMERIC_KINDS and right in NUMERIC_KINDS:
        return True
    return left == right


def validate_schema(registries: OntologyRegistries) -> SchemaValidation:
    """Validate the ontology registries. Never raises on inconsistent data."""
    return SchemaValidator(registries).validate()
