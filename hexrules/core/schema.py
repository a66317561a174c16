"""
Ontology Schema
===============

Designer-authored data models for the rules engine.

Nothing here carries game vocabulary. Entity types describe what a board
position or a token *is*; concepts, roles, bindings, relations and
constraints describe how those types interact. The engine reads these models
and never writes them.

Model Families:
- Properties: PropertyType, PropertyValue, PropertyDefinition, EnumDefinition
- Entities: EntityType, EntityInstance
- Ontology: Concept, ConceptRole, ConceptBinding, PropertyBinding
- Relations: Relation plus the RelationEffect union
- Constraints: Constraint plus the ConstraintExpr union
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


TypeId = UUID
"""Stable, opaque identifier for every ontology definition."""

TokenId = UUID
"""Identifier of a token placed on the board."""

_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


# =============================================================================
# Enums
# =============================================================================


class EntityRole(str, Enum):
    """What kind of board thing an entity type describes."""

    BOARD_POSITION = "board_position"
    """A tile occupying a grid position."""

    TOKEN = "token"
    """A movable piece standing on a tile."""


class PropertyKind(str, Enum):
    """Data type of a property."""

    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    COLOR = "color"
    ENUM = "enum"


NUMERIC_KINDS = frozenset({PropertyKind.INT, PropertyKind.FLOAT})


class CompareOp(str, Enum):
    """Comparison operators for constraint expressions."""

    EQ = "eq"
    NE = "ne"
    LT = "lt"
    LE = "le"
    GT = "gt"
    GE = "ge"

    @property
    def is_ordering(self) -> bool:
        """True for operators only defined on numeric values."""
        return self in (CompareOp.LT, CompareOp.LE, CompareOp.GT, CompareOp.GE)


class RelationTrigger(str, Enum):
    """When a relation is evaluated."""

    ON_ENTER = "on_enter"
    """Evaluated when a token enters a position."""

    ON_EXIT = "on_exit"
    """Evaluated when a token leaves a position."""

    WHILE_PRESENT = "while_present"
    """Holds while the entities coexist at a position."""


class ModifyOperation(str, Enum):
    """How a ModifyProperty effect combines two numeric values."""

    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    MIN = "min"
    MAX = "max"


# =============================================================================
# Properties
# =============================================================================


class PropertyType(BaseModel):
    """Declared type of a property; enum types reference an EnumDefinition."""

    model_config = ConfigDict(frozen=True)

    kind: PropertyKind
    enum_id: Optional[TypeId] = None

    @model_validator(mode="after")
    def _validate_enum_reference(self) -> "PropertyType":
        if self.kind == PropertyKind.ENUM and self.enum_id is None:
            raise ValueError("enum property types must reference an enum definition")
        if self.kind != PropertyKind.ENUM and self.enum_id is not None:
            raise ValueError(f"{self.kind.value} property types cannot carry an enum_id")
        return self

    @property
    def is_numeric(self) -> bool:
        return self.kind in NUMERIC_KINDS

    @classmethod
    def of(cls, kind: PropertyKind, enum_id: Optional[TypeId] = None) -> "PropertyType":
        return cls(kind=kind, enum_id=enum_id)


class PropertyValue(BaseModel):
    """
    A tagged property value.

    The ``kind`` tag must agree with the Python type of ``value``: bools are
    never accepted as ints, ints are widened to floats for the float kind,
    colors are hex strings.
    """

    model_config = ConfigDict(frozen=True)

    kind: PropertyKind
    value: Union[bool, int, float, str]

    @model_validator(mode="before")
    @classmethod
    def _widen_float(cls, data: Any) -> Any:
        """Accept ints for the float kind."""
        if not isinstance(data, dict):
            return data
        value = data.get("value")
        if (
            data.get("kind") in (PropertyKind.FLOAT, PropertyKind.FLOAT.value)
            and isinstance(value, int)
            and not isinstance(value, bool)
        ):
            return {**data, "value": float(value)}
        return data

    @model_validator(mode="after")
    def _validate_kind(self) -> "PropertyValue":
        value = self.value

        if self.kind == PropertyKind.BOOL:
            if not isinstance(value, bool):
                raise ValueError("bool property values must be True or False")
        elif self.kind == PropertyKind.INT:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError("int property values must be integers")
        elif self.kind == PropertyKind.FLOAT:
            if not isinstance(value, float):
                raise ValueError("float property values must be numeric")
        elif self.kind == PropertyKind.COLOR:
            if not isinstance(value, str) or not _COLOR_PATTERN.match(value):
                raise ValueError("color property values must be '#rrggbb' or '#rrggbbaa'")
        elif not isinstance(value, str):
            raise ValueError(f"{self.kind.value} property values must be strings")

        return self

    @classmethod
    def boolean(cls, value: bool) -> "PropertyValue":
        return cls(kind=PropertyKind.BOOL, value=value)

    @classmethod
    def integer(cls, value: int) -> "PropertyValue":
        return cls(kind=PropertyKind.INT, value=value)

    @classmethod
    def floating(cls, value: float) -> "PropertyValue":
        return cls(kind=PropertyKind.FLOAT, value=value)

    @classmethod
    def string(cls, value: str) -> "PropertyValue":
        return cls(kind=PropertyKind.STRING, value=value)

    @classmethod
    def color(cls, value: str) -> "PropertyValue":
        return cls(kind=PropertyKind.COLOR, value=value)

    @classmethod
    def enum(cls, option: str) -> "PropertyValue":
        return cls(kind=PropertyKind.ENUM, value=option)

    @classmethod
    def default_for(cls, property_type: PropertyType) -> "PropertyValue":
        """Default value for a property type."""
        defaults: dict[PropertyKind, Any] = {
            PropertyKind.BOOL: False,
            PropertyKind.INT: 0,
            PropertyKind.FLOAT: 0.0,
            PropertyKind.STRING: "",
            PropertyKind.COLOR: "#ffffff",
            PropertyKind.ENUM: "",
        }
        return cls(kind=property_type.kind, value=defaults[property_type.kind])

    @property
    def is_numeric(self) -> bool:
        return self.kind in NUMERIC_KINDS

    def as_number(self) -> Optional[int | float]:
        """Numeric payload, or None for non-numeric kinds."""
        if self.is_numeric:
            return self.value  # type: ignore[return-value]
        return None

    def __repr__(self) -> str:
        return f"PropertyValue({self.kind.value}={self.value!r})"


class PropertyDefinition(BaseModel):
    """A named, typed entry in an entity type's property schema."""

    model_config = ConfigDict(frozen=True)

    id: TypeId = Field(default_factory=uuid4)
    name: str
    property_type: PropertyType
    default_value: Optional[PropertyValue] = None
    """Filled from the property type when omitted."""

    @model_validator(mode="before")
    @classmethod
    def _fill_default(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("default_value") is not None:
            return data
        property_type = data.get("property_type")
        if isinstance(property_type, dict):
            property_type = PropertyType.model_validate(property_type)
        if not isinstance(property_type, PropertyType):
            return data
        return {**data, "default_value": PropertyValue.default_for(property_type)}

    @model_validator(mode="after")
    def _validate_default(self) -> "PropertyDefinition":
        if self.default_value is None:
            raise ValueError(f"property '{self.name}' has no default value")
        if self.default_value.kind != self.property_type.kind:
            raise ValueError(
                f"default value for property '{self.name}' is {self.default_value.kind.value}, "
                f"expected {self.property_type.kind.value}"
            )
        return self


class EnumDefinition(BaseModel):
    """A named set of string options for enum-typed properties."""

    model_config = ConfigDict(frozen=True)

    id: TypeId = Field(default_factory=uuid4)
    name: str
    options: tuple[str, ...] = ()


# =============================================================================
# Entities
# =============================================================================


class EntityType(BaseModel):
    """What kind of thing a board tile or a movable token is."""

    model_config = ConfigDict(frozen=True)

    id: TypeId = Field(default_factory=uuid4)
    name: str
    role: EntityRole
    property_schema: tuple[PropertyDefinition, ...] = ()

    def get_property(self, property_id: TypeId) -> Optional[PropertyDefinition]:
        """Look up a property definition by id."""
        for definition in self.property_schema:
            if definition.id == property_id:
                return definition
        return None

    def default_properties(self) -> dict[TypeId, PropertyValue]:
        return {p.id: p.default_value for p in self.property_schema}

    def instantiate(self, values: Optional[dict[TypeId, PropertyValue]] = None) -> "EntityInstance":
        """Create an instance seeded with schema defaults and optional overrides."""
        properties = self.default_properties()
        properties.update(values or {})
        return EntityInstance(entity_type_id=self.id, properties=properties)


class EntityInstance(BaseModel):
    """
    A concrete tile or token.

    ``entity_type_id`` is expected to resolve in the entity type registry, but
    instances whose type was deleted are tolerated and simply take no part in
    ontology evaluation.
    """

    model_config = ConfigDict(frozen=True)

    entity_type_id: TypeId
    properties: dict[TypeId, PropertyValue] = Field(default_factory=dict)

    def with_property(self, property_id: TypeId, value: PropertyValue) -> "EntityInstance":
        """Return a copy with one property replaced."""
        properties = dict(self.properties)
        properties[property_id] = value
        return EntityInstance(entity_type_id=self.entity_type_id, properties=properties)


# =============================================================================
# Concepts and Bindings
# =============================================================================


class ConceptRole(BaseModel):
    """A named slot in a concept, restricted to some entity roles."""

    model_config = ConfigDict(frozen=True)

    id: TypeId = Field(default_factory=uuid4)
    name: str
    allowed_entity_roles: tuple[EntityRole, ...] = ()


class Concept(BaseModel):
    """
    A designer-named abstract interaction category.

    Role slots are the only structure; a concept carries no behaviour.
    """

    model_config = ConfigDict(frozen=True)

    id: TypeId = Field(default_factory=uuid4)
    name: str
    description: str = ""
    role_labels: tuple[ConceptRole, ...] = ()

    def role(self, role_id: TypeId) -> Optional[ConceptRole]:
        for role in self.role_labels:
            if role.id == role_id:
                return role
        return None

    def role_by_name(self, name: str) -> Optional[ConceptRole]:
        for role in self.role_labels:
            if role.name == name:
                return role
        return None

    def has_role(self, role_id: TypeId) -> bool:
        return self.role(role_id) is not None


class PropertyBinding(BaseModel):
    """Maps an entity type's property to a concept-local name."""

    model_config = ConfigDict(frozen=True)

    property_id: TypeId
    concept_local_name: str


class ConceptBinding(BaseModel):
    """Declares that an entity type fills one role of one concept."""

    model_config = ConfigDict(frozen=True)

    id: TypeId = Field(default_factory=uuid4)
    entity_type_id: TypeId
    concept_id: TypeId
    concept_role_id: TypeId
    property_bindings: tuple[PropertyBinding, ...] = ()

    def property_for(self, concept_local_name: str) -> Optional[TypeId]:
        """Property id bound under a concept-local name, if any."""
        for binding in self.property_bindings:
            if binding.concept_local_name == concept_local_name:
                return binding.property_id
        return None


# =============================================================================
# Constraint Expressions
# =============================================================================


class PropertyCompare(BaseModel):
    """role.property <op> literal"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["property_compare"] = "property_compare"
    role_id: TypeId
    property_name: str
    operator: CompareOp
    value: PropertyValue


class CrossCompare(BaseModel):
    """left_role.left_property <op> right_role.right_property"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["cross_compare"] = "cross_compare"
    left_role_id: TypeId
    left_property: str
    operator: CompareOp
    right_role_id: TypeId
    right_property: str


class IsType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["is_type"] = "is_type"
    role_id: TypeId
    entity_type_id: TypeId


class IsNotType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["is_not_type"] = "is_not_type"
    role_id: TypeId
    entity_type_id: TypeId


class PathBudget(BaseModel):
    """
    Accumulated path cost must stay within the budget.

    Only meaningful inside a move search, where the running cost is known.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["path_budget"] = "path_budget"
    concept_id: TypeId
    cost_property: str
    cost_role_id: TypeId
    budget_property: str
    budget_role_id: TypeId


class AllOf(BaseModel):
    """True iff every sub-expression holds; vacuously true."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["all"] = "all"
    exprs: tuple["ConstraintExpr", ...] = ()


class AnyOf(BaseModel):
    """True iff at least one sub-expression holds; vacuously false."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["any"] = "any"
    exprs: tuple["ConstraintExpr", ...] = ()


class Not(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["not"] = "not"
    expr: "ConstraintExpr"


ConstraintExpr = Annotated[
    Union[PropertyCompare, CrossCompare, IsType, IsNotType, PathBudget, AllOf, AnyOf, Not],
    Field(discriminator="kind"),
]

AllOf.model_rebuild()
AnyOf.model_rebuild()
Not.model_rebuild()


# =============================================================================
# Relations
# =============================================================================


class ModifyProperty(BaseModel):
    """Apply ``operation`` to the subject's target with the object's source."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["modify_property"] = "modify_property"
    target_property: str
    """Concept-local name on the subject role."""
    source_property: str
    """Concept-local name on the object role."""
    operation: ModifyOperation


class Block(BaseModel):
    """Blocks the subject from the position; unconditional without a condition."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["block"] = "block"
    condition: Optional[ConstraintExpr] = None


class Allow(BaseModel):
    """Permits the subject at the position, overriding blocks of its concept."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["allow"] = "allow"
    condition: Optional[ConstraintExpr] = None


RelationEffect = Annotated[
    Union[ModifyProperty, Block, Allow],
    Field(discriminator="kind"),
]


class Relation(BaseModel):
    """
    A designer-defined interaction between two roles of one concept.

    Example
    -------
    "Terrain Cost": when a traveler enters terrain, subtract the terrain's
    ``cost`` from the traveler's ``budget``:

        Relation(
            name="Terrain Cost",
            concept_id=motion.id,
            subject_role_id=traveler.id,
            object_role_id=terrain.id,
            trigger=RelationTrigger.ON_ENTER,
            effect=ModifyProperty(
                target_property="budget",
                source_property="cost",
                operation=ModifyOperation.SUBTRACT,
            ),
        )
    """

    model_config = ConfigDict(frozen=True)

    id: TypeId = Field(default_factory=uuid4)
    name: str
    concept_id: TypeId
    subject_role_id: TypeId
    object_role_id: TypeId
    trigger: RelationTrigger = RelationTrigger.ON_ENTER
    effect: RelationEffect

    @property
    def is_subtract(self) -> bool:
        """True for ModifyProperty relations that subtract."""
        return (
            isinstance(self.effect, ModifyProperty)
            and self.effect.operation == ModifyOperation.SUBTRACT
        )


# =============================================================================
# Constraints
# =============================================================================


class Constraint(BaseModel):
    """A named boolean condition that must hold within a concept."""

    model_config = ConfigDict(frozen=True)

    id: TypeId = Field(default_factory=uuid4)
    name: str
    description: str = ""
    concept_id: TypeId
    relation_id: Optional[TypeId] = None
    """Source relation when auto-generated."""
    expression: ConstraintExpr
    auto_generated: bool = False

    def __repr__(self) -> str:
        marker = " [auto]" if self.auto_generated else ""
        return f"Constraint(id={str(self.id)[:8]}..., name={self.name!r}{marker})"
