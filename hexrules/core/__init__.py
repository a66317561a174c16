"""
HexRules Core: Ontology, Validation and Evaluation
==================================================

This package holds the designer's ontology model and the two pure
functions over it: structural validation and constraint evaluation.

Public API:
- EntityType, Concept, ConceptBinding, Relation, Constraint: Ontology models
- OntologyRegistries: The four registries bundled together
- validate_schema: Ontology consistency check
- ConstraintEvaluator: Expression and relation-effect evaluation
- EngineConfig: Move engine tunables
"""

from hexrules.core.schema import (
    NUMERIC_KINDS,
    AllOf,
    Allow,
    AnyOf,
    Block,
    CompareOp,
    Concept,
    ConceptBinding,
    ConceptRole,
    Constraint,
    ConstraintExpr,
    CrossCompare,
    EntityInstance,
    EntityRole,
    EntityType,
    EnumDefinition,
    IsNotType,
    IsType,
    ModifyOperation,
    ModifyProperty,
    Not,
    PathBudget,
    PropertyBinding,
    PropertyCompare,
    PropertyDefinition,
    PropertyKind,
    PropertyType,
    PropertyValue,
    Relation,
    RelationEffect,
    RelationTrigger,
    TokenId,
    TypeId,
)
from hexrules.core.registry import (
    ConceptRegistry,
    ConstraintRegistry,
    EntityTypeRegistry,
    OntologyRegistries,
    RelationRegistry,
    auto_constraint_for,
    sync_auto_constraints,
)
from hexrules.core.validator import (
    SchemaError,
    SchemaErrorCategory,
    SchemaValidation,
    SchemaValidator,
    validate_schema,
)
from hexrules.core.evaluator import (
    ConstraintEvaluator,
    EffectOutcome,
    Evaluation,
    EvaluationContext,
    ResolutionError,
    ValidationResult,
    apply_operation,
    compare_values,
)
from hexrules.core.config import EngineConfig

__all__ = [
    # Schema
    "TypeId",
    "TokenId",
    "EntityRole",
    "PropertyKind",
    "NUMERIC_KINDS",
    "PropertyType",
    "PropertyValue",
    "PropertyDefinition",
    "EnumDefinition",
    "EntityType",
    "EntityInstance",
    "ConceptRole",
    "Concept",
    "PropertyBinding",
    "ConceptBinding",
    "CompareOp",
    "PropertyCompare",
    "CrossCompare",
    "IsType",
    "IsNotType",
    "PathBudget",
    "AllOf",
    "AnyOf",
    "Not",
    "ConstraintExpr",
    "ModifyOperation",
    "ModifyProperty",
    "Block",
    "Allow",
    "RelationEffect",
    "RelationTrigger",
    "Relation",
    "Constraint",
    # Registries
    "EntityTypeRegistry",
    "ConceptRegistry",
    "RelationRegistry",
    "ConstraintRegistry",
    "OntologyRegistries",
    "auto_constraint_for",
    "sync_auto_constraints",
    # Validation
    "SchemaError",
    "SchemaErrorCategory",
    "SchemaValidation",
    "SchemaValidator",
    "validate_schema",
    # Evaluation
    "ConstraintEvaluator",
    "EvaluationContext",
    "Evaluation",
    "EffectOutcome",
    "ValidationResult",
    "ResolutionError",
    "apply_operation",
    "compare_values",
    # Config
    "EngineConfig",
]
