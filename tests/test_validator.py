"""
Tests for the Schema Validator
==============================

Each error category, the RoleMismatch round trip, and the guarantee that
inconsistent data is reported rather than raised.
"""

from uuid import uuid4

from hexrules.core import (
    AnyOf,
    Block,
    CompareOp,
    Concept,
    ConceptBinding,
    ConceptRole,
    Constraint,
    CrossCompare,
    EntityRole,
    EntityType,
    EnumDefinition,
    IsType,
    ModifyOperation,
    ModifyProperty,
    PathBudget,
    PropertyBinding,
    PropertyCompare,
    PropertyDefinition,
    PropertyKind,
    PropertyType,
    PropertyValue,
    Relation,
    SchemaErrorCategory,
    SchemaValidator,
    sync_auto_constraints,
    validate_schema,
)


def categories(validation):
    return [e.category for e in validation.errors]


class TestValidOntology:
    """The shared fixture ontology is consistent."""

    def test_fixture_is_valid(self, world):
        validation = validate_schema(world.registries)
        assert validation.is_valid
        assert validation.errors == []

    def test_auto_constraints_are_valid(self, world):
        sync_auto_constraints(world.registries.relations, world.registries.constraints)
        assert validate_schema(world.registries).is_valid

    def test_validator_class_matches_function(self, world):
        assert SchemaValidator(world.registries).validate() == validate_schema(world.registries)


class TestRoleMismatch:
    """A token bound into a tile-only role."""

    def test_exactly_one_error_and_removal_restores_validity(self, world):
        offending = ConceptBinding(
            entity_type_id=world.infantry.id,
            concept_id=world.motion.id,
            concept_role_id=world.terrain.id,
        )
        world.registries.concepts.add_binding(offending)

        validation = validate_schema(world.registries)
        assert not validation.is_valid
        assert categories(validation) == [SchemaErrorCategory.ROLE_MISMATCH]
        assert validation.errors[0].source_id == offending.id

        world.registries.concepts.remove_binding(offending.id)

        validation = validate_schema(world.registries)
        assert validation.is_valid
        assert validation.errors == []


class TestDanglingReferences:
    """References to definitions that do not exist."""

    def test_binding_to_unknown_entity_type(self, world):
        world.registries.concepts.add_binding(ConceptBinding(
            entity_type_id=uuid4(), concept_id=world.motion.id, concept_role_id=world.terrain.id,
        ))
        assert categories(validate_schema(world.registries)) == [
            SchemaErrorCategory.DANGLING_REFERENCE
        ]

    def test_binding_to_unknown_role(self, world):
        world.registries.concepts.add_binding(ConceptBinding(
            entity_type_id=world.plains.id, concept_id=world.motion.id, concept_role_id=uuid4(),
        ))
        assert categories(validate_schema(world.registries)) == [
            SchemaErrorCategory.DANGLING_REFERENCE
        ]

    def test_relation_to_unknown_concept(self, world):
        relation = Relation(
            name="Ghost",
            concept_id=uuid4(),
            subject_role_id=world.traveler.id,
            object_role_id=world.terrain.id,
            effect=Block(),
        )
        world.registries.relations.add(relation)

        validation = validate_schema(world.registries)
        assert categories(validation) == [SchemaErrorCategory.DANGLING_REFERENCE]
        assert validation.errors[0].source_id == relation.id

    def test_constraint_with_unknown_type_check(self, world):
        world.registries.constraints.add(Constraint(
            name="Only Forest",
            concept_id=world.motion.id,
            expression=IsType(role_id=world.terrain.id, entity_type_id=uuid4()),
        ))
        assert categories(validate_schema(world.registries)) == [
            SchemaErrorCategory.DANGLING_REFERENCE
        ]

    def test_constraint_with_unknown_relation(self, world):
        world.registries.constraints.add(Constraint(
            name="[auto] budget >= 0",
            concept_id=world.motion.id,
            relation_id=uuid4(),
            expression=PropertyCompare(
                role_id=world.traveler.id,
                property_name="budget",
                operator=CompareOp.GE,
                value=PropertyValue.integer(0),
            ),
            auto_generated=True,
        ))
        assert categories(validate_schema(world.registries)) == [
            SchemaErrorCategory.DANGLING_REFERENCE
        ]

    def test_enum_property_with_unknown_enum(self, world):
        world.registries.entity_types.add(EntityType(
            name="Forest",
            role=EntityRole.BOARD_POSITION,
            property_schema=(PropertyDefinition(
                name="density",
                property_type=PropertyType(kind=PropertyKind.ENUM, enum_id=uuid4()),
            ),),
        ))
        assert categories(validate_schema(world.registries)) == [
            SchemaErrorCategory.DANGLING_REFERENCE
        ]

    def test_enum_property_with_registered_enum(self, world):
        density = EnumDefinition(name="Density", options=("sparse", "dense"))
        world.registries.entity_types.enum_definitions.add(density)
        world.registries.entity_types.add(EntityType(
            name="Forest",
            role=EntityRole.BOARD_POSITION,
            property_schema=(PropertyDefinition(
                name="density",
                property_type=PropertyType(kind=PropertyKind.ENUM, enum_id=density.id),
                default_value=PropertyValue.enum("sparse"),
            ),),
        ))
        assert validate_schema(world.registries).is_valid


class TestPropertyMismatch:
    """Bound properties that are missing or used with the wrong type."""

    def test_binding_to_missing_property(self, world):
        world.registries.concepts.add_binding(ConceptBinding(
            entity_type_id=world.wall.id,
            concept_id=world.motion.id,
            concept_role_id=world.terrain.id,
            property_bindings=(PropertyBinding(property_id=uuid4(), concept_local_name="cost"),),
        ))
        assert categories(validate_schema(world.registries)) == [
            SchemaErrorCategory.PROPERTY_MISMATCH
        ]

    def test_ordering_a_string_property(self, world):
        banner = EntityType(
            name="Banner",
            role=EntityRole.BOARD_POSITION,
            property_schema=(PropertyDefinition(
                name="label", property_type=PropertyType(kind=PropertyKind.STRING)
            ),),
        )
        world.registries.entity_types.add(banner)
        world.registries.concepts.add_binding(ConceptBinding(
            entity_type_id=banner.id,
            concept_id=world.obstruction.id,
            concept_role_id=world.obstacle.id,
            property_bindings=(
                PropertyBinding(property_id=banner.property_schema[0].id, concept_local_name="label"),
            ),
        ))
        world.registries.constraints.add(Constraint(
            name="Label Order",
            concept_id=world.obstruction.id,
            expression=PropertyCompare(
                role_id=world.obstacle.id,
                property_name="label",
                operator=CompareOp.LT,
                value=PropertyValue.string("m"),
            ),
        ))

        validation = validate_schema(world.registries)
        assert SchemaErrorCategory.PROPERTY_MISMATCH in categories(validation)
        assert set(categories(validation)) == {SchemaErrorCategory.PROPERTY_MISMATCH}

    def test_literal_kind_incompatible_with_property(self, world):
        world.registries.constraints.add(Constraint(
            name="Cost Is Text",
            concept_id=world.motion.id,
            expression=PropertyCompare(
                role_id=world.terrain.id,
                property_name="cost",
                operator=CompareOp.EQ,
                value=PropertyValue.string("cheap"),
            ),
        ))
        assert categories(validate_schema(world.registries)) == [
            SchemaErrorCategory.PROPERTY_MISMATCH,
            SchemaErrorCategory.PROPERTY_MISMATCH,
        ]

    def test_int_and_float_are_comparable(self, world):
        world.registries.constraints.add(Constraint(
            name="Enough Budget",
            concept_id=world.motion.id,
            expression=CrossCompare(
                left_role_id=world.traveler.id,
                left_property="budget",
                operator=CompareOp.GE,
                right_role_id=world.terrain.id,
                right_property="cost",
            ),
        ))
        assert validate_schema(world.registries).is_valid


class TestInvalidExpression:
    """Expressions that cannot resolve through any binding."""

    def test_unbound_property_name(self, world):
        constraint = Constraint(
            name="Speed",
            concept_id=world.motion.id,
            expression=PropertyCompare(
                role_id=world.traveler.id,
                property_name="speed",
                operator=CompareOp.GT,
                value=PropertyValue.integer(1),
            ),
        )
        world.registries.constraints.add(constraint)

        validation = validate_schema(world.registries)
        assert categories(validation) == [SchemaErrorCategory.INVALID_EXPRESSION]
        assert validation.for_source(constraint.id) == validation.errors

    def test_role_outside_concept_inside_any(self, world):
        world.registries.constraints.add(Constraint(
            name="Either",
            concept_id=world.motion.id,
            expression=AnyOf(exprs=(
                IsType(role_id=world.terrain.id, entity_type_id=world.plains.id),
                IsType(role_id=world.obstacle.id, entity_type_id=world.wall.id),
            )),
        ))
        assert categories(validate_schema(world.registries)) == [
            SchemaErrorCategory.INVALID_EXPRESSION
        ]

    def test_relation_with_same_subject_and_object(self, world):
        world.registries.relations.add(Relation(
            name="Self",
            concept_id=world.obstruction.id,
            subject_role_id=world.mover.id,
            object_role_id=world.mover.id,
            effect=Block(),
        ))
        assert categories(validate_schema(world.registries)) == [
            SchemaErrorCategory.INVALID_EXPRESSION
        ]

    def test_modify_property_with_unbound_source(self, world):
        world.registries.relations.add(Relation(
            name="Fatigue",
            concept_id=world.motion.id,
            subject_role_id=world.traveler.id,
            object_role_id=world.terrain.id,
            effect=ModifyProperty(
                target_property="budget",
                source_property="fatigue",
                operation=ModifyOperation.SUBTRACT,
            ),
        ))
        assert categories(validate_schema(world.registries)) == [
            SchemaErrorCategory.INVALID_EXPRESSION
        ]

    def test_path_budget_checks_both_properties(self, world):
        world.registries.constraints.add(Constraint(
            name="Within Budget",
            concept_id=world.motion.id,
            expression=PathBudget(
                concept_id=world.motion.id,
                cost_property="cost",
                cost_role_id=world.terrain.id,
                budget_property="budget",
                budget_role_id=world.traveler.id,
            ),
        ))
        assert validate_schema(world.registries).is_valid


class TestMissingBinding:
    """Concepts nothing is bound to."""

    def test_concept_without_bindings(self, world):
        lonely = Concept(
            name="Trade",
            role_labels=(
                ConceptRole(name="buyer", allowed_entity_roles=(EntityRole.TOKEN,)),
                ConceptRole(name="seller", allowed_entity_roles=(EntityRole.TOKEN,)),
            ),
        )
        world.registries.concepts.add_concept(lonely)

        validation = validate_schema(world.registries)
        assert categories(validation) == [SchemaErrorCategory.MISSING_BINDING] * 2
        assert all(error.source_id == lonely.id for error in validation.errors)

    def test_half_bound_concept(self, world):
        bound = ConceptRole(name="a", allowed_entity_roles=(EntityRole.TOKEN,))
        unbound = ConceptRole(name="b", allowed_entity_roles=(EntityRole.BOARD_POSITION,))
        half = Concept(name="Half", role_labels=(bound, unbound))
        world.registries.concepts.add_concept(half)
        world.registries.concepts.add_binding(ConceptBinding(
            entity_type_id=world.infantry.id,
            concept_id=half.id,
            concept_role_id=bound.id,
        ))

        validation = validate_schema(world.registries)
        assert categories(validation) == [SchemaErrorCategory.MISSING_BINDING]
        assert validation.errors[0].source_id == half.id
        assert '"b"' in validation.errors[0].message

    def test_concept_without_roles_is_not_flagged(self, world):
        world.registries.concepts.add_concept(Concept(name="Placeholder"))
        assert validate_schema(world.registries).is_valid


class TestReporting:
    """Validation output is data, in a stable order."""

    def test_errors_follow_check_order(self, world):
        world.registries.concepts.add_concept(Concept(
            name="Trade",
            role_labels=(ConceptRole(name="buyer", allowed_entity_roles=(EntityRole.TOKEN,)),),
        ))
        world.registries.concepts.add_binding(ConceptBinding(
            entity_type_id=world.infantry.id,
            concept_id=world.motion.id,
            concept_role_id=world.terrain.id,
        ))

        assert categories(validate_schema(world.registries)) == [
            SchemaErrorCategory.ROLE_MISMATCH,
            SchemaErrorCategory.MISSING_BINDING,
        ]

    def test_to_dict(self, world):
        world.registries.concepts.add_concept(Concept(
            name="Trade",
            role_labels=(ConceptRole(name="buyer", allowed_entity_roles=(EntityRole.TOKEN,)),),
        ))
        payload = validate_schema(world.registries).to_dict()

        assert payload["is_valid"] is False
        assert payload["error_count"] == 1
        assert payload["errors"][0]["category"] == "missing_binding"
