"""
Constraint Evaluator
====================

Evaluates constraint expressions and applies relation effects against one
concrete interaction: a mapping from concept role to the entity instance
filling it.

Failure Policy:
References that cannot be resolved (unbound role, missing binding,
unregistered entity type, kind mismatch) never escape as exceptions. They
collapse the whole expression to a conservative default (``False`` for
predicates, ``True`` for block conditions) and the reason is returned as
data alongside the value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from hexrules.core.registry import OntologyRegistries
from hexrules.core.schema import (
    Allow,
    AllOf,
    AnyOf,
    Block,
    CompareOp,
    Constraint,
    CrossCompare,
    EntityInstance,
    IsNotType,
    IsType,
    ModifyOperation,
    ModifyProperty,
    Not,
    PathBudget,
    PropertyCompare,
    PropertyKind,
    PropertyValue,
    Relation,
    TypeId,
)


Number = Union[int, float]


class ResolutionError(ValueError):
    """A reference inside an expression could not be resolved."""


@dataclass(frozen=True)
class EvaluationContext:
    """
    One concrete interaction to evaluate against.

    Attributes
    ----------
    concept_id : TypeId
        Concept whose bindings resolve concept-local property names
    roles : dict
        Concept role id -> entity instance filling that role
    path_cost : int or float, optional
        Cost accumulated along the current search path; only set by the
        move engine
    """

    concept_id: TypeId
    roles: dict[TypeId, EntityInstance] = field(default_factory=dict)
    path_cost: Optional[Number] = None

    def entity(self, role_id: TypeId) -> EntityInstance:
        try:
            return self.roles[role_id]
        except KeyError as exc:
            raise ResolutionError(f"role {role_id} is not bound in this interaction") from exc

    def with_role(self, role_id: TypeId, instance: EntityInstance) -> "EvaluationContext":
        roles = dict(self.roles)
        roles[role_id] = instance
        return EvaluationContext(concept_id=self.concept_id, roles=roles, path_cost=self.path_cost)


@dataclass(frozen=True)
class Evaluation:
    """Expression value plus any resolution failures met on the way."""

    value: bool
    failures: tuple[str, ...] = ()

    @property
    def resolved(self) -> bool:
        return not self.failures


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of evaluating one constraint or relation for one position."""

    constraint_id: TypeId
    constraint_name: str
    satisfied: bool
    explanation: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "constraint_id": str(self.constraint_id),
            "constraint_name": self.constraint_name,
            "satisfied": self.satisfied,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class EffectOutcome:
    """
    Result of applying one relation effect.

    For ModifyProperty effects ``subject`` is the subject instance with the
    modified target property and ``previous``/``current`` hold the numeric
    values before and after. For Block/Allow effects ``fired`` tells whether
    the effect applies.
    """

    relation_id: TypeId
    fired: bool
    subject: Optional[EntityInstance] = None
    target_property_id: Optional[TypeId] = None
    previous: Optional[Number] = None
    current: Optional[Number] = None
    operand: Optional[Number] = None
    failures: tuple[str, ...] = ()


class ConstraintEvaluator:
    """
    Pure evaluator over explicit registries.

    Example
    -------
    >>> evaluator = ConstraintEvaluator(registries)
    >>> ctx = EvaluationContext(concept_id=motion.id, roles={traveler.id: token, terrain.id: tile})
    >>> evaluator.evaluate(IsType(role_id=terrain.id, entity_type_id=water.id), ctx)
    False
    """

    def __init__(self, registries: OntologyRegistries):
        self._registries = registries

    # -------------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------------

    def check(self, expr: Any, context: EvaluationContext, on_failure: bool = False) -> Evaluation:
        """
        Evaluate ``expr``; unresolved references yield ``on_failure``.
        """
        try:
            return Evaluation(value=self._eval(expr, context))
        except ResolutionError as exc:
            return Evaluation(value=on_failure, failures=(str(exc),))

    def evaluate(self, expr: Any, context: EvaluationContext) -> bool:
        """Predicate context: unresolvable expressions are false."""
        return self.check(expr, context, on_failure=False).value

    def evaluate_block(self, expr: Any, context: EvaluationContext) -> bool:
        """Block context: unresolvable conditions block."""
        return self.check(expr, context, on_failure=True).value

    def evaluate_constraint(
        self,
        constraint: Constraint,
        context: EvaluationContext,
    ) -> ValidationResult:
        """Evaluate a named constraint into an explained result."""
        outcome = self.check(constraint.expression, context, on_failure=False)
        if outcome.failures:
            explanation = (
                f"Constraint \"{constraint.name}\" could not be evaluated: "
                + "; ".join(outcome.failures)
            )
        elif outcome.value:
            explanation = f"Constraint \"{constraint.name}\" is satisfied"
        else:
            explanation = f"Constraint \"{constraint.name}\" is not satisfied"
        return ValidationResult(
            constraint_id=constraint.id,
            constraint_name=constraint.name,
            satisfied=outcome.value,
            explanation=explanation,
        )

    def _eval(self, expr: Any, context: EvaluationContext) -> bool:
        if isinstance(expr, PropertyCompare):
            left = self.resolve_property(context, expr.role_id, expr.property_name)
            return compare_values(left, expr.operator, expr.value)

        if isinstance(expr, CrossCompare):
            left = self.resolve_property(context, expr.left_role_id, expr.left_property)
            right = self.resolve_property(context, expr.right_role_id, expr.right_property)
            return compare_values(left, expr.operator, right)

        if isinstance(expr, IsType):
            return context.entity(expr.role_id).entity_type_id == expr.entity_type_id

        if isinstance(expr, IsNotType):
            return context.entity(expr.role_id).entity_type_id != expr.entity_type_id

        if isinstance(expr, PathBudget):
            if context.path_cost is None:
                raise ResolutionError("path budget is only defined inside a move search")
            budget_context = EvaluationContext(
                concept_id=expr.concept_id,
                roles=context.roles,
                path_cost=context.path_cost,
            )
            budget = self.resolve_property(budget_context, expr.budget_role_id, expr.budget_property)
            number = budget.as_number()
            if number is None:
                raise ResolutionError(
                    f"budget property \"{expr.budget_property}\" is {budget.kind.value}, not numeric"
                )
            return context.path_cost <= number

        if isinstance(expr, AllOf):
            return all(self._eval(sub, context) for sub in expr.exprs)

        if isinstance(expr, AnyOf):
            return any(self._eval(sub, context) for sub in expr.exprs)

        if isinstance(expr, Not):
            return not self._eval(expr.expr, context)

        raise TypeError(f"Unknown constraint expression: {type(expr).__name__}")

    # -------------------------------------------------------------------------
    # Property resolution
    # -------------------------------------------------------------------------

    def resolve_property_id(
        self,
        instance: EntityInstance,
        concept_id: TypeId,
        role_id: TypeId,
        concept_local_name: str,
    ) -> TypeId:
        """Map a concept-local name to the instance type's property id."""
        entity_type = self._registries.entity_types.get(instance.entity_type_id)
        if entity_type is None:
            raise ResolutionError(
                f"entity type {instance.entity_type_id} is not registered"
            )

        bindings = self._registries.concepts.binding_for(entity_type.id, concept_id, role_id)
        if not bindings:
            raise ResolutionError(
                f"\"{entity_type.name}\" is not bound to role {role_id} of concept {concept_id}"
            )

        for binding in bindings:
            property_id = binding.property_for(concept_local_name)
            if property_id is not None:
                return property_id

        raise ResolutionError(
            f"\"{entity_type.name}\" has no property bound as \"{concept_local_name}\""
        )

    def resolve_property(
        self,
        context: EvaluationContext,
        role_id: TypeId,
        concept_local_name: str,
    ) -> PropertyValue:
        """Concrete value of ``role.concept_local_name`` in this interaction."""
        instance = context.entity(role_id)
        property_id = self.resolve_property_id(
            instance, context.concept_id, role_id, concept_local_name
        )

        value = instance.properties.get(property_id)
        if value is not None:
            return value

        entity_type = self._registries.entity_types.get(instance.entity_type_id)
        definition = entity_type.get_property(property_id) if entity_type else None
        if definition is None or definition.default_value is None:
            raise ResolutionError(
                f"property \"{concept_local_name}\" ({property_id}) does not exist on its entity type"
            )
        return definition.default_value

    # -------------------------------------------------------------------------
    # Relation effects
    # -------------------------------------------------------------------------

    def apply_effect(self, relation: Relation, context: EvaluationContext) -> EffectOutcome:
        """
        Apply one relation effect to the interaction.

        A ModifyProperty that cannot resolve leaves the subject untouched and
        reports the failure; a Block whose condition cannot resolve fires; an
        Allow whose condition cannot resolve does not.
        """
        effect = relation.effect

        if isinstance(effect, ModifyProperty):
            try:
                subject = context.entity(relation.subject_role_id)
                target_id = self.resolve_property_id(
                    subject, relation.concept_id, relation.subject_role_id, effect.target_property
                )
                current = _numeric(
                    self.resolve_property(context, relation.subject_role_id, effect.target_property),
                    effect.target_property,
                )
                operand = _numeric(
                    self.resolve_property(context, relation.object_role_id, effect.source_property),
                    effect.source_property,
                )
            except ResolutionError as exc:
                return EffectOutcome(relation_id=relation.id, fired=False, failures=(str(exc),))

            result = apply_operation(effect.operation, current, operand)
            modified = subject.with_property(target_id, self._wrap_number(result, subject, target_id))
            return EffectOutcome(
                relation_id=relation.id,
                fired=True,
                subject=modified,
                target_property_id=target_id,
                previous=current,
                current=result,
                operand=operand,
            )

        if isinstance(effect, Block):
            if effect.condition is None:
                return EffectOutcome(relation_id=relation.id, fired=True)
            outcome = self.check(effect.condition, context, on_failure=True)
            return EffectOutcome(
                relation_id=relation.id, fired=outcome.value, failures=outcome.failures
            )

        if isinstance(effect, Allow):
            if effect.condition is None:
                return EffectOutcome(relation_id=relation.id, fired=True)
            outcome = self.check(effect.condition, context, on_failure=False)
            return EffectOutcome(
                relation_id=relation.id, fired=outcome.value, failures=outcome.failures
            )

        raise TypeError(f"Unknown relation effect: {type(effect).__name__}")

    def _wrap_number(
        self,
        number: Number,
        subject: EntityInstance,
        property_id: TypeId,
    ) -> PropertyValue:
        """Wrap a number in the kind the target property declares."""
        existing = subject.properties.get(property_id)
        kind = existing.kind if existing is not None else None
        if kind is None:
            entity_type = self._registries.entity_types.get(subject.entity_type_id)
            definition = entity_type.get_property(property_id) if entity_type else None
            kind = definition.property_type.kind if definition else None

        if kind == PropertyKind.INT and float(number).is_integer():
            return PropertyValue.integer(int(number))
        return PropertyValue.floating(float(number))


# =============================================================================
# Value helpers
# =============================================================================


def compare_values(left: PropertyValue, op: CompareOp, right: PropertyValue) -> bool:
    """
    Compare two property values.

    Numeric kinds compare by value across int/float. Ordering operators on
    non-numeric values, and any comparison between different non-numeric
    kinds, are resolution failures.
    """
    if left.is_numeric and right.is_numeric:
        a, b = left.value, right.value
    elif op.is_ordering:
        raise ResolutionError(
            f"operator {op.value} is undefined for {left.kind.value}/{right.kind.value} values"
        )
    elif left.kind != right.kind:
        raise ResolutionError(
            f"cannot compare {left.kind.value} with {right.kind.value}"
        )
    else:
        a, b = left.value, right.value

    if op == CompareOp.EQ:
        return a == b
    if op == CompareOp.NE:
        return a != b
    if op == CompareOp.LT:
        return a < b  # type: ignore[operator]
    if op == CompareOp.LE:
        return a <= b  # type: ignore[operator]
    if op == CompareOp.GT:
        return a > b  # type: ignore[operator]
    if op == CompareOp.GE:
        return a >= b  # type: ignore[operator]
    raise TypeError(f"Unknown compare operator: {op!r}")


def apply_operation(op: ModifyOperation, current: Number, operand: Number) -> Number:
    """Combine two numbers; ints stay ints unless a float is involved."""
    if op == ModifyOperation.ADD:
        return current + operand
    if op == ModifyOperation.SUBTRACT:
        return current - operand
    if op == ModifyOperation.MULTIPLY:
        return current * operand
    if op == ModifyOperation.MIN:
        return min(current, operand)
    if op == ModifyOperation.MAX:
        return max(current, operand)
    raise TypeError(f"Unknown modify operation: {op!r}")


def _numeric(value: PropertyValue, name: str) -> Number:
    number = value.as_number()
    if number is None:
        raise ResolutionError(f"property \"{name}\" is {value.kind.value}, not numeric")
    return number
