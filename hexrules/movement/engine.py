"""
Move Computation Engine
=======================

Computes, for one selected token, which positions it may move to and why
reachable-but-disallowed positions are blocked.

Key Design Principles:
1. Pure function of (board, registries, geometry): no state between calls
2. Best-budget search: a position is re-expanded only when reached with
   strictly more remaining budget, which terminates on cyclic grids without
   losing cheaper alternate paths
3. Out of range is not blocked: positions the budget cannot pay for are
   simply absent from the result
4. Never raises on inconsistent ontology data; failures become explanations
"""

from __future__ import annotations

from dataclasses import dataclass, field
import heapq
import itertools
from typing import Any, Optional

import networkx as nx

from hexrules.core.config import EngineConfig
from hexrules.core.evaluator import (
    ConstraintEvaluator,
    EvaluationContext,
    Number,
    ResolutionError,
    ValidationResult,
    apply_operation,
)
from hexrules.core.registry import OntologyRegistries
from hexrules.core.schema import (
    Allow,
    Block,
    Constraint,
    EntityInstance,
    ModifyProperty,
    Relation,
    RelationTrigger,
    TokenId,
    TypeId,
)
from hexrules.grid.hex import GridGeometry, HexPosition
from hexrules.movement.board import BoardState, TokenState


@dataclass
class ValidMoveSet:
    """
    Reachable and blocked positions for the selected token.

    Empty with ``for_entity = None`` when nothing is selected.
    """

    for_entity: Optional[TokenId] = None
    valid_positions: set[HexPosition] = field(default_factory=set)
    blocked_explanations: dict[HexPosition, list[ValidationResult]] = field(default_factory=dict)
    diagnostics: list[str] = field(default_factory=list)
    """Non-fatal notes about how the result was derived (e.g. budget choice)."""

    def is_valid_destination(self, position: HexPosition) -> bool:
        """Move-execution check: reject destinations not in the valid set."""
        return position in self.valid_positions

    def reasons_for(self, position: HexPosition) -> list[str]:
        return [r.explanation for r in self.blocked_explanations.get(position, [])]

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable form with positions in (q, r) order."""
        return {
            "for_entity": str(self.for_entity) if self.for_entity is not None else None,
            "valid_positions": [p.to_dict() for p in sorted(self.valid_positions)],
            "blocked": [
                {
                    "position": position.to_dict(),
                    "reasons": [r.to_dict() for r in self.blocked_explanations[position]],
                }
                for position in sorted(self.blocked_explanations)
            ],
            "diagnostics": list(self.diagnostics),
        }

    def __repr__(self) -> str:
        return (
            f"ValidMoveSet(for_entity={self.for_entity}, valid={len(self.valid_positions)}, "
            f"blocked={len(self.blocked_explanations)})"
        )


@dataclass(frozen=True)
class _Budget:
    """Where the traveler's movement budget came from."""

    amount: Number
    property_id: Optional[TypeId] = None
    name: str = "budget"


@dataclass
class _Plan:
    """Per-call data shared by every step of one search."""

    token: TokenState
    token_name: str
    relations: list[Relation]
    constraints: list[Constraint]
    token_roles: dict[TypeId, list[TypeId]]
    budget: _Budget
    diagnostics: list[str] = field(default_factory=list)


@dataclass
class _Step:
    """Outcome of stepping into one neighbour."""

    remaining: Number
    out_of_range: bool = False
    reasons: list[ValidationResult] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return bool(self.reasons)


class MoveEngine:
    """
    Valid-move computation over explicit, read-only inputs.

    Example
    -------
    >>> engine = MoveEngine(registries, HexGrid(map_radius=3))
    >>> moves = engine.compute_valid_moves(board)
    >>> moves.is_valid_destination(HexPosition(1, 0))
    True
    """

    def __init__(
        self,
        registries: OntologyRegistries,
        geometry: GridGeometry,
        config: Optional[EngineConfig] = None,
    ):
        self._registries = registries
        self._geometry = geometry
        self._config = config or EngineConfig()
        self._evaluator = ConstraintEvaluator(registries)

    @property
    def config(self) -> EngineConfig:
        return self._config

    def compute_valid_moves(self, board: BoardState) -> ValidMoveSet:
        """Compute the valid move set for ``board.selected``."""
        token = board.selected_token()
        if token is None:
            return ValidMoveSet()

        plan = self._plan(token)
        if not plan.relations and self._registries.constraints.is_empty():
            return self._flood_fill(board, token)

        return self._search(board, plan)

    # -------------------------------------------------------------------------
    # Planning
    # -------------------------------------------------------------------------

    def _plan(self, token: TokenState) -> _Plan:
        registries = self._registries
        token_type = registries.entity_types.get(token.instance.entity_type_id)
        diagnostics: list[str] = []

        relations: list[Relation] = []
        token_roles: dict[TypeId, list[TypeId]] = {}
        constraints: list[Constraint] = []

        # Tokens whose type is gone take no part in ontology evaluation.
        if token_type is not None:
            relations = [
                r for r in registries.relations.by_trigger(RelationTrigger.ON_ENTER)
                if registries.concepts.is_bound(token_type.id, r.concept_id, r.subject_role_id)
            ]
            for concept in registries.concepts.concepts:
                roles = registries.concepts.roles_of(token_type.id, concept.id)
                if roles:
                    token_roles[concept.id] = roles
            constraints = [
                c for c in registries.constraints.constraints if c.concept_id in token_roles
            ]

        return _Plan(
            token=token,
            token_name=token_type.name if token_type is not None else "Token",
            relations=relations,
            constraints=constraints,
            token_roles=token_roles,
            budget=self._determine_budget(token.instance, relations, diagnostics),
            diagnostics=diagnostics,
        )

    def _determine_budget(
        self,
        instance: EntityInstance,
        relations: list[Relation],
        diagnostics: list[str],
    ) -> _Budget:
        """
        Find the traveler's movement budget.

        1. The target property of an OnEnter subtract relation
        2. A property bound under the configured fallback name
        3. The configured permissive budget
        """
        found: list[tuple[Relation, _Budget]] = []
        for relation in relations:
            effect = relation.effect
            if not isinstance(effect, ModifyProperty) or not relation.is_subtract:
                continue
            budget = self._numeric_property(
                instance, relation.concept_id, relation.subject_role_id, effect.target_property
            )
            if budget is not None:
                found.append((relation, budget))

        if found:
            relation, budget = found[0]
            others = sorted({r.name for r, b in found[1:] if b.property_id != budget.property_id})
            if others:
                diagnostics.append(
                    f"Multiple subtract relations define a budget; using \"{budget.name}\" "
                    f"from relation \"{relation.name}\" and ignoring {others}"
                )
            return budget

        fallback_name = self._config.budget_property_name
        for binding in self._registries.concepts.bindings_for_type(instance.entity_type_id):
            if binding.property_for(fallback_name) is None:
                continue
            budget = self._numeric_property(
                instance, binding.concept_id, binding.concept_role_id, fallback_name
            )
            if budget is not None:
                diagnostics.append(
                    f"No subtract relation resolves a budget; using property \"{fallback_name}\""
                )
                return budget

        if relations:
            diagnostics.append("No budget property resolves; using the permissive default")
        return _Budget(amount=self._config.permissive_budget)

    def _numeric_property(
        self,
        instance: EntityInstance,
        concept_id: TypeId,
        role_id: TypeId,
        name: str,
    ) -> Optional[_Budget]:
        context = EvaluationContext(concept_id=concept_id, roles={role_id: instance})
        try:
            property_id = self._evaluator.resolve_property_id(instance, concept_id, role_id, name)
            value = self._evaluator.resolve_property(context, role_id, name)
        except ResolutionError:
            return None
        number = value.as_number()
        if number is None:
            return None
        return _Budget(amount=number, property_id=property_id, name=name)

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def _flood_fill(self, board: BoardState, token: TokenState) -> ValidMoveSet:
        """Unconstrained reachability: every in-bounds connected position."""
        graph = self._geometry.graph
        start = token.position

        valid: set[HexPosition] = set()
        if start in graph:
            in_bounds = graph.subgraph(n for n in graph.nodes if self._geometry.in_bounds(n))
            if start in in_bounds:
                valid = set(nx.node_connected_component(in_bounds, start))
        if self._config.include_origin:
            valid.add(start)
        else:
            valid.discard(start)

        return ValidMoveSet(for_entity=board.selected, valid_positions=valid)

    def _search(self, board: BoardState, plan: _Plan) -> ValidMoveSet:
        """Best-remaining-budget search from the token's position."""
        start = plan.token.position
        initial = plan.budget.amount

        best: dict[HexPosition, Number] = {start: initial}
        valid: set[HexPosition] = {start} if self._config.include_origin else set()
        blocked: dict[HexPosition, list[ValidationResult]] = {}

        counter = itertools.count()
        frontier: list[tuple[Number, int, HexPosition]] = [(-initial, next(counter), start)]

        while frontier:
            negative_budget, _, current = heapq.heappop(frontier)
            remaining = -negative_budget
            if remaining < best.get(current, remaining):
                continue  # superseded by a better arrival
            if remaining < 0:
                continue

            for neighbor in self._geometry.neighbors(current):
                if neighbor == start or not self._geometry.in_bounds(neighbor):
                    continue

                step = self._evaluate_step(plan, board.tile_at(neighbor), neighbor, remaining)

                if step.out_of_range:
                    if step.reasons and neighbor not in valid:
                        _merge(blocked, neighbor, step.reasons)
                    continue

                if step.blocked:
                    if neighbor not in valid:
                        _merge(blocked, neighbor, step.reasons)
                    continue

                # Steps may refund budget; capping at the starting budget keeps
                # the number of strict improvements finite on cyclic grids.
                arriving = min(step.remaining, initial)
                previous = best.get(neighbor)
                if previous is not None and previous >= arriving:
                    continue

                best[neighbor] = arriving
                valid.add(neighbor)
                blocked.pop(neighbor, None)
                heapq.heappush(frontier, (-arriving, next(counter), neighbor))

        return ValidMoveSet(
            for_entity=board.selected,
            valid_positions=valid,
            blocked_explanations=blocked,
            diagnostics=list(plan.diagnostics),
        )

    def _evaluate_step(
        self,
        plan: _Plan,
        tile: Optional[EntityInstance],
        position: HexPosition,
        remaining: Number,
    ) -> _Step:
        """Evaluate entering ``position`` with ``remaining`` budget."""
        registries = self._registries
        tile_type = registries.entity_types.get(tile.entity_type_id) if tile is not None else None
        if tile is None or tile_type is None:
            # Empty or untyped positions trigger nothing.
            return _Step(remaining=remaining)

        applicable = [
            r for r in plan.relations
            if registries.concepts.is_bound(tile_type.id, r.concept_id, r.object_role_id)
        ]

        traveler = plan.token.instance
        new_budget = remaining
        reasons: list[ValidationResult] = []
        spent_by: list[Relation] = []

        for relation in applicable:
            effect = relation.effect
            if not isinstance(effect, ModifyProperty):
                continue
            context = self._context(relation, traveler, tile)
            outcome = self._evaluator.apply_effect(relation, context)
            if outcome.failures:
                reasons.append(self._result(
                    relation,
                    f"{plan.token_name} cannot enter {tile_type.name} at {_fmt(position)}: "
                    f"{relation.name} could not be applied ({'; '.join(outcome.failures)})",
                ))
                continue

            spends_budget = (
                plan.budget.property_id is not None
                and outcome.target_property_id == plan.budget.property_id
                and outcome.operand is not None
            )
            if spends_budget:
                new_budget = apply_operation(effect.operation, new_budget, outcome.operand)
                spent_by.append(relation)
            elif outcome.subject is not None:
                traveler = outcome.subject

        if new_budget < 0:
            step = _Step(remaining=new_budget, out_of_range=True)
            if self._config.explain_out_of_range and spent_by:
                step.reasons.append(self._result(
                    spent_by[0],
                    f"{plan.token_name} cannot reach {_fmt(position)}: path cost "
                    f"{plan.budget.amount - new_budget} exceeds {plan.budget.name} of "
                    f"{plan.budget.amount}",
                ))
            return step

        path_cost = plan.budget.amount - new_budget
        blocks: dict[TypeId, list[ValidationResult]] = {}
        allowed: set[TypeId] = set()

        for relation in applicable:
            effect = relation.effect
            if not isinstance(effect, (Block, Allow)):
                continue
            context = self._context(relation, traveler, tile, path_cost)
            outcome = self._evaluator.apply_effect(relation, context)
            if isinstance(effect, Allow):
                if outcome.fired:
                    allowed.add(relation.concept_id)
                continue
            if outcome.fired:
                detail = f" ({'; '.join(outcome.failures)})" if outcome.failures else ""
                blocks.setdefault(relation.concept_id, []).append(self._result(
                    relation,
                    f"{plan.token_name} cannot enter {tile_type.name} at {_fmt(position)}: "
                    f"{relation.name} blocks entry{detail}",
                ))

        for concept_id, concept_blocks in blocks.items():
            if concept_id not in allowed:
                reasons.extend(concept_blocks)

        for constraint in plan.constraints:
            tile_roles = registries.concepts.roles_of(tile_type.id, constraint.concept_id)
            if not tile_roles:
                continue
            roles = {role_id: traveler for role_id in plan.token_roles[constraint.concept_id]}
            roles.update({role_id: tile for role_id in tile_roles})
            context = EvaluationContext(
                concept_id=constraint.concept_id, roles=roles, path_cost=path_cost
            )
            outcome = self._evaluator.check(constraint.expression, context)
            if not outcome.value:
                detail = f" ({'; '.join(outcome.failures)})" if outcome.failures else ""
                reasons.append(ValidationResult(
                    constraint_id=constraint.id,
                    constraint_name=constraint.name,
                    satisfied=False,
                    explanation=(
                        f"{plan.token_name} cannot enter {_fmt(position)}: "
                        f"constraint \"{constraint.name}\" not satisfied{detail}"
                    ),
                ))

        return _Step(remaining=new_budget, reasons=reasons)

    def _context(
        self,
        relation: Relation,
        traveler: EntityInstance,
        tile: EntityInstance,
        path_cost: Optional[Number] = None,
    ) -> EvaluationContext:
        return EvaluationContext(
            concept_id=relation.concept_id,
            roles={relation.subject_role_id: traveler, relation.object_role_id: tile},
            path_cost=path_cost,
        )

    def _result(self, relation: Relation, explanation: str) -> ValidationResult:
        """Create a failed validation result attributed to a relation."""
        return ValidationResult(
            constraint_id=relation.id,
            constraint_name=relation.name,
            satisfied=False,
            explanation=explanation,
        )

    def __repr__(self) -> str:
        return f"MoveEngine(geometry={self._geometry!r}, config={self._config!r})"


def _merge(
    blocked: dict[HexPosition, list[ValidationResult]],
    position: HexPosition,
    reasons: list[ValidationResult],
) -> None:
    """Append reasons for a position, skipping duplicates."""
    existing = blocked.setdefault(position, [])
    seen = {(r.constraint_id, r.explanation) for r in existing}
    for reason in reasons:
        key = (reason.constraint_id, reason.explanation)
        if key not in seen:
            seen.add(key)
            existing.append(reason)


def _fmt(position: HexPosition) -> str:
    return f"({position.q}, {position.r})"


def compute_valid_moves(
    selected_token: Optional[TokenId],
    board: BoardState,
    registries: OntologyRegistries,
    geometry: GridGeometry,
    config: Optional[EngineConfig] = None,
) -> ValidMoveSet:
    """Compute the valid move set for ``selected_token`` on ``board``."""
    engine = MoveEngine(registries, geometry, config)
    return engine.compute_valid_moves(board.with_selection(selected_token))
