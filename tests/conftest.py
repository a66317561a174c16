"""
Shared fixtures: a small "Motion" ontology.

    Infantry (token)      --traveler-->  Motion  <--terrain--  Plains, Water (tiles)
    Infantry (token)      --mover----->  Obstruction <--obstacle-- Wall (tile)

Infantry binds its ``movement`` property as ``budget``; terrain tiles bind
``cost``. "Terrain Cost" subtracts the terrain cost from the budget on entry
and "Walls Stop Movement" blocks every wall.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional
from uuid import UUID, uuid4

import pytest

from hexrules.core import (
    Block,
    Concept,
    ConceptBinding,
    ConceptRole,
    EntityInstance,
    EntityRole,
    EntityType,
    ModifyOperation,
    ModifyProperty,
    OntologyRegistries,
    PropertyBinding,
    PropertyDefinition,
    PropertyKind,
    PropertyType,
    PropertyValue,
    Relation,
    RelationTrigger,
)
from hexrules.grid import HexPosition
from hexrules.movement import BoardState, TokenState


def int_property(name: str, default: int) -> PropertyDefinition:
    return PropertyDefinition(
        name=name,
        property_type=PropertyType(kind=PropertyKind.INT),
        default_value=PropertyValue.integer(default),
    )


@dataclass
class MotionWorld:
    """Registries plus handles to every definition in them."""

    registries: OntologyRegistries
    infantry: EntityType
    plains: EntityType
    water: EntityType
    wall: EntityType
    motion: Concept
    traveler: ConceptRole
    terrain: ConceptRole
    obstruction: Concept
    mover: ConceptRole
    obstacle: ConceptRole
    terrain_cost: Relation
    walls_block: Relation
    token_id: UUID = field(default_factory=uuid4)

    @property
    def movement_id(self):
        return self.infantry.property_schema[0].id

    def cost_id(self, tile_type: EntityType):
        return tile_type.property_schema[0].id

    def tile(self, tile_type: EntityType, cost: Optional[int] = None) -> EntityInstance:
        if cost is None:
            return tile_type.instantiate()
        return tile_type.instantiate({self.cost_id(tile_type): PropertyValue.integer(cost)})

    def token(self, budget: int) -> EntityInstance:
        return self.infantry.instantiate({self.movement_id: PropertyValue.integer(budget)})

    def board(
        self,
        tiles: dict[HexPosition, EntityInstance],
        start: HexPosition,
        budget: int,
    ) -> BoardState:
        return BoardState(
            tiles=tiles,
            tokens={self.token_id: TokenState(position=start, instance=self.token(budget))},
            selected=self.token_id,
        )

    def uniform_board(
        self,
        positions: Iterable[HexPosition],
        start: HexPosition,
        budget: int,
        cost: int,
    ) -> BoardState:
        tiles = {p: self.tile(self.plains, cost) for p in positions}
        return self.board(tiles, start, budget)


def build_motion_world() -> MotionWorld:
    infantry = EntityType(
        name="Infantry", role=EntityRole.TOKEN, property_schema=(int_property("movement", 5),)
    )
    plains = EntityType(
        name="Plains", role=EntityRole.BOARD_POSITION, property_schema=(int_property("cost", 1),)
    )
    water = EntityType(
        name="Water", role=EntityRole.BOARD_POSITION, property_schema=(int_property("cost", 3),)
    )
    wall = EntityType(
        name="Wall", role=EntityRole.BOARD_POSITION, property_schema=(int_property("height", 2),)
    )

    traveler = ConceptRole(name="traveler", allowed_entity_roles=(EntityRole.TOKEN,))
    terrain = ConceptRole(name="terrain", allowed_entity_roles=(EntityRole.BOARD_POSITION,))
    motion = Concept(
        name="Motion",
        description="Things moving across terrain",
        role_labels=(traveler, terrain),
    )

    mover = ConceptRole(name="mover", allowed_entity_roles=(EntityRole.TOKEN,))
    obstacle = ConceptRole(name="obstacle", allowed_entity_roles=(EntityRole.BOARD_POSITION,))
    obstruction = Concept(name="Obstruction", role_labels=(mover, obstacle))

    registries = OntologyRegistries()
    for entity_type in (infantry, plains, water, wall):
        registries.entity_types.add(entity_type)
    registries.concepts.add_concept(motion)
    registries.concepts.add_concept(obstruction)

    registries.concepts.add_binding(ConceptBinding(
        entity_type_id=infantry.id,
        concept_id=motion.id,
        concept_role_id=traveler.id,
        property_bindings=(
            PropertyBinding(property_id=infantry.property_schema[0].id, concept_local_name="budget"),
        ),
    ))
    for tile_type in (plains, water):
        registries.concepts.add_binding(ConceptBinding(
            entity_type_id=tile_type.id,
            concept_id=motion.id,
            concept_role_id=terrain.id,
            property_bindings=(
                PropertyBinding(property_id=tile_type.property_schema[0].id, concept_local_name="cost"),
            ),
        ))
    registries.concepts.add_binding(ConceptBinding(
        entity_type_id=infantry.id, concept_id=obstruction.id, concept_role_id=mover.id,
    ))
    registries.concepts.add_binding(ConceptBinding(
        entity_type_id=wall.id, concept_id=obstruction.id, concept_role_id=obstacle.id,
    ))

    terrain_cost = Relation(
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
    walls_block = Relation(
        name="Walls Stop Movement",
        concept_id=obstruction.id,
        subject_role_id=mover.id,
        object_role_id=obstacle.id,
        effect=Block(),
    )
    registries.relations.add(terrain_cost)
    registries.relations.add(walls_block)

    return MotionWorld(
        registries=registries,
        infantry=infantry,
        plains=plains,
        water=water,
        wall=wall,
        motion=motion,
        traveler=traveler,
        terrain=terrain,
        obstruction=obstruction,
        mover=mover,
        obstacle=obstacle,
        terrain_cost=terrain_cost,
        walls_block=walls_block,
    )


@pytest.fixture
def world() -> MotionWorld:
    """A fresh, schema-valid Motion ontology (no constraints yet)."""
    return build_motion_world()


@pytest.fixture
def line():
    """Positions A, B, C in a straight line."""
    return HexPosition(0, 0), HexPosition(1, 0), HexPosition(2, 0)
