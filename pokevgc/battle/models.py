"""Battle reference data and damage calculation models."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field


class MoveCategory(StrEnum):
    PHYSICAL = "Physical"
    SPECIAL = "Special"
    STATUS = "Status"


DAMAGING_CATEGORIES = frozenset({MoveCategory.PHYSICAL, MoveCategory.SPECIAL})


class BaseStats(BaseModel):
    """Species base stats as stored in the ``bst`` table."""

    hp: int
    attack: int
    sp_atk: int
    defence: int
    sp_def: int
    speed: int


class Species(BaseModel):
    species_id: int
    name: str


class BattleActor(BaseModel):
    """Species resolved for one calculation: stats plus its type set."""

    species_id: int
    name: str
    base_stats: BaseStats
    types: frozenset[str] = Field(default_factory=frozenset)


class Move(BaseModel):
    """Move reference row. ``category`` is kept raw so bad data can be reported."""

    code: int
    name: str
    power: int | None = None
    accuracy: int | None = None
    category: str
    type: str


class TypeMatchup(BaseModel):
    """Types an attacking type hits for double and for half damage."""

    name: str
    strengths: frozenset[str] = Field(default_factory=frozenset)
    weaknesses: frozenset[str] = Field(default_factory=frozenset)


class DamageCalcRequest(BaseModel):
    """Damage calculator request payload."""

    attacker: Any = None
    defender: Any = None
    move: Any = None
    attacker_level: Any = Field(
        default=50, validation_alias=AliasChoices("attacker_level", "attackerLevel")
    )


class DamageBreakdown(BaseModel):
    base_damage: int
    stab: float
    type_multiplier: float


class DamageResult(BaseModel):
    damage: int
    details: DamageBreakdown
