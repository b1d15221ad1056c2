"""Deterministic battle damage calculation.

The formula models expected damage: there is no random roll, no critical hit
and no accuracy check, so the same inputs always produce the same number.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Protocol

from pokevgc.api.errors import data_integrity_error, validation_error
from pokevgc.battle.models import (
    DAMAGING_CATEGORIES,
    BaseStats,
    BattleActor,
    DamageBreakdown,
    DamageResult,
    Move,
    MoveCategory,
    Species,
    TypeMatchup,
)

LOGGER = logging.getLogger(__name__)

NAME_MAX_LENGTH = 100
MIN_LEVEL = 1
MAX_LEVEL = 100
DEFAULT_LEVEL = 50
STAB_BONUS = 1.5
SUPER_EFFECTIVE = 2.0
NOT_VERY_EFFECTIVE = 0.5


class ReferenceData(Protocol):
    def get_species(self, name: str) -> Species | None: ...

    def get_base_stats(self, species_id: int) -> BaseStats | None: ...

    def get_types(self, species_id: int) -> frozenset[str]: ...

    def get_move(self, name: str) -> Move | None: ...

    def can_learn(self, species_id: int, move_code: int) -> bool: ...

    def get_type_matchup(self, type_name: str) -> TypeMatchup | None: ...


def type_multiplier(matchup: TypeMatchup | None, defender_types: Iterable[str]) -> float:
    """Compose effectiveness of the move type against every defender type."""
    multiplier = 1.0
    if matchup is None:
        return multiplier
    for defender_type in set(defender_types):
        if defender_type in matchup.strengths:
            multiplier *= SUPER_EFFECTIVE
        if defender_type in matchup.weaknesses:
            multiplier *= NOT_VERY_EFFECTIVE
    return multiplier


def stab_factor(move_type: str, attacker_types: Iterable[str]) -> float:
    return STAB_BONUS if move_type in set(attacker_types) else 1.0


def select_stats(
    category: MoveCategory, attacker: BaseStats, defender: BaseStats
) -> tuple[int, int]:
    """Return (offensive, defensive) stats for the move category.

    The defensive stat is floored at 1.
    """
    if category is MoveCategory.PHYSICAL:
        return attacker.attack, max(defender.defence, 1)
    if category is MoveCategory.SPECIAL:
        return attacker.sp_atk, max(defender.sp_def, 1)
    raise ValueError(f"No damage stats for category {category}")


def base_damage(level: float, power: int, offensive: int, defensive: int) -> float:
    return (((2 * level / 5) + 2) * power * (offensive / defensive)) / 50 + 2


def calculate_damage(
    attacker: BattleActor,
    defender: BattleActor,
    move: Move,
    level: float,
    matchup: TypeMatchup | None,
) -> DamageResult:
    """Apply the damage formula to already-resolved, validated inputs."""
    category = MoveCategory(move.category)
    offensive, defensive = select_stats(category, attacker.base_stats, defender.base_stats)
    base = base_damage(level, move.power or 0, offensive, defensive)
    stab = stab_factor(move.type, attacker.types)
    multiplier = type_multiplier(matchup, defender.types)
    return DamageResult(
        damage=math.floor(base * stab * multiplier),
        details=DamageBreakdown(
            base_damage=math.floor(base),
            stab=stab,
            type_multiplier=multiplier,
        ),
    )


def _require_name(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise validation_error(f"{label} name is required and cannot be empty")
    trimmed = value.strip()
    if len(trimmed) > NAME_MAX_LENGTH:
        raise validation_error(f"Input names too long (max {NAME_MAX_LENGTH} chars)")
    return trimmed


def _require_level(value: Any) -> float:
    message = f"Attacker level must be a number between {MIN_LEVEL} and {MAX_LEVEL}"
    if isinstance(value, bool):
        raise validation_error(message)
    try:
        level = float(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise validation_error(message) from exc
    if math.isnan(level) or not MIN_LEVEL <= level <= MAX_LEVEL:
        raise validation_error(message)
    return level


class DamageCalculator:
    """Validates a damage request against reference data and computes damage."""

    def __init__(self, reference: ReferenceData) -> None:
        self._reference = reference

    def compute(
        self,
        attacker_name: Any,
        defender_name: Any,
        move_name: Any,
        attacker_level: Any = DEFAULT_LEVEL,
    ) -> DamageResult:
        attacker_key = _require_name(attacker_name, "Attacker")
        defender_key = _require_name(defender_name, "Defender")
        move_key = _require_name(move_name, "Move")
        level = _require_level(attacker_level)

        attacker_species = self._reference.get_species(attacker_key)
        if attacker_species is None:
            raise validation_error(f'Pokémon "{attacker_key}" not found')
        defender_species = self._reference.get_species(defender_key)
        if defender_species is None:
            raise validation_error(f'Pokémon "{defender_key}" not found')

        move = self._reference.get_move(move_key)
        if move is None:
            raise validation_error(f'Move "{move_key}" not found')
        if not move.power:
            raise validation_error(f'Move "{move_key}" has no power (status move?)')
        if move.category not in DAMAGING_CATEGORIES:
            LOGGER.error("invalid_move_category", extra={"move": move.name})
            raise data_integrity_error("Invalid move category in database")
        if not self._reference.can_learn(attacker_species.species_id, move.code):
            raise validation_error(f'Pokémon "{attacker_key}" cannot learn "{move_key}"')

        attacker = self._resolve_actor(attacker_species, "Attacker")
        defender = self._resolve_actor(defender_species, "Defender")
        matchup = self._reference.get_type_matchup(move.type)
        if matchup is None:
            LOGGER.warning("missing_type_matchup", extra={"move": move.name})

        return calculate_damage(attacker, defender, move, level, matchup)

    def _resolve_actor(self, species: Species, label: str) -> BattleActor:
        stats = self._reference.get_base_stats(species.species_id)
        if stats is None:
            LOGGER.error("missing_base_stats", extra={"species": species.name})
            raise data_integrity_error(f"{label} stats not found in database")
        return BattleActor(
            species_id=species.species_id,
            name=species.name,
            base_stats=stats,
            types=self._reference.get_types(species.species_id),
        )
