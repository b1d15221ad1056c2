#!/usr/bin/env python3
"""One-shot import of Pokémon reference data from a JSON file into SQLite."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from pokevgc.battle.repository import ReferenceDataRepository
from pokevgc.core.config import AppConfig

APP_ROOT = Path(__file__).resolve().parent.parent


class TypeRow(BaseModel):
    name: str = Field(min_length=1)
    strength: list[str] = Field(default_factory=list)
    weakness: list[str] = Field(default_factory=list)


class MoveRow(BaseModel):
    code: int
    name: str = Field(min_length=1)
    power: int | None = None
    accuracy: int | None = None
    type: str = Field(min_length=1)
    category: str = Field(min_length=1)


class StatsRow(BaseModel):
    hp: int
    attack: int
    sp_atk: int
    defence: int
    sp_def: int
    speed: int


class PokemonRow(BaseModel):
    sid: int
    name: str = Field(min_length=1)
    types: list[str] = Field(default_factory=list, max_length=2)
    stats: StatsRow | None = None
    moves: list[int] = Field(default_factory=list)


class ReferenceDataFile(BaseModel):
    """Top-level layout of the reference data JSON file."""

    types: list[TypeRow] = Field(default_factory=list)
    moves: list[MoveRow] = Field(default_factory=list)
    pokemon: list[PokemonRow] = Field(default_factory=list)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Validate and import Pokémon reference data into SQLite."
    )
    parser.add_argument("source", type=Path, help="Path to reference data JSON file.")
    parser.add_argument(
        "--database",
        type=Path,
        default=None,
        help="SQLite database path (defaults to DATABASE_PATH).",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only validate the file and print counts; do not write.",
    )
    return parser.parse_args()


def _load_source(path: Path) -> ReferenceDataFile:
    raw: Any = json.loads(path.read_text(encoding="utf-8"))
    return ReferenceDataFile.model_validate(raw)


def main() -> int:
    load_dotenv()
    args = _parse_args()
    try:
        data = _load_source(args.source)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        print(f"Invalid reference data file: {exc}", file=sys.stderr)
        return 1

    summary = {"types": len(data.types), "moves": len(data.moves), "pokemon": len(data.pokemon)}
    if args.check:
        print(json.dumps({"mode": "check", **summary}, indent=2))
        return 0

    database_path = args.database or AppConfig.from_env().database.resolve_path(APP_ROOT)
    repo = ReferenceDataRepository(database_path)
    try:
        written = repo.load_reference_data(data.model_dump())
    finally:
        repo.close()
    print(json.dumps({"mode": "import", "database": str(database_path), **written}, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
