"""Read access to Pokémon reference data: species, stats, types, moves and learnsets."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from threading import Lock
from typing import Any, Iterable

from pokevgc.battle.models import BaseStats, Move, Species, TypeMatchup
from pokevgc.core.migrations import connect


def _split_type_list(raw: Any) -> frozenset[str]:
    """Parse a comma-separated type list column."""
    return frozenset(part.strip() for part in str(raw or "").split(",") if part.strip())


def _clean_types(values: Iterable[Any]) -> frozenset[str]:
    return frozenset(str(value).strip() for value in values if value and str(value).strip())


class ReferenceDataRepository:
    """SQLite-backed lookups used by the damage calculator.

    Every call hits the database; reference rows are small and are read fresh
    for each request.
    """

    def __init__(self, database_path: Path) -> None:
        self._connection = connect(database_path)
        self._lock = Lock()

    def _fetch_one(self, sql: str, params: tuple[Any, ...]) -> sqlite3.Row | None:
        with self._lock:
            return self._connection.execute(sql, params).fetchone()

    def get_species(self, name: str) -> Species | None:
        row = self._fetch_one("SELECT sid, name FROM pokemon WHERE name = ? LIMIT 1", (name,))
        if row is None:
            return None
        return Species(species_id=int(row["sid"]), name=str(row["name"]))

    def get_base_stats(self, species_id: int) -> BaseStats | None:
        row = self._fetch_one(
            "SELECT hp, attack, sp_atk, defence, sp_def, spd FROM bst WHERE pokemon_sid = ? LIMIT 1",
            (species_id,),
        )
        if row is None or not row["hp"]:
            return None
        return BaseStats(
            hp=int(row["hp"]),
            attack=int(row["attack"] or 0),
            sp_atk=int(row["sp_atk"] or 0),
            defence=int(row["defence"] or 0),
            sp_def=int(row["sp_def"] or 0),
            speed=int(row["spd"] or 0),
        )

    def get_types(self, species_id: int) -> frozenset[str]:
        """Return the species' deduplicated type names."""
        with self._lock:
            rows = self._connection.execute(
                "SELECT type_name, type_name1 FROM pokemon_types WHERE pokemon_sid = ?",
                (species_id,),
            ).fetchall()
        return _clean_types(
            value for row in rows for value in (row["type_name"], row["type_name1"])
        )

    def get_move(self, name: str) -> Move | None:
        row = self._fetch_one(
            "SELECT code, name, power, accuracy, type_name, category FROM moves WHERE name = ? LIMIT 1",
            (name,),
        )
        if row is None:
            return None
        return Move(
            code=int(row["code"]),
            name=str(row["name"]),
            power=None if row["power"] is None else int(row["power"]),
            accuracy=None if row["accuracy"] is None else int(row["accuracy"]),
            category=str(row["category"] or ""),
            type=str(row["type_name"] or "").strip(),
        )

    def can_learn(self, species_id: int, move_code: int) -> bool:
        row = self._fetch_one(
            "SELECT 1 FROM pokemon_moves WHERE pokemon_sid = ? AND move_code = ? LIMIT 1",
            (species_id, move_code),
        )
        return row is not None

    def get_type_matchup(self, type_name: str) -> TypeMatchup | None:
        row = self._fetch_one(
            "SELECT name, strength, weakness FROM types WHERE name = ? LIMIT 1",
            (type_name,),
        )
        if row is None:
            return None
        return TypeMatchup(
            name=str(row["name"]),
            strengths=_split_type_list(row["strength"]),
            weaknesses=_split_type_list(row["weakness"]),
        )

    def load_reference_data(self, payload: dict[str, Any]) -> dict[str, int]:
        """Upsert types, moves and species (with stats, types, learnsets).

        Returns per-table row counts written.
        """
        types = payload.get("types") or []
        moves = payload.get("moves") or []
        species = payload.get("pokemon") or []
        with self._lock:
            cursor = self._connection.cursor()
            try:
                for item in types:
                    cursor.execute(
                        """
                        INSERT INTO types (name, strength, weakness) VALUES (?, ?, ?)
                        ON CONFLICT(name) DO UPDATE SET
                          strength = excluded.strength,
                          weakness = excluded.weakness
                        """,
                        (
                            str(item["name"]).strip(),
                            ",".join(item.get("strength") or []),
                            ",".join(item.get("weakness") or []),
                        ),
                    )
                for item in moves:
                    cursor.execute(
                        """
                        INSERT INTO moves (code, name, power, accuracy, type_name, category)
                        VALUES (?, ?, ?, ?, ?, ?)
                        ON CONFLICT(code) DO UPDATE SET
                          name = excluded.name,
                          power = excluded.power,
                          accuracy = excluded.accuracy,
                          type_name = excluded.type_name,
                          category = excluded.category
                        """,
                        (
                            int(item["code"]),
                            str(item["name"]).strip(),
                            item.get("power"),
                            item.get("accuracy"),
                            str(item["type"]).strip(),
                            str(item["category"]).strip(),
                        ),
                    )
                for item in species:
                    sid = int(item["sid"])
                    cursor.execute(
                        """
                        INSERT INTO pokemon (sid, name) VALUES (?, ?)
                        ON CONFLICT(sid) DO UPDATE SET name = excluded.name
                        """,
                        (sid, str(item["name"]).strip()),
                    )
                    stats = item.get("stats")
                    if stats:
                        cursor.execute(
                            """
                            INSERT INTO bst (pokemon_sid, hp, attack, sp_atk, defence, sp_def, spd)
                            VALUES (?, ?, ?, ?, ?, ?, ?)
                            ON CONFLICT(pokemon_sid) DO UPDATE SET
                              hp = excluded.hp,
                              attack = excluded.attack,
                              sp_atk = excluded.sp_atk,
                              defence = excluded.defence,
                              sp_def = excluded.sp_def,
                              spd = excluded.spd
                            """,
                            (
                                sid,
                                int(stats["hp"]),
                                int(stats["attack"]),
                                int(stats["sp_atk"]),
                                int(stats["defence"]),
                                int(stats["sp_def"]),
                                int(stats["speed"]),
                            ),
                        )
                    type_names = list(item.get("types") or [])[:2]
                    cursor.execute("DELETE FROM pokemon_types WHERE pokemon_sid = ?", (sid,))
                    if type_names:
                        cursor.execute(
                            "INSERT INTO pokemon_types (pokemon_sid, type_name, type_name1) VALUES (?, ?, ?)",
                            (sid, type_names[0], type_names[1] if len(type_names) > 1 else None),
                        )
                    for move_code in item.get("moves") or []:
                        cursor.execute(
                            "INSERT OR IGNORE INTO pokemon_moves (pokemon_sid, move_code) VALUES (?, ?)",
                            (sid, int(move_code)),
                        )
                self._connection.commit()
            except Exception:
                self._connection.rollback()
                raise
        return {"types": len(types), "moves": len(moves), "pokemon": len(species)}

    def close(self) -> None:
        with self._lock:
            self._connection.close()
