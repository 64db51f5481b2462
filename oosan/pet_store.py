from __future__ import annotations

import json
import logging
import random
import sqlite3
from datetime import date, datetime, timezone
from pathlib import Path

from .pet import PetState, Rng, SessionResult, create_initial_state, run_session, today_in

logger = logging.getLogger(__name__)

DEFAULT_KEY = "oosanRiverState"


class PetStore:
    def __init__(self, db_path: str | Path = "oosan_store.sqlite") -> None:
        self.db_path = db_path if db_path == ":memory:" else Path(db_path)
        self.connection = sqlite3.connect(self.db_path)
        self.connection.row_factory = sqlite3.Row
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        cursor = self.connection.cursor()
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS pet_states (
                key TEXT PRIMARY KEY,
                state TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        self.connection.commit()

    def load(self, key: str = DEFAULT_KEY) -> PetState | None:
        try:
            cursor = self.connection.cursor()
            cursor.execute("SELECT state FROM pet_states WHERE key = ?", (key,))
            row = cursor.fetchone()
        except sqlite3.Error as exc:
            logger.warning("Failed to load pet state %s: %s", key, exc)
            return None
        if row is None:
            return None
        try:
            return PetState.from_record(json.loads(row["state"]))
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError too
            logger.warning("Discarding malformed pet state %s: %s", key, exc)
            return None

    def save(self, state: PetState, key: str = DEFAULT_KEY) -> bool:
        payload = json.dumps(state.to_record(), ensure_ascii=False)
        try:
            cursor = self.connection.cursor()
            cursor.execute(
                """
                INSERT INTO pet_states (key, state, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    state=excluded.state,
                    updated_at=excluded.updated_at
                """,
                (key, payload, self._now().isoformat()),
            )
            self.connection.commit()
        except sqlite3.Error as exc:
            logger.error("Failed to save pet state %s: %s", key, exc)
            return False
        return True

    def delete(self, key: str = DEFAULT_KEY) -> bool:
        try:
            cursor = self.connection.cursor()
            cursor.execute("DELETE FROM pet_states WHERE key = ?", (key,))
            self.connection.commit()
        except sqlite3.Error as exc:
            logger.error("Failed to delete pet state %s: %s", key, exc)
            return False
        return cursor.rowcount > 0

    def activate(
        self,
        key: str = DEFAULT_KEY,
        today: date | None = None,
        rng: Rng = random.random,
    ) -> SessionResult:
        current = today or today_in()
        state = self.load(key)
        if state is None:
            state = create_initial_state(current)
        result = run_session(state, current, rng)
        if not self.save(result.state, key):
            logger.warning("Continuing %s with unsaved in-memory state", key)
        logger.debug(
            "Session for %s: condition=%s size=%.4f log_refreshed=%s",
            key,
            result.state.condition,
            result.state.size_factor,
            result.log_refreshed,
        )
        return result

    def close(self) -> None:
        self.connection.close()

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)
