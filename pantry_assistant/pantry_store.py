"""SQLite access to a user's pantry stock.

The feasibility check only ever reads from here, fetching a fresh
snapshot per check. The write helpers exist for the pantry screen and
for seeding data from the CLI.
"""

from __future__ import annotations

import sqlite3
import uuid
from datetime import UTC, datetime
from typing import Any

from pantry_assistant.db import get_connection, init_db
from pantry_assistant.errors import StorageError
from pantry_assistant.models import PantryEntry


def _row_to_entry(row: Any) -> PantryEntry:
    """Convert a sqlite3.Row to a PantryEntry model.

    Args:
        row: A sqlite3.Row from the pantry_items table.

    Returns:
        Populated PantryEntry instance.
    """
    return PantryEntry(
        id=row["id"],
        name=row["name"],
        quantity=row["quantity"],
        unit_amount=row["unit_amount"],
        unit=row["unit"] or "",
    )


class PantryStore:
    """Owner-scoped access to the pantry_items table."""

    def __init__(self, db_path: str) -> None:
        """Initialize store and ensure schema exists.

        Args:
            db_path: Path to the SQLite database file.
        """
        self._db_path = db_path
        init_db(db_path)

    def list_all(self, owner_id: str) -> list[PantryEntry]:
        """Return every pantry entry the owner has.

        Args:
            owner_id: Identity of the pantry owner.

        Returns:
            Pantry entries ordered by name.

        Raises:
            StorageError: If the read fails.
        """
        conn = get_connection(self._db_path)
        try:
            rows = conn.execute(
                "SELECT id, name, quantity, unit_amount, unit FROM pantry_items "
                "WHERE owner_id = ? ORDER BY name",
                (owner_id,),
            ).fetchall()
            return [_row_to_entry(row) for row in rows]
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to read pantry: {exc}") from exc
        finally:
            conn.close()

    def add_item(
        self,
        owner_id: str,
        name: str,
        quantity: float,
        unit_amount: float = 1.0,
        unit: str = "",
    ) -> PantryEntry:
        """Add a pantry entry for the owner.

        Args:
            owner_id: Identity of the pantry owner.
            name: Item name as shown on the pantry screen.
            quantity: Number of units on hand.
            unit_amount: Amount contained in one unit (e.g. 16 for a 16 oz can).
            unit: Unit that ``unit_amount`` is measured in.

        Returns:
            The stored entry.

        Raises:
            StorageError: If the insert fails.
        """
        entry = PantryEntry(
            id=uuid.uuid4().hex,
            name=name,
            quantity=quantity,
            unit_amount=unit_amount,
            unit=unit,
        )
        conn = get_connection(self._db_path)
        try:
            conn.execute(
                "INSERT INTO pantry_items "
                "(id, owner_id, name, quantity, unit_amount, unit, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    entry.id,
                    owner_id,
                    entry.name,
                    entry.quantity,
                    entry.unit_amount,
                    entry.unit,
                    datetime.now(tz=UTC).isoformat(),
                ),
            )
            conn.commit()
            return entry
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to add pantry item: {exc}") from exc
        finally:
            conn.close()

    def remove_item(self, owner_id: str, item_id: str) -> bool:
        """Remove one of the owner's pantry entries.

        Args:
            owner_id: Identity of the pantry owner.
            item_id: Entry id.

        Returns:
            True if an entry was removed.

        Raises:
            StorageError: If the delete fails.
        """
        conn = get_connection(self._db_path)
        try:
            cursor = conn.execute(
                "DELETE FROM pantry_items WHERE id = ? AND owner_id = ?",
                (item_id, owner_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to remove pantry item: {exc}") from exc
        finally:
            conn.close()
