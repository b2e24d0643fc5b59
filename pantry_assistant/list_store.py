"""SQLite data access layer for shopping list rows.

Every query is filtered by ``owner_id``: a row is only ever visible to,
and mutable by, the user who owns it. Uses the connection-per-operation
pattern with WAL mode.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pantry_assistant.db import get_connection, init_db
from pantry_assistant.errors import StorageError
from pantry_assistant.models import (
    ItemCategory,
    ListItem,
    ListItemDraft,
    Priority,
    Unit,
    title_case_name,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, owner_id, name, quantity, unit, category, priority, notes, "
    "estimated_price, is_completed, created_at"
)

_PATCHABLE_COLUMNS = frozenset(
    {"name", "quantity", "unit", "category", "priority", "notes", "estimated_price"}
)


def _db_value(value: object) -> object:
    """Convert enum members to their stored string form."""
    if isinstance(value, StrEnum):
        return value.value
    return value


def _row_to_item(row: Any) -> ListItem:
    """Convert a sqlite3.Row to a ListItem model.

    Args:
        row: A sqlite3.Row from the shopping_list table.

    Returns:
        Populated ListItem instance.
    """
    return ListItem(
        id=row["id"],
        owner_id=row["owner_id"],
        name=row["name"],
        quantity=row["quantity"],
        unit=row["unit"],
        category=row["category"],
        priority=row["priority"],
        notes=row["notes"] or "",
        estimated_price=row["estimated_price"],
        is_completed=bool(row["is_completed"]),
        created_at=row["created_at"],
    )


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


class ListStore:
    """Owner-scoped CRUD for the shopping_list table."""

    def __init__(self, db_path: str) -> None:
        """Initialize store and ensure schema exists.

        Args:
            db_path: Path to the SQLite database file.
        """
        self._db_path = db_path
        init_db(db_path)

    def _connect(self) -> sqlite3.Connection:
        return get_connection(self._db_path)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_items(
        self,
        owner_id: str,
        include_completed: bool = True,
    ) -> list[ListItem]:
        """Return the owner's shopping list, oldest first.

        Args:
            owner_id: Identity of the list owner.
            include_completed: Whether checked-off rows are included.

        Returns:
            List of ListItem rows.
        """
        query = f"SELECT {_COLUMNS} FROM shopping_list WHERE owner_id = ?"
        if not include_completed:
            query += " AND is_completed = 0"
        query += " ORDER BY created_at, rowid"
        conn = self._connect()
        try:
            rows = conn.execute(query, (owner_id,)).fetchall()
            return [_row_to_item(row) for row in rows]
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to read shopping list: {exc}") from exc
        finally:
            conn.close()

    def get_item(self, owner_id: str, item_id: str) -> ListItem | None:
        """Look up one of the owner's rows by id.

        Args:
            owner_id: Identity of the list owner.
            item_id: Row id.

        Returns:
            The ListItem, or None if the owner has no such row.

        Raises:
            StorageError: If the lookup fails.
        """
        conn = self._connect()
        try:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM shopping_list WHERE id = ? AND owner_id = ?",
                (item_id, owner_id),
            ).fetchone()
            return _row_to_item(row) if row else None
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to read item: {exc}") from exc
        finally:
            conn.close()

    def foreign_ids(self, ids: Sequence[str], owner_id: str) -> list[str]:
        """Return the ids from ``ids`` that exist under a different owner.

        Args:
            ids: Row ids to check.
            owner_id: Identity of the caller.

        Returns:
            Ids owned by someone other than ``owner_id``.
        """
        if not ids:
            return []
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT id FROM shopping_list "
                f"WHERE id IN ({_placeholders(len(ids))}) AND owner_id != ?",
                (*ids, owner_id),
            ).fetchall()
            return [row["id"] for row in rows]
        except sqlite3.Error as exc:
            raise StorageError(f"Ownership lookup failed: {exc}") from exc
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_many(
        self,
        owner_id: str,
        drafts: Sequence[ListItemDraft],
    ) -> list[ListItem]:
        """Insert one row per draft, stamped with ``owner_id``.

        Rows are committed one at a time; there is no rollback of rows
        already written when a later row fails.

        Args:
            owner_id: Identity of the list owner.
            drafts: Validated item drafts.

        Returns:
            The inserted rows, in draft order.

        Raises:
            StorageError: If any insert fails. ``written`` holds the rows
                committed before the failure.
        """
        written: list[ListItem] = []
        conn = self._connect()
        try:
            for draft in drafts:
                item = ListItem(
                    id=uuid.uuid4().hex,
                    owner_id=owner_id,
                    name=draft.name,
                    quantity=draft.quantity,
                    unit=draft.unit,
                    category=draft.category,
                    priority=draft.priority,
                    notes=draft.notes,
                    estimated_price=draft.estimated_price,
                    is_completed=False,
                    created_at=datetime.now(tz=UTC).isoformat(),
                )
                try:
                    conn.execute(
                        f"INSERT INTO shopping_list ({_COLUMNS}) "
                        f"VALUES ({_placeholders(11)})",
                        (
                            item.id,
                            item.owner_id,
                            item.name,
                            item.quantity,
                            item.unit.value,
                            item.category.value,
                            item.priority.value,
                            item.notes,
                            item.estimated_price,
                            int(item.is_completed),
                            item.created_at,
                        ),
                    )
                    conn.commit()
                except sqlite3.Error as exc:
                    logger.warning(
                        "Insert failed after %d of %d rows", len(written), len(drafts)
                    )
                    raise StorageError(
                        f"Failed to insert {draft.name!r}: {exc}", written=written
                    ) from exc
                written.append(item)
            return written
        finally:
            conn.close()

    def update_one(
        self,
        item_id: str,
        owner_id: str,
        changes: dict[str, object],
    ) -> list[ListItem]:
        """Apply a partial update to one of the owner's rows.

        Args:
            item_id: Row id.
            owner_id: Identity of the list owner.
            changes: Column name to new value; unknown columns are ignored.

        Returns:
            The updated row in a one-element list, or an empty list when
            the owner has no row with that id.

        Raises:
            StorageError: If the update fails.
        """
        columns = [key for key in changes if key in _PATCHABLE_COLUMNS]
        if not columns:
            return []
        assignments = ", ".join(f"{col} = ?" for col in columns)
        values = [_db_value(changes[col]) for col in columns]
        conn = self._connect()
        try:
            cursor = conn.execute(
                f"UPDATE shopping_list SET {assignments} WHERE id = ? AND owner_id = ?",
                (*values, item_id, owner_id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return []
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM shopping_list WHERE id = ? AND owner_id = ?",
                (item_id, owner_id),
            ).fetchone()
            return [_row_to_item(row)] if row else []
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to update item {item_id}: {exc}") from exc
        finally:
            conn.close()

    def delete_many(self, ids: Sequence[str], owner_id: str) -> list[ListItem]:
        """Delete the owner's rows whose id is in ``ids``.

        Args:
            ids: Row ids to delete.
            owner_id: Identity of the list owner.

        Returns:
            The rows that were deleted.

        Raises:
            StorageError: If the delete fails.
        """
        if not ids:
            return []
        marks = _placeholders(len(ids))
        conn = self._connect()
        try:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM shopping_list "
                f"WHERE id IN ({marks}) AND owner_id = ?",
                (*ids, owner_id),
            ).fetchall()
            conn.execute(
                f"DELETE FROM shopping_list WHERE id IN ({marks}) AND owner_id = ?",
                (*ids, owner_id),
            )
            conn.commit()
            return [_row_to_item(row) for row in rows]
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to delete items: {exc}") from exc
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Direct edits from the list screen
    # ------------------------------------------------------------------

    def set_completed(self, owner_id: str, item_id: str, completed: bool) -> bool:
        """Check or uncheck one of the owner's rows.

        Args:
            owner_id: Identity of the list owner.
            item_id: Row id.
            completed: New completion state.

        Returns:
            True if a row was updated.

        Raises:
            StorageError: If the update fails.
        """
        conn = self._connect()
        try:
            cursor = conn.execute(
                "UPDATE shopping_list SET is_completed = ? "
                "WHERE id = ? AND owner_id = ?",
                (int(completed), item_id, owner_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to update completion: {exc}") from exc
        finally:
            conn.close()

    def add_or_increment(
        self,
        owner_id: str,
        name: str,
        category: ItemCategory = ItemCategory.MISC,
    ) -> ListItem:
        """Add one of ``name`` to the list, bumping an existing row if present.

        Matching is case-insensitive on the item name.

        Args:
            owner_id: Identity of the list owner.
            name: Item name.
            category: Category used when a new row is created.

        Returns:
            The inserted or updated row.

        Raises:
            StorageError: If the lookup or write fails.
        """
        display_name = title_case_name(name)
        conn = self._connect()
        try:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM shopping_list "
                "WHERE owner_id = ? AND LOWER(name) = ? AND is_completed = 0",
                (owner_id, display_name.lower()),
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to look up {display_name}: {exc}") from exc
        finally:
            conn.close()

        if row is not None:
            existing = _row_to_item(row)
            updated = self.update_one(
                existing.id, owner_id, {"quantity": existing.quantity + 1}
            )
            return updated[0]

        draft = ListItemDraft(
            name=display_name,
            quantity=1,
            unit=Unit.PIECES,
            category=category,
            priority=Priority.MEDIUM,
        )
        return self.insert_many(owner_id, [draft])[0]
