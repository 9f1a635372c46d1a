"""SQLite implementation of the appointment store."""

import asyncio
import json
import logging
import os
import socket
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional, Union

import aiosqlite
from pydantic import ValidationError

from .exceptions import StoreBusyError, StoreError, StoreTransientError, StoreValidationError
from .guard import AUDIT_ACTIVITY, StoreActivityGuard
from .models import (
    Appointment,
    AppointmentFilter,
    AppointmentStatus,
    Client,
    NewAppointment,
    NewClient,
)

logger = logging.getLogger(__name__)

TRANSIENT_MESSAGES = ("locked", "busy")

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS clients (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        name_key TEXT NOT NULL,
        email TEXT,
        phone TEXT,
        address TEXT,
        pets TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_clients_name_key
    ON clients(name_key)
    """,
    """
    CREATE TABLE IF NOT EXISTS appointments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        client_id INTEGER NOT NULL,
        date TEXT NOT NULL,
        time TEXT NOT NULL,
        services TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'confirmed',
        notes TEXT NOT NULL DEFAULT '',
        total_amount TEXT,
        external_uid TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (client_id) REFERENCES clients(id) ON DELETE CASCADE
    )
    """,
    # Not unique: duplicates from earlier imports must remain representable for the auditor
    """
    CREATE INDEX IF NOT EXISTS idx_appointments_natural_key
    ON appointments(client_id, date, time)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_appointments_date
    ON appointments(date)
    """,
    """
    CREATE TABLE IF NOT EXISTS store_activity (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        kind TEXT NOT NULL,
        host TEXT NOT NULL,
        pid INTEGER NOT NULL,
        started_at TEXT NOT NULL
    )
    """,
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _process_alive(pid: int) -> bool:
    if pid == os.getpid() or os.name != "posix":
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class SQLiteAppointmentStore:
    """Manages clients and appointments in a SQLite database."""

    def __init__(self, database_path: Union[Path, str]):
        """Initialize the store.

        Args:
            database_path: Path to SQLite database file
        """
        self.database_path = (
            Path(database_path) if isinstance(database_path, str) else database_path
        )
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False
        self._initialization_lock: Optional[asyncio.Lock] = None
        self.activity_guard = StoreActivityGuard(registry=self)

        logger.debug(f"Appointment store initialized (lazy): {self.database_path}")

    async def _ensure_initialized(self) -> None:
        """Create the schema on first use."""
        if self._initialized:
            return

        # Use a lock to prevent concurrent initialization
        if self._initialization_lock is None:
            self._initialization_lock = asyncio.Lock()

        async with self._initialization_lock:
            # Double-check after acquiring lock
            if self._initialized:
                return

            with self._translate_errors("initialize"):
                async with aiosqlite.connect(str(self.database_path)) as db:
                    await db.execute("PRAGMA journal_mode=WAL")
                    await db.execute("PRAGMA synchronous=NORMAL")
                    for statement in SCHEMA:
                        await db.execute(statement)
                    await db.commit()

            self._initialized = True
            logger.info(f"Database schema initialized: {self.database_path}")

    async def initialize(self) -> None:
        """Initialize the database schema eagerly."""
        await self._ensure_initialized()

    @contextmanager
    def _translate_errors(self, operation: str) -> Iterator[None]:
        """Map sqlite and validation failures onto the store exception hierarchy."""
        try:
            yield
        except StoreError:
            raise
        except aiosqlite.OperationalError as e:
            if any(marker in str(e).lower() for marker in TRANSIENT_MESSAGES):
                raise StoreTransientError(f"{operation}: {e}", operation) from e
            raise StoreError(f"{operation}: {e}", operation) from e
        except aiosqlite.IntegrityError as e:
            raise StoreValidationError(f"{operation}: {e}", operation) from e
        except ValidationError as e:
            raise StoreValidationError(f"{operation}: invalid record: {e}", operation) from e
        except aiosqlite.Error as e:
            raise StoreError(f"{operation}: {e}", operation) from e

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[aiosqlite.Connection]:
        async with aiosqlite.connect(str(self.database_path)) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys=ON")
            yield db

    # Clients

    async def find_client_by_name(self, name: str) -> Optional[Client]:
        """Find a client by case-insensitive name; the oldest match wins."""
        await self._ensure_initialized()
        with self._translate_errors("find_client_by_name"):
            async with self._connection() as db:
                cursor = await db.execute(
                    "SELECT * FROM clients WHERE name_key = ? ORDER BY id LIMIT 1",
                    (name.strip().lower(),),
                )
                row = await cursor.fetchone()
                return self._row_to_client(row) if row else None

    async def get_client(self, client_id: int) -> Optional[Client]:
        await self._ensure_initialized()
        with self._translate_errors("get_client"):
            async with self._connection() as db:
                cursor = await db.execute("SELECT * FROM clients WHERE id = ?", (client_id,))
                row = await cursor.fetchone()
                return self._row_to_client(row) if row else None

    async def create_client(self, data: NewClient) -> Client:
        """Insert a client and return the stored record."""
        await self._ensure_initialized()
        with self._translate_errors("create_client"):
            created_at = _now()
            async with self._connection() as db:
                cursor = await db.execute(
                    """
                    INSERT INTO clients (name, name_key, email, phone, address, pets, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        data.name.strip(),
                        data.name.strip().lower(),
                        data.email,
                        data.phone,
                        data.address,
                        json.dumps([pet.model_dump() for pet in data.pets]),
                        created_at,
                    ),
                )
                await db.commit()
                client_id = cursor.lastrowid

            logger.debug(f"Created client {client_id}: {data.name}")
            return Client(id=client_id, created_at=created_at, **data.model_dump())

    # Appointments

    async def find_appointment(
        self, client_id: int, appointment_date: date, time: str
    ) -> Optional[Appointment]:
        """Find the oldest appointment with the given natural key."""
        await self._ensure_initialized()
        with self._translate_errors("find_appointment"):
            async with self._connection() as db:
                cursor = await db.execute(
                    """
                    SELECT * FROM appointments
                    WHERE client_id = ? AND date = ? AND time = ?
                    ORDER BY created_at, id LIMIT 1
                    """,
                    (client_id, appointment_date.isoformat(), time),
                )
                row = await cursor.fetchone()
                return self._row_to_appointment(row) if row else None

    async def get_appointment(self, appointment_id: int) -> Optional[Appointment]:
        await self._ensure_initialized()
        with self._translate_errors("get_appointment"):
            async with self._connection() as db:
                cursor = await db.execute(
                    "SELECT * FROM appointments WHERE id = ?", (appointment_id,)
                )
                row = await cursor.fetchone()
                return self._row_to_appointment(row) if row else None

    async def create_appointment(self, data: NewAppointment) -> Appointment:
        """Insert an appointment and return the stored record.

        Raises:
            StoreValidationError: If the client does not exist
        """
        await self._ensure_initialized()
        with self._translate_errors("create_appointment"):
            created_at = (
                data.created_at.astimezone(timezone.utc).isoformat() if data.created_at else _now()
            )
            async with self._connection() as db:
                cursor = await db.execute(
                    """
                    INSERT INTO appointments (
                        client_id, date, time, services, status, notes,
                        total_amount, external_uid, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        data.client_id,
                        data.date.isoformat(),
                        data.time,
                        json.dumps(data.services),
                        data.status.value,
                        data.notes,
                        str(data.total_amount) if data.total_amount is not None else None,
                        data.external_uid,
                        created_at,
                        created_at,
                    ),
                )
                await db.commit()
                appointment_id = cursor.lastrowid

            fields = data.model_dump(exclude={"created_at"})
            return Appointment(
                id=appointment_id, created_at=created_at, updated_at=created_at, **fields
            )

    async def list_appointments(
        self, criteria: Optional[AppointmentFilter] = None
    ) -> list[Appointment]:
        """List appointments matching the filter, ordered by date, time and id."""
        await self._ensure_initialized()
        criteria = criteria or AppointmentFilter()

        clauses: list[str] = []
        params: list[Any] = []
        if criteria.client_id is not None:
            clauses.append("client_id = ?")
            params.append(criteria.client_id)
        if criteria.date_from is not None:
            clauses.append("date >= ?")
            params.append(criteria.date_from.isoformat())
        if criteria.date_to is not None:
            clauses.append("date <= ?")
            params.append(criteria.date_to.isoformat())
        if criteria.time is not None:
            clauses.append("time = ?")
            params.append(criteria.time)
        if criteria.status is not None:
            clauses.append("status = ?")
            params.append(criteria.status.value)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._translate_errors("list_appointments"):
            async with self._connection() as db:
                cursor = await db.execute(
                    f"SELECT * FROM appointments {where} ORDER BY date, time, id",  # nosec B608
                    params,
                )
                rows = await cursor.fetchall()
                return [self._row_to_appointment(row) for row in rows]

    async def update_appointment_status(
        self, appointment_id: int, status: AppointmentStatus, notes: Optional[str] = None
    ) -> bool:
        """Set status (and optionally notes). Returns False if the id is unknown."""
        await self._ensure_initialized()
        with self._translate_errors("update_appointment_status"):
            async with self._connection() as db:
                if notes is None:
                    cursor = await db.execute(
                        "UPDATE appointments SET status = ?, updated_at = ? WHERE id = ?",
                        (status.value, _now(), appointment_id),
                    )
                else:
                    cursor = await db.execute(
                        "UPDATE appointments SET status = ?, notes = ?, updated_at = ? "
                        "WHERE id = ?",
                        (status.value, notes, _now(), appointment_id),
                    )
                await db.commit()
                return cursor.rowcount > 0

    async def delete_appointment(self, appointment_id: int) -> bool:
        """Delete one appointment. Returns False if the id is unknown."""
        await self._ensure_initialized()
        with self._translate_errors("delete_appointment"):
            async with self._connection() as db:
                cursor = await db.execute("DELETE FROM appointments WHERE id = ?", (appointment_id,))
                await db.commit()
                deleted = cursor.rowcount > 0

        if deleted:
            logger.debug(f"Deleted appointment {appointment_id}")
        return deleted

    # Activity registry

    async def register_activity(self, kind: str) -> int:
        """Record a running import or audit, refusing conflicting ones.

        Rows left behind by dead processes on this host are removed first.

        Raises:
            StoreBusyError: If an audit is running, or ``kind`` is an audit and
                anything else is running
        """
        await self._ensure_initialized()
        host = socket.gethostname()
        with self._translate_errors("register_activity"):
            async with self._connection() as db:
                await db.execute("BEGIN IMMEDIATE")
                try:
                    cursor = await db.execute("SELECT id, kind, host, pid FROM store_activity")
                    rows = await cursor.fetchall()
                    stale = [
                        row["id"]
                        for row in rows
                        if row["host"] == host and not _process_alive(row["pid"])
                    ]
                    for activity_id in stale:
                        logger.warning(f"Removing stale store activity {activity_id}")
                        await db.execute("DELETE FROM store_activity WHERE id = ?", (activity_id,))

                    live = [row["kind"] for row in rows if row["id"] not in stale]
                    if AUDIT_ACTIVITY in live:
                        raise StoreBusyError("A duplicate audit is running on this store", kind)
                    if kind == AUDIT_ACTIVITY and live:
                        raise StoreBusyError(
                            f"{len(live)} import(s) running on this store", kind
                        )

                    cursor = await db.execute(
                        "INSERT INTO store_activity (kind, host, pid, started_at) "
                        "VALUES (?, ?, ?, ?)",
                        (kind, host, os.getpid(), _now()),
                    )
                    await db.commit()
                    return cursor.lastrowid
                except Exception:
                    await db.rollback()
                    raise

    async def release_activity(self, activity_id: int) -> None:
        await self._ensure_initialized()
        with self._translate_errors("release_activity"):
            async with self._connection() as db:
                await db.execute("DELETE FROM store_activity WHERE id = ?", (activity_id,))
                await db.commit()

    async def get_database_info(self) -> dict[str, Any]:
        """Get row counts and file size for status output."""
        await self._ensure_initialized()
        with self._translate_errors("get_database_info"):
            async with self._connection() as db:
                cursor = await db.execute("SELECT COUNT(*) AS count FROM clients")
                clients = (await cursor.fetchone())["count"]
                cursor = await db.execute("SELECT COUNT(*) AS count FROM appointments")
                appointments = (await cursor.fetchone())["count"]

        return {
            "database_path": str(self.database_path),
            "client_count": clients,
            "appointment_count": appointments,
            "file_size_bytes": (
                self.database_path.stat().st_size if self.database_path.exists() else 0
            ),
        }

    @staticmethod
    def _row_to_client(row: aiosqlite.Row) -> Client:
        return Client(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            phone=row["phone"],
            address=row["address"],
            pets=json.loads(row["pets"] or "[]"),
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_appointment(row: aiosqlite.Row) -> Appointment:
        amount = row["total_amount"]
        return Appointment(
            id=row["id"],
            client_id=row["client_id"],
            date=row["date"],
            time=row["time"],
            services=json.loads(row["services"]),
            status=row["status"],
            notes=row["notes"],
            total_amount=Decimal(amount) if amount is not None else None,
            external_uid=row["external_uid"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
