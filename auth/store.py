"""
auth/store.py -- SQLAlchemy Core persistence layer for user records.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Route, dependency and lifecycle code never touches SQL.

Security:
  All queries use bound parameters. No f-strings in SQL.

Invariants enforced here rather than in callers:
  - email is UNIQUE at the schema level, so two concurrent registrations for
    the same address cannot both insert. The loser gets IntegrityError.
  - approve() is the only write that touches is_approved, and it only ever
    writes True. update_user() refuses is_approved and role.
  - id is a uuid4 hex string generated here; callers never pick ids.

DB path: accessgate.db at the repository root unless DATABASE_URL says
otherwise.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import SingletonThreadPool

from auth.models import Role, User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default=Role.USER.value),
    Column("is_approved", Integer, nullable=False, server_default="0"),
    Column("address", Text),
    Column("phone_number", String(50)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block behind writers.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///accessgate.db")
        user_id = store.create_user(User(name="Ann", email="ann@example.com", role=Role.USER,
                                         password_hash=hash_password("secret1"), is_approved=True))
        user = store.get_by_email("ann@example.com")
        store.close()

    update_user() is the administrative path for correcting profile data
    (name, address, phone number). No route calls it. It refuses role and
    is_approved, so role stays what registration set and approval only moves
    forward through approve().
    """

    # Descriptive fields only. Role and approval have dedicated, one-way paths.
    _UPDATABLE_FIELDS: set = {"name", "address", "phone_number"}

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        engine_kwargs: dict = {}
        in_memory = ":memory:" in db_url or "mode=memory" in db_url
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            if in_memory:
                # One connection per thread keeps a shared-cache memory DB alive.
                engine_kwargs["poolclass"] = SingletonThreadPool
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, **engine_kwargs)
        if db_url.startswith("sqlite") and not in_memory:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> str:
        """Insert a new user and return its generated id.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        Other SQLAlchemyError subclasses propagate unchanged; the lifecycle
        layer classifies them.
        """
        user_id = uuid.uuid4().hex
        now = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    id=user_id,
                    name=user.name,
                    email=user.email,
                    password_hash=user.password_hash,
                    role=Role(user.role).value,
                    is_approved=1 if user.is_approved else 0,
                    address=user.address,
                    phone_number=user.phone_number,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return user_id

    def approve(self, user_id: str) -> bool:
        """Mark a user approved. Returns False if user_id was not found.

        Single UPDATE statement, so the transition is atomic per record and
        re-approving an approved user is a harmless no-op.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(is_approved=1, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def update_user(self, user_id: str, **fields) -> bool:
        """Update descriptive fields on an existing user.

        Only keys in _UPDATABLE_FIELDS are accepted. Unknown keys -- including
        role and is_approved -- raise ValueError rather than being ignored.

        Returns True if a row was updated, False if user_id was not found.
        """
        unknown = set(fields) - self._UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)!r}")
        if not fields:
            return self.get_by_id(user_id) is not None
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(updated_at=_now_iso(), **fields)
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: str) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users, oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.created_at, _users.c.email)).fetchall()
        return [_row_to_user(r) for r in rows]

    def list_pending(self) -> list[User]:
        """Return every user still waiting for approval, oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _users.select().where(_users.c.is_approved == 0).order_by(_users.c.created_at, _users.c.email)
            ).fetchall()
        return [_row_to_user(r) for r in rows]

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        password_hash=row.password_hash,
        role=Role(row.role),
        is_approved=bool(row.is_approved),
        address=row.address,
        phone_number=row.phone_number,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
