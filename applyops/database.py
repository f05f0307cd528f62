"""
Database - SQLite record store for ApplyOps

This module handles schema initialization, connection management and the
RecordStore used by the API and the Gmail sync pipeline.
"""

import json
import sqlite3
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from applyops.errors import ConcurrentUpdateError, NotFoundError
from applyops.models import (
    Application,
    ApplicationStatus,
    CoverLetter,
    EmailLog,
    format_datetime,
    utcnow,
)

logger = logging.getLogger(__name__)

SCHEMA = """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT,
        name TEXT,
        created_at TEXT
    );

    CREATE TABLE IF NOT EXISTS applications (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        company TEXT NOT NULL,
        role TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'APPLIED',
        platform TEXT,
        applied_at TEXT,
        interview_at TEXT,
        salary TEXT,
        location TEXT,
        url TEXT,
        notes TEXT,
        calendar_event_id TEXT,
        email_id TEXT,
        version INTEGER NOT NULL DEFAULT 0,
        created_at TEXT,
        updated_at TEXT
    );

    CREATE INDEX IF NOT EXISTS idx_applications_user_updated
        ON applications (user_id, updated_at DESC);

    CREATE TABLE IF NOT EXISTS email_logs (
        gmail_id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        subject TEXT,
        sender TEXT,
        received_at TEXT,
        processed INTEGER NOT NULL DEFAULT 0,
        parsed_data TEXT,
        created_at TEXT
    );

    CREATE TABLE IF NOT EXISTS google_tokens (
        user_id TEXT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
        access_token TEXT NOT NULL,
        refresh_token TEXT,
        expiry TEXT,
        scopes TEXT,
        updated_at TEXT
    );

    CREATE TABLE IF NOT EXISTS cover_letters (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        company TEXT NOT NULL,
        role TEXT NOT NULL,
        tone TEXT NOT NULL DEFAULT 'FORMAL',
        content TEXT NOT NULL,
        created_at TEXT,
        updated_at TEXT
    );

    CREATE INDEX IF NOT EXISTS idx_cover_letters_user_created
        ON cover_letters (user_id, created_at DESC);
"""

# Columns a caller may change through update_application()
UPDATABLE_FIELDS = (
    "company",
    "role",
    "status",
    "platform",
    "applied_at",
    "interview_at",
    "salary",
    "location",
    "url",
    "notes",
    "calendar_event_id",
)


def init_db(db_path: Path) -> None:
    """
    Initialize the SQLite database with required tables.

    Creates tables for:
    - users: Owners of applications and Google tokens
    - applications: Tracked job applications
    - email_logs: One row per Gmail message seen by the sync pipeline
    - google_tokens: OAuth access/refresh token pair per user
    - cover_letters: Generated cover letters, editable after generation

    Uses WAL (Write-Ahead Logging) mode for better concurrency.
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=30.0)
    try:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.executescript(SCHEMA)
        conn.commit()
    finally:
        conn.close()

    logger.debug(f"Database initialized at {db_path}")


def get_db(db_path: Path) -> sqlite3.Connection:
    """
    Create and return a database connection with Row factory.

    The 30-second timeout lets concurrent writers wait on each other
    instead of failing immediately.
    """
    conn = sqlite3.connect(db_path, timeout=30.0)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_datetime(value)
    if isinstance(value, ApplicationStatus):
        return value.value
    return value


class RecordStore:
    """
    Transactional access to applications, email logs, Google tokens and
    cover letters.

    Every method opens its own transaction unless a connection from
    ``transaction()`` is passed in, which lets the sync pipeline persist an
    application change and the email-log update atomically.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    def init(self) -> "RecordStore":
        init_db(self.db_path)
        return self

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        conn = get_db(self.db_path)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def _use(self, conn: Optional[sqlite3.Connection]) -> Iterator[sqlite3.Connection]:
        if conn is not None:
            yield conn
        else:
            with self.transaction() as own:
                yield own

    # ===== USERS =====

    def ensure_user(
        self, user_id: str, email: Optional[str] = None, name: Optional[str] = None, conn=None
    ) -> None:
        with self._use(conn) as c:
            c.execute(
                "INSERT OR IGNORE INTO users (id, email, name, created_at) VALUES (?, ?, ?, ?)",
                (user_id, email, name, format_datetime(utcnow())),
            )

    # ===== EMAIL LOGS =====

    def get_email_log(self, gmail_id: str, conn=None) -> Optional[EmailLog]:
        with self._use(conn) as c:
            row = c.execute("SELECT * FROM email_logs WHERE gmail_id = ?", (gmail_id,)).fetchone()
        return EmailLog.from_row(row) if row else None

    def upsert_email_log(
        self,
        user_id: str,
        gmail_id: str,
        subject: str,
        sender: str,
        received_at: Optional[datetime],
        conn=None,
    ) -> None:
        """Create the email-log row if it does not exist; an existing row is left untouched."""
        with self._use(conn) as c:
            c.execute(
                """
                INSERT OR IGNORE INTO email_logs
                (gmail_id, user_id, subject, sender, received_at, processed, created_at)
                VALUES (?, ?, ?, ?, ?, 0, ?)
            """,
                (
                    gmail_id,
                    user_id,
                    subject,
                    sender,
                    format_datetime(received_at),
                    format_datetime(utcnow()),
                ),
            )

    def mark_email_processed(
        self, gmail_id: str, parsed_data: Optional[Dict[str, Any]] = None, conn=None
    ) -> None:
        with self._use(conn) as c:
            cursor = c.execute(
                "UPDATE email_logs SET processed = 1, parsed_data = ? WHERE gmail_id = ?",
                (json.dumps(parsed_data) if parsed_data is not None else None, gmail_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Email log {gmail_id} not found")

    def count_email_logs(self, user_id: str, conn=None) -> int:
        with self._use(conn) as c:
            return c.execute(
                "SELECT COUNT(*) FROM email_logs WHERE user_id = ?", (user_id,)
            ).fetchone()[0]

    # ===== APPLICATIONS =====

    def get_application(
        self, application_id: str, user_id: Optional[str] = None, conn=None
    ) -> Optional[Application]:
        query = "SELECT * FROM applications WHERE id = ?"
        params: List[Any] = [application_id]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)

        with self._use(conn) as c:
            row = c.execute(query, params).fetchone()
        return Application.from_row(row) if row else None

    def list_applications(
        self, user_id: str, limit: Optional[int] = None, offset: int = 0, conn=None
    ) -> List[Application]:
        """Return the user's applications, most recently updated first."""
        query = "SELECT * FROM applications WHERE user_id = ? ORDER BY updated_at DESC, id ASC"
        params: List[Any] = [user_id]
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])

        with self._use(conn) as c:
            rows = c.execute(query, params).fetchall()
        return [Application.from_row(row) for row in rows]

    def count_applications(self, user_id: str, conn=None) -> int:
        with self._use(conn) as c:
            return c.execute(
                "SELECT COUNT(*) FROM applications WHERE user_id = ?", (user_id,)
            ).fetchone()[0]

    def create_application(self, application: Application, conn=None) -> Application:
        """
        Insert a new application.

        The id, created_at/updated_at and version are assigned here; any
        values already set on the passed object are overwritten.
        """
        now = utcnow()
        application.id = application.id or uuid.uuid4().hex
        application.created_at = now
        application.updated_at = now
        application.version = 0

        with self._use(conn) as c:
            c.execute(
                """
                INSERT INTO applications (
                    id, user_id, company, role, status, platform,
                    applied_at, interview_at, salary, location, url, notes,
                    calendar_event_id, email_id, version, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    application.id,
                    application.user_id,
                    application.company,
                    application.role,
                    application.status.value,
                    application.platform,
                    format_datetime(application.applied_at),
                    format_datetime(application.interview_at),
                    application.salary,
                    application.location,
                    application.url,
                    application.notes,
                    application.calendar_event_id,
                    application.email_id,
                    application.version,
                    format_datetime(application.created_at),
                    format_datetime(application.updated_at),
                ),
            )

        logger.info(f"Created application: {application.company} (id: {application.id})")
        return application

    def update_application(
        self,
        application_id: str,
        changes: Dict[str, Any],
        expected_version: int,
        conn=None,
    ) -> Application:
        """
        Apply ``changes`` to an application using optimistic locking.

        updated_at is always bumped and version incremented.

        Raises:
            ValueError: If changes name a column that cannot be updated
            NotFoundError: If the application does not exist
            ConcurrentUpdateError: If the row's version no longer matches
        """
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        assignments = [f"{name} = ?" for name in changes]
        params = [_serialize(value) for value in changes.values()]
        assignments.extend(["updated_at = ?", "version = version + 1"])
        params.append(format_datetime(utcnow()))
        params.extend([application_id, expected_version])

        with self._use(conn) as c:
            cursor = c.execute(
                f"UPDATE applications SET {', '.join(assignments)} WHERE id = ? AND version = ?",
                params,
            )
            if cursor.rowcount == 0:
                exists = c.execute(
                    "SELECT 1 FROM applications WHERE id = ?", (application_id,)
                ).fetchone()
                if exists is None:
                    raise NotFoundError("Application not found")
                raise ConcurrentUpdateError(application_id)

            row = c.execute("SELECT * FROM applications WHERE id = ?", (application_id,)).fetchone()

        return Application.from_row(row)

    def delete_application(self, application_id: str, conn=None) -> bool:
        with self._use(conn) as c:
            cursor = c.execute("DELETE FROM applications WHERE id = ?", (application_id,))
        return cursor.rowcount > 0

    # ===== GOOGLE TOKENS =====

    def get_google_token(self, user_id: str, conn=None) -> Optional[Dict[str, Any]]:
        with self._use(conn) as c:
            row = c.execute("SELECT * FROM google_tokens WHERE user_id = ?", (user_id,)).fetchone()
        return dict(row) if row else None

    def save_google_token(
        self,
        user_id: str,
        access_token: str,
        refresh_token: Optional[str] = None,
        expiry: Optional[datetime] = None,
        scopes: Optional[List[str]] = None,
        conn=None,
    ) -> None:
        """Store a user's token pair; a missing refresh token keeps the stored one."""
        with self._use(conn) as c:
            c.execute(
                """
                INSERT INTO google_tokens (user_id, access_token, refresh_token, expiry, scopes, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    access_token = excluded.access_token,
                    refresh_token = COALESCE(excluded.refresh_token, google_tokens.refresh_token),
                    expiry = excluded.expiry,
                    scopes = COALESCE(excluded.scopes, google_tokens.scopes),
                    updated_at = excluded.updated_at
            """,
                (
                    user_id,
                    access_token,
                    refresh_token,
                    format_datetime(expiry),
                    " ".join(scopes) if scopes else None,
                    format_datetime(utcnow()),
                ),
            )

    def delete_google_token(self, user_id: str, conn=None) -> bool:
        with self._use(conn) as c:
            cursor = c.execute("DELETE FROM google_tokens WHERE user_id = ?", (user_id,))
        return cursor.rowcount > 0

    # ===== COVER LETTERS =====

    def create_cover_letter(self, letter: CoverLetter, conn=None) -> CoverLetter:
        now = utcnow()
        letter.id = letter.id or uuid.uuid4().hex
        letter.created_at = now
        letter.updated_at = now

        with self._use(conn) as c:
            c.execute(
                """
                INSERT INTO cover_letters (id, user_id, company, role, tone, content, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    letter.id,
                    letter.user_id,
                    letter.company,
                    letter.role,
                    letter.tone,
                    letter.content,
                    format_datetime(letter.created_at),
                    format_datetime(letter.updated_at),
                ),
            )
        return letter

    def list_cover_letters(self, user_id: str, conn=None) -> List[CoverLetter]:
        """Newest first."""
        with self._use(conn) as c:
            rows = c.execute(
                "SELECT * FROM cover_letters WHERE user_id = ? ORDER BY created_at DESC, id ASC",
                (user_id,),
            ).fetchall()
        return [CoverLetter.from_row(row) for row in rows]

    def get_cover_letter(self, letter_id: str, user_id: str, conn=None) -> Optional[CoverLetter]:
        with self._use(conn) as c:
            row = c.execute(
                "SELECT * FROM cover_letters WHERE id = ? AND user_id = ?", (letter_id, user_id)
            ).fetchone()
        return CoverLetter.from_row(row) if row else None

    def update_cover_letter_content(
        self, letter_id: str, user_id: str, content: str, conn=None
    ) -> CoverLetter:
        """
        Replace a letter's text.

        Raises:
            NotFoundError: If the user has no such letter
        """
        with self._use(conn) as c:
            cursor = c.execute(
                "UPDATE cover_letters SET content = ?, updated_at = ? WHERE id = ? AND user_id = ?",
                (content, format_datetime(utcnow()), letter_id, user_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Cover letter not found")
            row = c.execute("SELECT * FROM cover_letters WHERE id = ?", (letter_id,)).fetchone()
        return CoverLetter.from_row(row)

    def delete_cover_letter(self, letter_id: str, user_id: str, conn=None) -> bool:
        with self._use(conn) as c:
            cursor = c.execute(
                "DELETE FROM cover_letters WHERE id = ? AND user_id = ?", (letter_id, user_id)
            )
        return cursor.rowcount > 0
