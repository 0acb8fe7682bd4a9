"""
Database module for the Submission Worker.
Implements SQLite persistence with async support.

Tables:
- websites: business listings being submitted
- directories: third-party directory catalog (with adapter config)
- submissions: one row per (website, directory) job with retry state
"""

import json
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, List, Dict, Any

import aiosqlite

from core.models import Website, Directory, Submission, SubmissionStatus

from .config import config

WEBSITE_COLUMNS = [
    "name", "url", "tagline", "description_short", "description_medium", "description_long",
    "industry", "category", "location", "pricing_model", "screenshot_url",
    "twitter_url", "linkedin_url", "github_url",
    "contact_email", "founder_name", "founder_email",
]

# Columns the queue worker is allowed to change through update_submission()
SUBMISSION_UPDATABLE = {
    "status", "retry_count", "infrastructure_retries", "next_retry_at",
    "error_message", "error_category", "listing_url", "submitted_at",
    "title_used", "description_used",
}


def _iso(value):
    return value.isoformat() if isinstance(value, datetime) else value


def _parse_dt(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


class SubmissionStore:
    """aiosqlite-backed store for websites, directories and submission jobs."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = Path(db_path or config.DATABASE_PATH)

    @asynccontextmanager
    async def get_db(self):
        """Get a database connection."""
        db = await aiosqlite.connect(self.db_path)
        db.row_factory = aiosqlite.Row
        try:
            yield db
        finally:
            await db.close()

    async def init_database(self):
        """Initialize the database schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS websites (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    url TEXT NOT NULL,
                    tagline TEXT,
                    description_short TEXT,
                    description_medium TEXT,
                    description_long TEXT,
                    industry TEXT,
                    category TEXT,
                    location TEXT,
                    pricing_model TEXT,
                    screenshot_url TEXT,
                    twitter_url TEXT,
                    linkedin_url TEXT,
                    github_url TEXT,
                    contact_email TEXT,
                    founder_name TEXT,
                    founder_email TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS directories (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    url TEXT NOT NULL,
                    submission_url TEXT,
                    submission_type TEXT DEFAULT 'form',
                    adapter_name TEXT,
                    adapter_config TEXT,
                    is_active BOOLEAN DEFAULT 1,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS submissions (
                    id TEXT PRIMARY KEY,
                    website_id TEXT NOT NULL,
                    directory_id TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    retry_count INTEGER DEFAULT 0,
                    next_retry_at TEXT,
                    error_message TEXT,
                    listing_url TEXT,
                    submitted_at TEXT,
                    title_used TEXT,
                    description_used TEXT,
                    created_at TEXT,
                    updated_at TEXT,
                    FOREIGN KEY (website_id) REFERENCES websites(id),
                    FOREIGN KEY (directory_id) REFERENCES directories(id)
                )
            """)

            await db.execute(
                "CREATE INDEX IF NOT EXISTS idx_submissions_status_created ON submissions(status, created_at)"
            )
            await db.commit()

            # Lightweight migrations for additive columns.
            await self._migrate_submissions(db)
            await db.commit()

    async def _migrate_submissions(self, db: aiosqlite.Connection):
        """Add retry bookkeeping columns to submissions if missing."""
        cursor = await db.execute("PRAGMA table_info(submissions)")
        rows = await cursor.fetchall()
        existing = {row[1] for row in rows}  # (cid, name, type, notnull, dflt, pk)

        migrations = [
            ("infrastructure_retries", "INTEGER DEFAULT 0"),
            ("error_category", "TEXT"),
        ]

        for col, col_type in migrations:
            if col in existing:
                continue
            await db.execute(f"ALTER TABLE submissions ADD COLUMN {col} {col_type}")

    # === Catalog ===

    async def create_website(self, website: Website) -> str:
        website_id = website.id or _new_id("w")
        values = [getattr(website, col) for col in WEBSITE_COLUMNS]
        async with self.get_db() as db:
            await db.execute(
                f"""INSERT INTO websites (id, {', '.join(WEBSITE_COLUMNS)})
                    VALUES (?, {', '.join('?' for _ in WEBSITE_COLUMNS)})""",
                (website_id, *values),
            )
            await db.commit()
        website.id = website_id
        return website_id

    async def create_directory(self, directory: Directory) -> str:
        directory_id = directory.id or _new_id("d")
        async with self.get_db() as db:
            await db.execute(
                """INSERT INTO directories
                   (id, name, url, submission_url, submission_type, adapter_name, adapter_config, is_active)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    directory_id,
                    directory.name,
                    directory.url,
                    directory.submission_url,
                    directory.submission_type.value,
                    directory.adapter_name,
                    json.dumps(directory.adapter_config or {}),
                    1 if directory.is_active else 0,
                ),
            )
            await db.commit()
        directory.id = directory_id
        return directory_id

    async def get_website(self, website_id: str) -> Optional[Website]:
        async with self.get_db() as db:
            return await self._load_website(db, website_id)

    async def get_directory(self, directory_id: str) -> Optional[Directory]:
        async with self.get_db() as db:
            return await self._load_directory(db, directory_id)

    async def _load_website(self, db, website_id) -> Optional[Website]:
        cursor = await db.execute("SELECT * FROM websites WHERE id = ?", (website_id,))
        row = await cursor.fetchone()
        return Website.from_dict(dict(row)) if row else None

    async def _load_directory(self, db, directory_id) -> Optional[Directory]:
        cursor = await db.execute("SELECT * FROM directories WHERE id = ?", (directory_id,))
        row = await cursor.fetchone()
        if not row:
            return None
        data = dict(row)
        data["adapter_config"] = json.loads(data.get("adapter_config") or "{}")
        return Directory.from_dict(data)

    # === Submissions ===

    async def create_submission(self, website_id: str, directory_id: str) -> str:
        """Enqueue a pending submission job."""
        submission_id = _new_id("s")
        now = datetime.now().isoformat()
        async with self.get_db() as db:
            await db.execute(
                """INSERT INTO submissions
                   (id, website_id, directory_id, status, retry_count, infrastructure_retries,
                    created_at, updated_at)
                   VALUES (?, ?, ?, 'pending', 0, 0, ?, ?)""",
                (submission_id, website_id, directory_id, now, now),
            )
            await db.commit()
        return submission_id

    async def _to_submission(self, db, row) -> Submission:
        data = dict(row)
        return Submission(
            id=data["id"],
            website=await self._load_website(db, data["website_id"]),
            directory=await self._load_directory(db, data["directory_id"]),
            status=SubmissionStatus(data["status"]),
            retry_count=data.get("retry_count") or 0,
            infrastructure_retries=data.get("infrastructure_retries") or 0,
            next_retry_at=_parse_dt(data.get("next_retry_at")),
            error_message=data.get("error_message"),
            error_category=data.get("error_category"),
            listing_url=data.get("listing_url"),
            submitted_at=_parse_dt(data.get("submitted_at")),
            title_used=data.get("title_used"),
            description_used=data.get("description_used"),
            created_at=_parse_dt(data.get("created_at")),
            updated_at=_parse_dt(data.get("updated_at")),
        )

    async def fetch_pending_submissions(
        self,
        limit: int = 5,
        max_retries: int = 3,
        now: Optional[datetime] = None,
    ) -> List[Submission]:
        """Oldest pending jobs that still have retry budget and whose backoff has elapsed."""
        now_iso = (now or datetime.now()).isoformat()
        async with self.get_db() as db:
            cursor = await db.execute(
                """SELECT * FROM submissions
                   WHERE status = 'pending'
                     AND retry_count < ?
                     AND (next_retry_at IS NULL OR next_retry_at <= ?)
                   ORDER BY created_at ASC
                   LIMIT ?""",
                (max_retries, now_iso, limit),
            )
            rows = await cursor.fetchall()
            return [await self._to_submission(db, row) for row in rows]

    async def get_submission(self, submission_id: str) -> Optional[Submission]:
        async with self.get_db() as db:
            cursor = await db.execute("SELECT * FROM submissions WHERE id = ?", (submission_id,))
            row = await cursor.fetchone()
            return await self._to_submission(db, row) if row else None

    async def mark_in_progress(
        self,
        submission_id: str,
        title_used: Optional[str] = None,
        description_used: Optional[str] = None,
    ) -> bool:
        """
        Claim a pending job.

        Returns False when another worker changed the row first.
        """
        now = datetime.now().isoformat()
        async with self.get_db() as db:
            cursor = await db.execute(
                """UPDATE submissions
                   SET status = 'in_progress', title_used = ?, description_used = ?, updated_at = ?
                   WHERE id = ? AND status = 'pending'""",
                (title_used, description_used, now, submission_id),
            )
            await db.commit()
            return cursor.rowcount == 1

    async def mark_submitted(self, submission_id: str, listing_url: Optional[str] = None):
        now = datetime.now().isoformat()
        async with self.get_db() as db:
            await db.execute(
                """UPDATE submissions
                   SET status = 'submitted', submitted_at = ?, listing_url = ?,
                       error_message = NULL, error_category = NULL, next_retry_at = NULL,
                       updated_at = ?
                   WHERE id = ?""",
                (now, listing_url, now, submission_id),
            )
            await db.commit()

    async def update_submission(self, submission_id: str, **fields):
        """Update whitelisted submission columns and bump updated_at."""
        unknown = set(fields) - SUBMISSION_UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update submission columns: {', '.join(sorted(unknown))}")

        values = {}
        for key, value in fields.items():
            if isinstance(value, Enum):
                value = value.value
            values[key] = _iso(value)
        values["updated_at"] = datetime.now().isoformat()

        assignments = ", ".join(f"{key} = ?" for key in values)
        async with self.get_db() as db:
            await db.execute(
                f"UPDATE submissions SET {assignments} WHERE id = ?",
                (*values.values(), submission_id),
            )
            await db.commit()

    async def get_status_counts(self) -> Dict[str, int]:
        async with self.get_db() as db:
            cursor = await db.execute(
                """SELECT status, COUNT(*) as count
                   FROM submissions
                   GROUP BY status"""
            )
            rows = await cursor.fetchall()
            out: Dict[str, int] = {}
            for row in rows:
                out[str(row["status"])] = int(row["count"])
            return out

    async def list_submissions(self, status: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
        async with self.get_db() as db:
            if status:
                cursor = await db.execute(
                    "SELECT * FROM submissions WHERE status = ? ORDER BY created_at DESC LIMIT ?",
                    (status, limit),
                )
            else:
                cursor = await db.execute(
                    "SELECT * FROM submissions ORDER BY created_at DESC LIMIT ?",
                    (limit,),
                )
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]
