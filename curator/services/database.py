import asyncio
import aiosqlite
from curator.config import settings
from curator.models.articles import UserRecord, CuratedFeedRecord
from curator.services.logger import logger
import json
from datetime import datetime
from pathlib import Path
from typing import Awaitable, List, Optional, Set

INIT_SQL = """
CREATE TABLE IF NOT EXISTS users (
    user_id TEXT PRIMARY KEY,
    email TEXT UNIQUE NOT NULL,
    user_interests TEXT,
    selected_sections TEXT,
    paid BOOLEAN DEFAULT 0,
    is_first_conversation_complete BOOLEAN DEFAULT 0,
    created_at TIMESTAMP,
    last_updated TIMESTAMP,
    last_report_generated_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS curated_feeds (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    email TEXT NOT NULL,
    curated_articles JSON,
    article_count INTEGER,
    is_first_feed BOOLEAN DEFAULT 0,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY(user_id) REFERENCES users(user_id)
);
"""

def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class Database:
    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or settings.DATA_DIR / "curator.db"

    async def init(self):
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as db:
            await db.executescript(INIT_SQL)
            await db.commit()
        logger.info(f"Database initialized at {self.db_path}")

    def get_connection(self):
        return aiosqlite.connect(self.db_path)

    async def upsert_user(self, user: UserRecord) -> None:
        """Insert a user or update the existing row. Fields passed as None keep their stored value."""
        async with self.get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO users (user_id, email, user_interests, selected_sections, paid,
                                   is_first_conversation_complete, created_at, last_updated, last_report_generated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    email = excluded.email,
                    user_interests = COALESCE(excluded.user_interests, users.user_interests),
                    selected_sections = COALESCE(excluded.selected_sections, users.selected_sections),
                    paid = excluded.paid,
                    is_first_conversation_complete = excluded.is_first_conversation_complete,
                    last_updated = excluded.last_updated,
                    last_report_generated_at = COALESCE(excluded.last_report_generated_at, users.last_report_generated_at)
                """,
                (user.user_id, user.email, user.user_interests, user.selected_sections, int(user.paid),
                 int(user.is_first_conversation_complete), _iso(user.created_at), _iso(user.last_updated),
                 _iso(user.last_report_generated_at))
            )
            await conn.commit()
        logger.info(f"✅ User saved: {user.email} ({user.user_id})")

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        async with self.get_connection() as conn:
            conn.row_factory = aiosqlite.Row
            cursor = await conn.execute("SELECT * FROM users WHERE email = ?", (email,))
            row = await cursor.fetchone()
        if row is None:
            return None
        data = dict(row)
        data["paid"] = bool(data["paid"])
        data["is_first_conversation_complete"] = bool(data["is_first_conversation_complete"])
        return UserRecord.model_validate(data)

    async def save_curated_feed(self, feed: CuratedFeedRecord) -> int:
        async with self.get_connection() as conn:
            cursor = await conn.execute(
                """
                INSERT INTO curated_feeds (user_id, email, curated_articles, article_count, is_first_feed, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (feed.user_id, feed.email, json.dumps(feed.curated_articles), feed.article_count,
                 int(feed.is_first_feed), _iso(feed.created_at))
            )
            await conn.commit()
            feed_id = cursor.lastrowid
        logger.info(f"✅ Saved curated feed #{feed_id} with {feed.article_count} articles for {feed.email}")
        return feed_id

    async def get_latest_curated_feed(self, user_id: str) -> Optional[CuratedFeedRecord]:
        async with self.get_connection() as conn:
            conn.row_factory = aiosqlite.Row
            cursor = await conn.execute(
                "SELECT * FROM curated_feeds WHERE user_id = ? ORDER BY created_at DESC, id DESC LIMIT 1", (user_id,)
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        data = dict(row)
        data["curated_articles"] = json.loads(data["curated_articles"]) if data["curated_articles"] else []
        data["is_first_feed"] = bool(data["is_first_feed"])
        return CuratedFeedRecord.model_validate(data)


class BackgroundWriter:
    """
    Runs persistence coroutines as background tasks. Failures are logged and
    collected in `errors`; they never reach the caller that submitted them.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()
        self.errors: List[BaseException] = []

    def submit(self, coro: Awaitable, label: str = "persistence") -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._on_done(t, label))
        return task

    def _on_done(self, task: asyncio.Task, label: str) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"⚠️ Background {label} task was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            self.errors.append(exc)
            logger.error(f"❌ Background {label} failed: {exc}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        if self._tasks:
            logger.info(f"⏳ Waiting for {len(self._tasks)} background task(s) to finish...")
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            # Let done-callbacks run before returning
            await asyncio.sleep(0)

db = Database()
