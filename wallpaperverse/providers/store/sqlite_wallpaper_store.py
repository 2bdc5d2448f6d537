"""SQLite-backed gallery store.

Persists categories, wallpapers, tags and view/download events to a local
SQLite database using ``aiosqlite`` for async I/O.  Every operation opens
its own connection, so concurrent upserts from the sync pipeline are
serialized by SQLite's own locking (WAL mode, generous busy timeout) and
the UNIQUE constraints are the only guard against duplicate rows.
"""

from __future__ import annotations

import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite
import structlog

from wallpaperverse.interfaces.wallpaper_store import IWallpaperStore
from wallpaperverse.models.results import GalleryStats
from wallpaperverse.models.wallpaper import (
    Category,
    DownloadEvent,
    NewWallpaper,
    Tag,
    ViewEvent,
    Wallpaper,
)
from wallpaperverse.utils.errors import (
    DuplicateWallpaperError,
    PersistenceError,
    WallpaperVerseError,
)

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/wallpaperverse.db")
_BUSY_TIMEOUT = 30.0
_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"

_CREATE_TABLES_SQL = [
    f"""\
CREATE TABLE IF NOT EXISTS categories (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    name             TEXT    NOT NULL,
    slug             TEXT    NOT NULL UNIQUE,
    description      TEXT,
    wallpaper_count  INTEGER NOT NULL DEFAULT 0,
    is_active        INTEGER NOT NULL DEFAULT 1,
    created_at       TEXT    NOT NULL DEFAULT ({_NOW}),
    updated_at       TEXT    NOT NULL DEFAULT ({_NOW})
);
""",
    f"""\
CREATE TABLE IF NOT EXISTS wallpapers (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    external_id      TEXT    NOT NULL UNIQUE,
    source           TEXT    NOT NULL,
    title            TEXT,
    description      TEXT,
    alt_text         TEXT,
    url_thumb        TEXT,
    url_small        TEXT    NOT NULL,
    url_regular      TEXT    NOT NULL,
    url_full         TEXT    NOT NULL,
    url_raw          TEXT,
    width            INTEGER NOT NULL,
    height           INTEGER NOT NULL,
    aspect_ratio     REAL    NOT NULL,
    color            TEXT,
    blur_hash        TEXT,
    author_name      TEXT,
    author_username  TEXT,
    views            INTEGER NOT NULL DEFAULT 0,
    downloads        INTEGER NOT NULL DEFAULT 0,
    likes            INTEGER NOT NULL DEFAULT 0,
    is_active        INTEGER NOT NULL DEFAULT 1,
    is_featured      INTEGER NOT NULL DEFAULT 0,
    category_id      INTEGER NOT NULL REFERENCES categories(id),
    published_at     TEXT    NOT NULL DEFAULT ({_NOW}),
    created_at       TEXT    NOT NULL DEFAULT ({_NOW}),
    updated_at       TEXT    NOT NULL DEFAULT ({_NOW})
);
""",
    f"""\
CREATE TABLE IF NOT EXISTS tags (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    name             TEXT    NOT NULL UNIQUE,
    wallpaper_count  INTEGER NOT NULL DEFAULT 0,
    created_at       TEXT    NOT NULL DEFAULT ({_NOW})
);
""",
    """\
CREATE TABLE IF NOT EXISTS wallpaper_tags (
    wallpaper_id  INTEGER NOT NULL REFERENCES wallpapers(id) ON DELETE CASCADE,
    tag_id        INTEGER NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
    PRIMARY KEY (wallpaper_id, tag_id)
);
""",
    f"""\
CREATE TABLE IF NOT EXISTS wallpaper_views (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    wallpaper_id  INTEGER NOT NULL REFERENCES wallpapers(id) ON DELETE CASCADE,
    user_id       TEXT,
    user_agent    TEXT,
    ip_address    TEXT,
    referrer      TEXT,
    created_at    TEXT    NOT NULL DEFAULT ({_NOW})
);
""",
    f"""\
CREATE TABLE IF NOT EXISTS wallpaper_downloads (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    wallpaper_id  INTEGER NOT NULL REFERENCES wallpapers(id) ON DELETE CASCADE,
    user_id       TEXT,
    user_agent    TEXT,
    ip_address    TEXT,
    referrer      TEXT,
    created_at    TEXT    NOT NULL DEFAULT ({_NOW})
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_wallpapers_category ON wallpapers(category_id, created_at);",
    "CREATE INDEX IF NOT EXISTS idx_wallpapers_created ON wallpapers(created_at);",
    "CREATE INDEX IF NOT EXISTS idx_wallpapers_popularity ON wallpapers(views, downloads, likes);",
    "CREATE INDEX IF NOT EXISTS idx_wallpapers_featured ON wallpapers(is_featured);",
    "CREATE INDEX IF NOT EXISTS idx_wallpaper_tags_tag ON wallpaper_tags(tag_id);",
    "CREATE INDEX IF NOT EXISTS idx_views_wallpaper ON wallpaper_views(wallpaper_id);",
    "CREATE INDEX IF NOT EXISTS idx_downloads_wallpaper ON wallpaper_downloads(wallpaper_id);",
]

_INSERT_WALLPAPER_SQL = """\
INSERT INTO wallpapers (
    external_id, source, title, description, alt_text,
    url_thumb, url_small, url_regular, url_full, url_raw,
    width, height, aspect_ratio, color, blur_hash,
    author_name, author_username, views, downloads, likes, category_id
) VALUES (
    :external_id, :source, :title, :description, :alt_text,
    :url_thumb, :url_small, :url_regular, :url_full, :url_raw,
    :width, :height, :aspect_ratio, :color, :blur_hash,
    :author_name, :author_username, :views, :downloads, :likes, :category_id
);
"""

_UPSERT_TAG_SQL = """\
INSERT INTO tags (name, wallpaper_count)
VALUES (?, 1)
ON CONFLICT(name)
DO UPDATE SET wallpaper_count = wallpaper_count + 1;
"""

_LINK_TAG_BY_NAME_SQL = """\
INSERT OR IGNORE INTO wallpaper_tags (wallpaper_id, tag_id)
SELECT ?, id FROM tags WHERE name = ?;
"""

_SEARCH_WHERE_SQL = """\
w.is_active = 1 AND (
    w.title LIKE :pattern ESCAPE '\\'
    OR w.description LIKE :pattern ESCAPE '\\'
    OR w.alt_text LIKE :pattern ESCAPE '\\'
    OR EXISTS (
        SELECT 1 FROM wallpaper_tags wt
        JOIN tags t ON t.id = wt.tag_id
        WHERE wt.wallpaper_id = w.id AND t.name LIKE :pattern ESCAPE '\\'
    )
)"""

_TRENDING_ORDER = "w.views DESC, w.downloads DESC, w.likes DESC, w.created_at DESC, w.id DESC"
_LATEST_ORDER = "w.created_at DESC, w.id DESC"


def _like_pattern(query: str) -> str:
    """Wrap *query* in ``%`` wildcards, escaping LIKE metacharacters."""
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _to_wallpaper(row: aiosqlite.Row, tags: list[str] | None = None) -> Wallpaper:
    data: dict[str, Any] = dict(row)
    data["tags"] = tags or []
    return Wallpaper.model_validate(data)


class SQLiteWallpaperStore(IWallpaperStore):
    """SQLite-backed gallery persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Open a connection with row access by name and foreign keys on.

        Any ``sqlite3.Error`` escaping the block is re-raised as
        :class:`PersistenceError`; errors already in the application
        hierarchy pass through untouched.
        """
        try:
            async with aiosqlite.connect(str(self._db_path), timeout=_BUSY_TIMEOUT) as db:
                db.row_factory = aiosqlite.Row
                await db.execute("PRAGMA foreign_keys = ON;")
                yield db
        except WallpaperVerseError:
            raise
        except sqlite3.Error as exc:
            logger.error("sqlite_error", path=str(self._db_path), error=str(exc))
            raise PersistenceError(
                message=f"SQLite operation failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def _fetch_wallpapers(self, sql: str, params: dict[str, Any] | tuple = ()) -> list[Wallpaper]:
        async with self._connect() as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [_to_wallpaper(r) for r in rows]

    async def _page(
        self,
        where: str,
        order: str,
        params: dict[str, Any],
        limit: int,
        offset: int,
    ) -> tuple[list[Wallpaper], int]:
        async with self._connect() as db:
            cursor = await db.execute(f"SELECT COUNT(*) FROM wallpapers w WHERE {where}", params)
            (total,) = await cursor.fetchone()
            cursor = await db.execute(
                f"SELECT w.* FROM wallpapers w WHERE {where} ORDER BY {order} LIMIT :limit OFFSET :offset",
                {**params, "limit": limit, "offset": offset},
            )
            rows = await cursor.fetchall()
        return [_to_wallpaper(r) for r in rows], total

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create tables and indices if they don't exist and switch to WAL."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            await db.execute("PRAGMA journal_mode = WAL;")
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("wallpaper_db_initialized", path=str(self._db_path))

    async def ping(self) -> bool:
        try:
            async with self._connect() as db:
                await db.execute("SELECT 1")
        except PersistenceError:
            return False
        return True

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def ensure_categories(self, categories: list[dict[str, Any]]) -> int:
        inserted = 0
        async with self._connect() as db:
            for category in categories:
                cursor = await db.execute(
                    "INSERT OR IGNORE INTO categories (name, slug, description) VALUES (?, ?, ?)",
                    (category.get("name") or category["slug"].title(), category["slug"], category.get("description")),
                )
                inserted += cursor.rowcount
            await db.commit()
        if inserted:
            logger.info("categories_seeded", inserted=inserted)
        return inserted

    async def list_categories(self, active_only: bool = True) -> list[Category]:
        sql = "SELECT * FROM categories"
        if active_only:
            sql += " WHERE is_active = 1"
        sql += " ORDER BY name ASC"
        async with self._connect() as db:
            cursor = await db.execute(sql)
            rows = await cursor.fetchall()
        return [Category.model_validate(dict(r)) for r in rows]

    async def get_category_by_slug(self, slug: str) -> Category | None:
        async with self._connect() as db:
            cursor = await db.execute("SELECT * FROM categories WHERE slug = ?", (slug,))
            row = await cursor.fetchone()
        return Category.model_validate(dict(row)) if row else None

    async def increment_category_count(self, category_id: int, amount: int = 1) -> None:
        async with self._connect() as db:
            await db.execute(
                f"UPDATE categories SET wallpaper_count = wallpaper_count + ?, updated_at = {_NOW} WHERE id = ?",
                (amount, category_id),
            )
            await db.commit()

    # ------------------------------------------------------------------
    # Wallpapers: write side
    # ------------------------------------------------------------------

    async def find_by_external_id(self, external_id: str) -> Wallpaper | None:
        async with self._connect() as db:
            cursor = await db.execute("SELECT * FROM wallpapers WHERE external_id = ?", (external_id,))
            row = await cursor.fetchone()
        return _to_wallpaper(row) if row else None

    async def _insert_wallpaper(self, db: aiosqlite.Connection, wallpaper: NewWallpaper) -> int:
        try:
            cursor = await db.execute(_INSERT_WALLPAPER_SQL, wallpaper.model_dump(mode="json"))
        except sqlite3.IntegrityError as exc:
            if "external_id" in str(exc):
                raise DuplicateWallpaperError(
                    message=f"Wallpaper {wallpaper.external_id} already exists",
                    provider_name=self.get_provider_name(),
                ) from exc
            raise
        return cursor.lastrowid

    async def create_wallpaper(self, wallpaper: NewWallpaper) -> Wallpaper:
        async with self._connect() as db:
            wallpaper_id = await self._insert_wallpaper(db, wallpaper)
            await db.commit()
            cursor = await db.execute("SELECT * FROM wallpapers WHERE id = ?", (wallpaper_id,))
            row = await cursor.fetchone()
        return _to_wallpaper(row)

    async def create_wallpaper_with_tags(self, wallpaper: NewWallpaper, tags: list[str]) -> Wallpaper:
        tags = list(dict.fromkeys(tags))
        async with self._connect() as db:
            try:
                wallpaper_id = await self._insert_wallpaper(db, wallpaper)
                for name in tags:
                    await db.execute(_UPSERT_TAG_SQL, (name,))
                    await db.execute(_LINK_TAG_BY_NAME_SQL, (wallpaper_id, name))
                await db.execute(
                    f"UPDATE categories SET wallpaper_count = wallpaper_count + 1, updated_at = {_NOW} WHERE id = ?",
                    (wallpaper.category_id,),
                )
                await db.commit()
            except (sqlite3.Error, DuplicateWallpaperError):
                await db.rollback()
                raise
            cursor = await db.execute("SELECT * FROM wallpapers WHERE id = ?", (wallpaper_id,))
            row = await cursor.fetchone()
        return _to_wallpaper(row, tags=list(tags))

    async def update_counters(self, wallpaper_id: int, views: int, downloads: int, likes: int) -> Wallpaper:
        async with self._connect() as db:
            await db.execute(
                f"UPDATE wallpapers SET views = ?, downloads = ?, likes = ?, updated_at = {_NOW} WHERE id = ?",
                (views, downloads, likes, wallpaper_id),
            )
            await db.commit()
            cursor = await db.execute("SELECT * FROM wallpapers WHERE id = ?", (wallpaper_id,))
            row = await cursor.fetchone()
        if row is None:
            raise PersistenceError(
                message=f"Wallpaper {wallpaper_id} vanished during counter update",
                provider_name=self.get_provider_name(),
            )
        return _to_wallpaper(row)

    async def upsert_tag(self, name: str) -> Tag:
        async with self._connect() as db:
            await db.execute(_UPSERT_TAG_SQL, (name,))
            await db.commit()
            cursor = await db.execute("SELECT id, name, wallpaper_count FROM tags WHERE name = ?", (name,))
            row = await cursor.fetchone()
        return Tag.model_validate(dict(row))

    async def link_tag(self, wallpaper_id: int, tag_id: int) -> None:
        async with self._connect() as db:
            await db.execute(
                "INSERT OR IGNORE INTO wallpaper_tags (wallpaper_id, tag_id) VALUES (?, ?)",
                (wallpaper_id, tag_id),
            )
            await db.commit()

    async def set_featured(self, wallpaper_id: int, featured: bool) -> Wallpaper | None:
        async with self._connect() as db:
            cursor = await db.execute(
                f"UPDATE wallpapers SET is_featured = ?, updated_at = {_NOW} WHERE id = ?",
                (int(featured), wallpaper_id),
            )
            await db.commit()
            if cursor.rowcount == 0:
                return None
            cursor = await db.execute("SELECT * FROM wallpapers WHERE id = ?", (wallpaper_id,))
            row = await cursor.fetchone()
        return _to_wallpaper(row)

    # ------------------------------------------------------------------
    # Wallpapers: read side
    # ------------------------------------------------------------------

    async def get_wallpaper(self, wallpaper_id: int) -> Wallpaper | None:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT w.*, c.slug AS category_slug FROM wallpapers w "
                "JOIN categories c ON c.id = w.category_id "
                "WHERE w.id = ? AND w.is_active = 1",
                (wallpaper_id,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            cursor = await db.execute(
                "SELECT t.name FROM tags t JOIN wallpaper_tags wt ON wt.tag_id = t.id "
                "WHERE wt.wallpaper_id = ? ORDER BY t.name",
                (wallpaper_id,),
            )
            tags = [r["name"] for r in await cursor.fetchall()]
        return _to_wallpaper(row, tags=tags)

    async def list_trending(self, limit: int) -> list[Wallpaper]:
        return await self._fetch_wallpapers(
            f"SELECT w.* FROM wallpapers w WHERE w.is_active = 1 ORDER BY {_TRENDING_ORDER} LIMIT ?",
            (limit,),
        )

    async def list_latest(self, limit: int, offset: int = 0) -> tuple[list[Wallpaper], int]:
        return await self._page("w.is_active = 1", _LATEST_ORDER, {}, limit, offset)

    async def list_featured(self, limit: int) -> list[Wallpaper]:
        return await self._fetch_wallpapers(
            f"SELECT w.* FROM wallpapers w WHERE w.is_active = 1 AND w.is_featured = 1 "
            f"ORDER BY {_LATEST_ORDER} LIMIT ?",
            (limit,),
        )

    async def list_high_quality(
        self,
        limit: int,
        min_views: int = 1000,
        min_downloads: int = 100,
    ) -> list[Wallpaper]:
        return await self._fetch_wallpapers(
            "SELECT w.* FROM wallpapers w "
            "WHERE w.is_active = 1 AND w.views >= ? AND w.downloads >= ? "
            "ORDER BY w.views DESC, w.downloads DESC, w.id DESC LIMIT ?",
            (min_views, min_downloads, limit),
        )

    async def list_by_category(self, category_id: int, limit: int, offset: int = 0) -> tuple[list[Wallpaper], int]:
        return await self._page(
            "w.is_active = 1 AND w.category_id = :category_id",
            _LATEST_ORDER,
            {"category_id": category_id},
            limit,
            offset,
        )

    async def search(self, query: str, limit: int, offset: int = 0) -> tuple[list[Wallpaper], int]:
        return await self._page(
            _SEARCH_WHERE_SQL,
            "w.views DESC, w.created_at DESC, w.id DESC",
            {"pattern": _like_pattern(query)},
            limit,
            offset,
        )

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def _record_event(self, table: str, counter: str, wallpaper_id: int, event: ViewEvent) -> bool:
        async with self._connect() as db:
            cursor = await db.execute("SELECT 1 FROM wallpapers WHERE id = ?", (wallpaper_id,))
            if await cursor.fetchone() is None:
                return False
            await db.execute(
                f"INSERT INTO {table} (wallpaper_id, user_id, user_agent, ip_address, referrer) "
                "VALUES (?, ?, ?, ?, ?)",
                (wallpaper_id, event.user_id, event.user_agent, event.ip_address, event.referrer),
            )
            await db.execute(
                f"UPDATE wallpapers SET {counter} = {counter} + 1 WHERE id = ?",
                (wallpaper_id,),
            )
            await db.commit()
        return True

    async def record_view(self, wallpaper_id: int, event: ViewEvent) -> bool:
        return await self._record_event("wallpaper_views", "views", wallpaper_id, event)

    async def record_download(self, wallpaper_id: int, event: DownloadEvent) -> bool:
        return await self._record_event("wallpaper_downloads", "downloads", wallpaper_id, event)

    # ------------------------------------------------------------------
    # Reconciliation & stats
    # ------------------------------------------------------------------

    async def recompute_category_counts(self) -> int:
        async with self._connect() as db:
            cursor = await db.execute(
                "UPDATE categories SET wallpaper_count = ("
                "    SELECT COUNT(*) FROM wallpapers w"
                "    WHERE w.category_id = categories.id AND w.is_active = 1"
                f"), updated_at = {_NOW}"
            )
            await db.commit()
        return cursor.rowcount

    async def recompute_tag_counts(self) -> int:
        async with self._connect() as db:
            cursor = await db.execute(
                "UPDATE tags SET wallpaper_count = ("
                "    SELECT COUNT(*) FROM wallpaper_tags wt WHERE wt.tag_id = tags.id"
                ")"
            )
            await db.commit()
        return cursor.rowcount

    async def get_stats(self) -> GalleryStats:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT COUNT(*) AS total, COALESCE(SUM(views), 0) AS views, "
                "COALESCE(SUM(downloads), 0) AS downloads FROM wallpapers WHERE is_active = 1"
            )
            wallpapers = await cursor.fetchone()
            cursor = await db.execute("SELECT COUNT(*) FROM categories WHERE is_active = 1")
            (categories,) = await cursor.fetchone()
            cursor = await db.execute("SELECT COUNT(*) FROM tags")
            (tags,) = await cursor.fetchone()
        return GalleryStats(
            total_wallpapers=wallpapers["total"],
            total_categories=categories,
            total_tags=tags,
            total_views=wallpapers["views"],
            total_downloads=wallpapers["downloads"],
        )

    def get_provider_name(self) -> str:
        return "sqlite"
