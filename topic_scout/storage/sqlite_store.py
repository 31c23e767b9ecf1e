"""
SQLite history backend

預設的嵌入式後端。所有 SQL 均使用參數綁定。
"""

import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

from topic_scout.errors import StoreError
from topic_scout.storage.history import HistoryStore, TOPIC_COLUMNS

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS topics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    keyword TEXT NOT NULL,
    data_source TEXT NOT NULL,
    article_count INTEGER NOT NULL DEFAULT 0,
    total INTEGER,
    total_page INTEGER,
    page INTEGER,
    raw_cut_words TEXT,
    report_json TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_topics_created_at ON topics(created_at DESC);
"""

_SELECT = f"SELECT {', '.join(TOPIC_COLUMNS)} FROM topics"
_ORDER = "ORDER BY datetime(created_at) DESC, id DESC"


class SqliteHistoryStore(HistoryStore):
    """SQLite 儲存後端"""

    def __init__(self, path: str = "data/content-factory.db", max_records: Optional[int] = None):
        """
        開啟資料庫並建立 schema

        Args:
            path: 資料庫檔案 (":memory:" 為記憶體資料庫)
            max_records: 保留筆數上限 (None=不清理)
        """
        super().__init__(max_records=max_records)
        self.path = path

        try:
            if path != ":memory:":
                Path(path).parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(path)
            self.conn.row_factory = sqlite3.Row
            with self.conn:
                self.conn.executescript(SCHEMA)
        except (sqlite3.Error, OSError) as e:
            logger.error(f"✗ Failed to open SQLite history store at {path}: {e}")
            raise StoreError(f"无法打开历史记录数据库: {e}") from e

        logger.info(f"SQLite history store initialized at {path}")

    def _execute(self, sql: str, params: tuple = (), action: str = "query") -> sqlite3.Cursor:
        try:
            with self.conn:
                return self.conn.execute(sql, params)
        except sqlite3.Error as e:
            logger.error(f"Failed to {action} topic history: {e}")
            raise StoreError(f"Topic history {action} failed: {e}") from e

    def _insert(self, params: tuple) -> int:
        sql = """
        INSERT INTO topics (
            keyword, data_source, article_count, total, total_page,
            page, raw_cut_words, report_json
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """
        return int(self._execute(sql, params, "save").lastrowid)

    def _fetch_rows(self, limit: int) -> List[Dict[str, Any]]:
        cur = self._execute(f"{_SELECT} {_ORDER} LIMIT ?", (limit,), "list")
        return [dict(row) for row in cur.fetchall()]

    def _fetch_row(self, record_id: int) -> Optional[Dict[str, Any]]:
        row = self._execute(f"{_SELECT} WHERE id = ?", (record_id,), "get").fetchone()
        return dict(row) if row else None

    def _delete(self, record_id: int) -> bool:
        cur = self._execute("DELETE FROM topics WHERE id = ?", (record_id,), "delete")
        return cur.rowcount > 0

    def _prune(self, keep: int) -> int:
        sql = f"DELETE FROM topics WHERE id NOT IN (SELECT id FROM topics {_ORDER} LIMIT ?)"
        return self._execute(sql, (keep,), "prune").rowcount

    def close(self):
        """關閉連線"""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info("SQLite history store closed")
