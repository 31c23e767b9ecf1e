"""
Postgres history backend with automatic schema initialization

使用 psycopg2-binary，每個操作一個 transaction，失敗即 rollback 並拋出。
"""

from typing import Any, Dict, List, Optional
import logging
import psycopg2
from psycopg2.extras import RealDictCursor

from topic_scout.errors import StoreError
from topic_scout.storage.history import HistoryStore, TOPIC_COLUMNS

logger = logging.getLogger(__name__)


DDL = """
CREATE TABLE IF NOT EXISTS topics (
    id BIGSERIAL PRIMARY KEY,
    keyword TEXT NOT NULL,
    data_source TEXT NOT NULL,
    article_count INT NOT NULL DEFAULT 0,
    total INT,
    total_page INT,
    page INT,
    raw_cut_words TEXT,
    report_json TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_topics_created_at ON topics(created_at DESC);
"""

_SELECT = f"SELECT {', '.join(TOPIC_COLUMNS)} FROM topics"
_ORDER = "ORDER BY created_at DESC, id DESC"


class PostgresHistoryStore(HistoryStore):
    """Postgres 儲存後端（不 fallback，fail fast）"""

    def __init__(self, dsn: str, auto_init_schema: bool = True, max_records: Optional[int] = None):
        """
        初始化 PostgresHistoryStore

        Args:
            dsn: Postgres connection string
            auto_init_schema: 是否自動建立 schema
            max_records: 保留筆數上限 (None=不清理)
        """
        super().__init__(max_records=max_records)
        self.dsn = dsn
        self.conn = None
        self._connect()

        if auto_init_schema:
            self.init_schema()

    def _connect(self):
        """建立資料庫連線（連線失敗直接拋出異常，不 fallback）"""
        try:
            self.conn = psycopg2.connect(self.dsn)
            self.conn.autocommit = False
            logger.info("✓ Connected to Postgres")
        except psycopg2.Error as e:
            logger.error(f"✗ Failed to connect to Postgres: {e}")
            raise StoreError(f"Postgres connection failed (no fallback): {e}") from e

    def init_schema(self):
        """初始化 topics 表（若不存在則建立）"""
        self._run(DDL, (), "init schema")
        logger.info("✓ Schema initialized successfully")

    def _run(self, sql: str, params: tuple, action: str, fetch: Optional[str] = None):
        """
        執行單一語句並 commit

        Args:
            fetch: None | "one" | "all" | "rowcount"
        """
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(sql, params)
                if fetch == "one":
                    result = cur.fetchone()
                elif fetch == "all":
                    result = cur.fetchall()
                elif fetch == "rowcount":
                    result = cur.rowcount
                else:
                    result = None
            self.conn.commit()
            return result
        except psycopg2.Error as e:
            self.conn.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise StoreError(f"Topic history {action} failed: {e}") from e

    def _insert(self, params: tuple) -> int:
        sql = """
        INSERT INTO topics (
            keyword, data_source, article_count, total, total_page,
            page, raw_cut_words, report_json
        ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING id
        """
        row = self._run(sql, params, "save", fetch="one")
        return int(row["id"])

    def _fetch_rows(self, limit: int) -> List[Dict[str, Any]]:
        rows = self._run(f"{_SELECT} {_ORDER} LIMIT %s", (limit,), "list", fetch="all")
        return [dict(row) for row in rows]

    def _fetch_row(self, record_id: int) -> Optional[Dict[str, Any]]:
        row = self._run(f"{_SELECT} WHERE id = %s", (record_id,), "get", fetch="one")
        return dict(row) if row else None

    def _delete(self, record_id: int) -> bool:
        return self._run("DELETE FROM topics WHERE id = %s", (record_id,), "delete", fetch="rowcount") > 0

    def _prune(self, keep: int) -> int:
        sql = f"DELETE FROM topics WHERE id NOT IN (SELECT id FROM topics {_ORDER} LIMIT %s)"
        return self._run(sql, (keep,), "prune", fetch="rowcount")

    def close(self):
        """關閉連線"""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info("Postgres connection closed")
