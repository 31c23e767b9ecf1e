"""
Topic history contract

歷史記錄以 topics 表保存：純量欄位供查詢/排序，巢狀報告序列化為 report_json 文字欄位。
讀取時對 report_json 做防禦性解析，壞資料降級為空報告而不中斷列表。
"""

import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
import logging

import pydantic

from topic_scout.config import ScoutConfig
from topic_scout.errors import StoreError, ValidationError
from topic_scout.models import (
    EngagedArticle,
    Insight,
    KeywordEntry,
    NormalizedArticle,
    ReportSnapshot,
    TopicHistoryRecord,
    TopicReport,
)

logger = logging.getLogger(__name__)


HISTORY_LIMIT = 30

TOPIC_COLUMNS = (
    "id", "keyword", "data_source", "article_count", "total", "total_page",
    "page", "raw_cut_words", "report_json", "created_at",
)

_REPORT_SECTIONS = {
    "articles": ("articles", NormalizedArticle),
    "top_liked": ("topLiked", NormalizedArticle),
    "top_engagement": ("topEngagement", EngagedArticle),
    "keyword_cloud": ("keywordCloud", KeywordEntry),
    "insights": ("insights", Insight),
}


def serialize_report(snapshot: ReportSnapshot) -> str:
    """巢狀報告 -> report_json"""
    report = snapshot.report.model_dump(by_alias=True)
    return json.dumps(report, ensure_ascii=False)


def _parse_section(value: Any, model) -> list:
    if not isinstance(value, list):
        return []
    try:
        return [model.model_validate(item) for item in value]
    except pydantic.ValidationError as e:
        logger.warning(f"Dropping malformed {model.__name__} section: {e.error_count()} errors")
        return []


def parse_report(raw: Any) -> TopicReport:
    """
    report_json -> TopicReport

    接受 JSON 字串或已解析的 dict；任何無法解析的段落都以空列表代替。
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Stored report_json is not valid JSON, using empty report")
            return TopicReport()

    if not isinstance(raw, dict):
        return TopicReport()

    sections = {}
    for field_name, (key, model) in _REPORT_SECTIONS.items():
        value = raw.get(key, raw.get(field_name))
        sections[field_name] = _parse_section(value, model)

    return TopicReport(**sections)


def _optional_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def _text_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _created_at(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return value if isinstance(value, str) else ""


def row_to_record(row: Dict[str, Any]) -> TopicHistoryRecord:
    """資料列 (snake_case) -> TopicHistoryRecord"""
    return TopicHistoryRecord(
        id=int(row["id"]),
        keyword=row["keyword"],
        data_source=row.get("data_source"),
        article_count=int(row.get("article_count") or 0),
        total=_optional_int(row.get("total")),
        total_page=_optional_int(row.get("total_page")),
        page=_optional_int(row.get("page")),
        raw_cut_words=_text_or_none(row.get("raw_cut_words")),
        created_at=_created_at(row.get("created_at")),
        report=parse_report(row.get("report_json")),
    )


def parse_history_items(raw: Any) -> List[TopicHistoryRecord]:
    """
    解析外部傳入的歷史記錄列表 (例如 API 回應)

    同時接受 camelCase 與 snake_case 欄位；缺少關鍵詞或 id 的項目會被略過。
    """
    if not isinstance(raw, list):
        return []

    items = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue

        keyword = entry.get("keyword")
        if not isinstance(keyword, str):
            keyword = entry.get("kw") if isinstance(entry.get("kw"), str) else ""
        if not keyword:
            continue

        record_id = _optional_int(entry.get("id"))
        if record_id is None:
            continue

        items.append(TopicHistoryRecord(
            id=record_id,
            keyword=keyword,
            data_source="remote" if "remote" in (entry.get("dataSource"), entry.get("data_source")) else "mock",
            article_count=_optional_int(entry.get("articleCount", entry.get("article_count"))) or 0,
            total=_optional_int(entry.get("total")),
            total_page=_optional_int(entry.get("totalPage", entry.get("total_page"))),
            page=_optional_int(entry.get("page")),
            raw_cut_words=_text_or_none(entry.get("rawCutWords", entry.get("raw_cut_words"))),
            created_at=_created_at(entry.get("createdAt", entry.get("created_at"))),
            report=parse_report(entry.get("report", entry.get("report_json"))),
        ))

    return items


class HistoryStore:
    """
    歷史記錄後端基底

    子類別負責連線與 SQL；驗證、序列化與列映射在這裡統一處理。
    """

    def __init__(self, max_records: Optional[int] = None):
        self.max_records = max_records

    def save(self, snapshot: ReportSnapshot) -> int:
        """
        保存一筆快照

        Returns:
            新記錄 id

        Raises:
            ValidationError: 關鍵詞為空
            StoreError: 寫入失敗
        """
        keyword = (snapshot.keyword or "").strip()
        if not keyword:
            raise ValidationError("keyword 不能为空")

        params = (
            keyword,
            snapshot.data_source,
            len(snapshot.articles),
            snapshot.total,
            snapshot.total_page,
            snapshot.page,
            snapshot.raw_cut_words,
            serialize_report(snapshot),
        )
        record_id = self._insert(params)
        logger.info(f"✓ Saved topic history #{record_id} ({keyword}, {len(snapshot.articles)} articles)")

        if self.max_records:
            try:
                self.prune(self.max_records)
            except StoreError as e:
                logger.warning(f"Failed to prune topic history after save #{record_id}: {e}")

        return record_id

    def list(self, limit: int = HISTORY_LIMIT) -> List[TopicHistoryRecord]:
        """依建立時間新到舊列出，最多 limit 筆"""
        return [row_to_record(row) for row in self._fetch_rows(max(0, int(limit)))]

    def get(self, record_id: int) -> Optional[TopicHistoryRecord]:
        row = self._fetch_row(int(record_id))
        return row_to_record(row) if row else None

    def delete(self, record_id: int) -> bool:
        """刪除一筆；id 不存在時回傳 False"""
        deleted = self._delete(int(record_id))
        if deleted:
            logger.info(f"✓ Deleted topic history #{record_id}")
        return deleted

    def prune(self, keep: int) -> int:
        """只保留最新 keep 筆，回傳刪除筆數"""
        removed = self._prune(max(0, int(keep)))
        if removed:
            logger.info(f"Pruned {removed} old topic history records (keep={keep})")
        return removed

    def _insert(self, params: tuple) -> int:
        raise NotImplementedError

    def _fetch_rows(self, limit: int) -> Iterable[Dict[str, Any]]:
        raise NotImplementedError

    def _fetch_row(self, record_id: int) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def _delete(self, record_id: int) -> bool:
        raise NotImplementedError

    def _prune(self, keep: int) -> int:
        raise NotImplementedError

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def open_history_store(cfg: ScoutConfig) -> HistoryStore:
    """初始化歷史記錄後端（fail fast，不 fallback）"""
    history_cfg = cfg.history

    if history_cfg.backend == "postgres":
        from topic_scout.storage.pg_store import PostgresHistoryStore

        dsn = cfg.get_postgres_dsn()
        if not dsn:
            raise StoreError("Postgres backend requires history.postgres_dsn (env var name)")

        logger.info("Initializing Postgres history store...")
        return PostgresHistoryStore(dsn, max_records=history_cfg.max_records)

    elif history_cfg.backend == "sqlite":
        from topic_scout.storage.sqlite_store import SqliteHistoryStore

        logger.info(f"Using SQLite history store: {history_cfg.sqlite_path}")
        return SqliteHistoryStore(history_cfg.sqlite_path, max_records=history_cfg.max_records)

    else:
        raise StoreError(f"Unsupported history backend: {history_cfg.backend}")
