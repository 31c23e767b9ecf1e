"""
Article normalization

將第三方 kw_search 的 data 記錄轉為穩定的 NormalizedArticle。
任何欄位缺失都以預設值補齊，不拋出例外。
"""

import math
from typing import Any, Dict, Iterable, List, Optional
import logging

from topic_scout.models import NormalizedArticle
from topic_scout.utils import time as time_utils

logger = logging.getLogger(__name__)


def _text(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, (str, int, float)):
        return str(value)
    return ""


def _count(value: Any) -> int:
    """計數欄位：非數值 -> 0，負數 -> 0"""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return 0
        return max(0, int(value))
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


def _first_non_empty(*values: Any) -> str:
    for value in values:
        text = _text(value).strip()
        if text:
            return text
    return ""


def resolve_publish_timestamp(raw: Dict[str, Any], tz_name: Optional[str] = None) -> int:
    """
    發布時間 (epoch millis)

    優先序:
    1. publish_time (epoch 秒, > 0)
    2. publish_time_str
    3. 當前時間
    """
    publish_time = raw.get("publish_time")
    if (
        isinstance(publish_time, (int, float))
        and not isinstance(publish_time, bool)
        and math.isfinite(publish_time)
        and publish_time > 0
    ):
        return int(publish_time * 1000)

    parsed = time_utils.parse_publish_time(raw.get("publish_time_str"), tz_name)
    if parsed is not None:
        return parsed

    return time_utils.now_millis()


def normalize_article(raw: Dict[str, Any], tz_name: Optional[str] = None) -> NormalizedArticle:
    """
    單筆記錄正規化

    Args:
        raw: 第三方 data 陣列中的一筆
        tz_name: publish_time_str 為 naive 時間時使用的時區

    Returns:
        NormalizedArticle
    """
    return NormalizedArticle(
        id=_first_non_empty(raw.get("ghid"), raw.get("wx_id"), raw.get("url")),
        title=_text(raw.get("title")),
        cover_url=_text(raw.get("avatar")),
        read_count=_count(raw.get("read")),
        like_count=_count(raw.get("praise")),
        watch_count=_count(raw.get("looking")),
        publish_timestamp=resolve_publish_timestamp(raw, tz_name),
        publish_time_text=_text(raw.get("publish_time_str")),
        is_original=raw.get("is_original") == 1 and not isinstance(raw.get("is_original"), bool),
        url=_text(raw.get("url")),
        short_link=_text(raw.get("short_link")),
        classify=_text(raw.get("classify")),
        wx_name=_text(raw.get("wx_name")),
        wx_id=_text(raw.get("wx_id")),
        content=_text(raw.get("content")),
    )


def normalize_articles(records: Iterable[Any], tz_name: Optional[str] = None) -> List[NormalizedArticle]:
    """批次正規化，略過非 dict 的記錄"""
    articles = []
    skipped = 0

    for record in records or []:
        if not isinstance(record, dict):
            skipped += 1
            continue
        articles.append(normalize_article(record, tz_name))

    if skipped:
        logger.warning(f"Skipped {skipped} non-object records in search response")

    return articles
