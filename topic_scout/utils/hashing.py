"""Hashing utilities for history signatures."""

import hashlib
import json
from typing import Optional

from topic_scout.models import ReportSnapshot


def history_signature(
    keyword: str,
    source: str,
    total: Optional[int],
    page: Optional[int],
    article_count: int,
    first_article_id: str = "",
    first_insight_title: str = "",
) -> str:
    """
    產生歷史記錄的 dedup signature

    只看決定性欄位，因此內容相同但重新計算的陣列會得到相同 signature。

    Returns:
        SHA256 hash (hex)
    """
    signature_input = {
        "keyword": keyword,
        "source": source,
        "total": total,
        "page": page,
        "articleCount": article_count,
        "firstArticle": first_article_id or "",
        "firstInsight": first_insight_title or "",
    }

    json_str = json.dumps(signature_input, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(json_str.encode('utf-8')).hexdigest()


def snapshot_signature(snapshot: ReportSnapshot) -> Optional[str]:
    """快照的 signature；沒有關鍵詞或沒有文章時為 None"""
    if not snapshot.keyword or not snapshot.articles:
        return None

    return history_signature(
        keyword=snapshot.keyword,
        source=snapshot.data_source,
        total=snapshot.total,
        page=snapshot.page,
        article_count=len(snapshot.articles),
        first_article_id=snapshot.articles[0].id,
        first_insight_title=snapshot.insights[0].title if snapshot.insights else "",
    )
