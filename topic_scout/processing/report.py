"""
Report assembly

把正規化文章與各項計算結果組成 ReportSnapshot，以及匯出用的 payload。
"""

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from topic_scout.models import NormalizedArticle, ReportSnapshot
from topic_scout.processing.insights import synthesize_insights
from topic_scout.processing.keywords import extract_keywords
from topic_scout.processing.ranking import annotate_engagement, top_engagement, top_liked
from topic_scout.utils.time import format_iso8601, utcnow


def build_report_snapshot(
    keyword: str,
    data_source: str,
    articles: Sequence[NormalizedArticle],
    total: Optional[int] = None,
    total_page: Optional[int] = None,
    page: Optional[int] = None,
    raw_cut_words: str = "",
) -> ReportSnapshot:
    """
    計算完整報告快照

    Args:
        keyword: 當前關鍵詞
        data_source: mock | remote
        articles: 正規化後的文章
        total, total_page, page: 分頁資訊
        raw_cut_words: 第三方分詞字串

    Returns:
        ReportSnapshot
    """
    keyword_cloud = extract_keywords(articles, raw_cut_words, keyword)

    return ReportSnapshot(
        keyword=keyword,
        data_source=data_source,
        total=total,
        total_page=total_page,
        page=page,
        raw_cut_words=raw_cut_words,
        articles=list(articles),
        top_liked=top_liked(articles),
        top_engagement=annotate_engagement(top_engagement(articles)),
        keyword_cloud=keyword_cloud,
        insights=synthesize_insights(articles, keyword_cloud, keyword),
    )


def build_export_payload(snapshot: ReportSnapshot, generated_at: Optional[datetime] = None) -> Dict[str, Any]:
    """匯出文件內容：持久化報告 + 匯出時間與分頁統計"""
    generated_at = generated_at or utcnow()
    report = snapshot.report.model_dump(by_alias=True)

    return {
        "keyword": snapshot.keyword,
        "generatedAt": format_iso8601(generated_at),
        "source": snapshot.data_source,
        "totals": {
            "total": snapshot.total,
            "totalPage": snapshot.total_page,
            "currentPage": snapshot.page,
            "articleCount": len(snapshot.articles),
        },
        "rawCutWords": snapshot.raw_cut_words,
        **report,
    }
