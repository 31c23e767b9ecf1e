"""
Article ranking

點讚榜與互動榜。sorted() 為 stable sort，同分時保留原始順序。
"""

from typing import List, Sequence

from topic_scout.models import EngagedArticle, NormalizedArticle


TOP_N = 5


def engagement_rate(article: NormalizedArticle) -> float:
    """
    互動率 (%)

    (點讚 + 在看) / max(閱讀, 1) * 100，閱讀為 0 時分母取 1。
    """
    return (article.like_count + article.watch_count) / max(article.read_count, 1) * 100


def top_liked(articles: Sequence[NormalizedArticle], limit: int = TOP_N) -> List[NormalizedArticle]:
    """點讚數 > 0 的文章，依點讚數降序取前 limit 篇"""
    candidates = [article for article in articles if article.like_count > 0]
    return sorted(candidates, key=lambda a: a.like_count, reverse=True)[:limit]


def top_engagement(articles: Sequence[NormalizedArticle], limit: int = TOP_N) -> List[NormalizedArticle]:
    """閱讀數 > 0 的文章，依互動率降序取前 limit 篇"""
    candidates = [article for article in articles if article.read_count > 0]
    return sorted(candidates, key=engagement_rate, reverse=True)[:limit]


def annotate_engagement(articles: Sequence[NormalizedArticle]) -> List[EngagedArticle]:
    """附上互動率 (兩位小數)，供快照與匯出使用"""
    return [
        EngagedArticle(
            **article.model_dump(exclude={"engagement_rate"}),
            engagement_rate=round(engagement_rate(article), 2),
        )
        for article in articles
    ]
