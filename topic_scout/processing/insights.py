"""
Insight synthesis

從文章與詞雲產生最多五條敘述性洞察，順序固定:
1. 頭部閱讀  2. 互動驅動  3. 原創占比  4. 高勢能帳號  5. 詞頻熱點
"""

from typing import Dict, List, Sequence

from topic_scout.models import Insight, KeywordEntry, NormalizedArticle
from topic_scout.processing.ranking import engagement_rate


MAX_INSIGHTS = 5
FALLBACK_TOPIC = "该领域"


def original_ratio(articles: Sequence[NormalizedArticle]) -> float:
    """原創文章占比 (0-100)"""
    originals = sum(1 for article in articles if article.is_original)
    return originals / max(len(articles), 1) * 100


def top_account(articles: Sequence[NormalizedArticle]):
    """
    閱讀總量最高的公眾號

    Returns:
        (wx_name, total_reads)；沒有具名帳號時為 None
    """
    reads_by_account: Dict[str, int] = {}
    for article in articles:
        if not article.wx_name.strip():
            continue
        reads_by_account[article.wx_name] = reads_by_account.get(article.wx_name, 0) + article.read_count

    if not reads_by_account:
        return None

    return max(reads_by_account.items(), key=lambda pair: pair[1])


def synthesize_insights(
    articles: Sequence[NormalizedArticle],
    keyword_cloud: Sequence[KeywordEntry],
    active_keyword: str = "",
) -> List[Insight]:
    """
    產生洞察

    Args:
        articles: 正規化後的文章
        keyword_cloud: extract_keywords 的結果
        active_keyword: 當前關鍵詞 (詞雲為空時的提示用)

    Returns:
        最多 5 條 Insight；沒有文章時為空
    """
    if not articles:
        return []

    insights: List[Insight] = []

    # max() 回傳第一個最大值，同分時保留原始順序
    top_read = max(articles, key=lambda a: a.read_count)
    insights.append(Insight(
        id=1,
        title=f"头部阅读：《{top_read.title}》",
        description=f"该文章阅读量达到 {top_read.read_count:,}，显著高于平均水平，是潜在爆款题材。",
    ))

    top_engaged = max(articles, key=engagement_rate)
    insights.append(Insight(
        id=2,
        title="互动驱动内容",
        description=(
            f"互动率最高的《{top_engaged.title}》达到 {engagement_rate(top_engaged):.2f}%，"
            f"说明读者更愿意参与此类话题。"
        ),
    ))

    insights.append(Insight(
        id=3,
        title="原创内容竞争度",
        description=f"原创文章占比 {original_ratio(articles):.1f}%，从源头创作更容易建立差异化。",
    ))

    account = top_account(articles)
    if account:
        name, reads = account
        insights.append(Insight(
            id=4,
            title=f"高势能账号：{name}",
            description=f"{name} 在本批次贡献了 {reads:,} 阅读，值得持续跟踪其发文结构与标题策略。",
        ))

    if keyword_cloud:
        focus = keyword_cloud[0]
        description = f"「{focus.word}」出现频次最高（{focus.count} 次），可围绕该主题延伸更细分的选题。"
    else:
        description = f"当前关键词「{active_keyword or FALLBACK_TOPIC}」下主题分散，建议结合痛点重新聚焦。"
    insights.append(Insight(id=5, title="词频热点", description=description))

    return insights[:MAX_INSIGHTS]
