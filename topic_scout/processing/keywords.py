"""
Keyword cloud extraction

啟發式分詞 (非 NLP)：依空白與標點切分，過濾無意義片段後統計詞頻。
"""

import re
from typing import Dict, List, Optional, Sequence
import logging

from topic_scout.models import KeywordEntry, NormalizedArticle

logger = logging.getLogger(__name__)


TOP_N = 12
MIN_COUNT = 2

_SEPARATOR_RE = re.compile(r"[\s,，。、“”‘’\"'；;·|/\\\-]+")
_NUMERIC_RE = re.compile(r"^[0-9]+$")
_LATIN_RE = re.compile(r"^[a-zA-Z]+$")
_CJK_RE = re.compile(r"[\u4e00-\u9fff]")


def is_meaningful_keyword(word: str) -> bool:
    """過濾太短、純數字、純英文、不含中文的片段"""
    if len(word) < 2:
        return False
    # 純數字或純字母缺乏分析意義
    if _NUMERIC_RE.match(word):
        return False
    if _LATIN_RE.match(word):
        return False
    # 沒有中文字元時多半是編號
    if not _CJK_RE.search(word):
        return False
    return True


def split_words(text: Optional[str]) -> List[str]:
    """切分文字並保留有意義的詞"""
    if not text:
        return []
    words = (word.strip() for word in _SEPARATOR_RE.split(text))
    return [word for word in words if is_meaningful_keyword(word)]


def extract_keywords(
    articles: Sequence[NormalizedArticle],
    raw_cut_words: str = "",
    active_keyword: str = "",
    top_n: int = TOP_N,
    min_count: int = MIN_COUNT,
) -> List[KeywordEntry]:
    """
    建立詞雲

    統計順序: API 分詞字串 -> 每篇文章的標題/正文/分類 -> 當前關鍵詞。
    同頻次時先出現的詞排在前面 (dict 保留插入順序 + stable sort)。

    Args:
        articles: 正規化後的文章
        raw_cut_words: 第三方回傳的 cut_words
        active_keyword: 當前搜尋關鍵詞
        top_n: 最多回傳數量
        min_count: 最低出現次數 (只出現一次的詞視為雜訊)

    Returns:
        依次數降序的 KeywordEntry
    """
    frequency: Dict[str, int] = {}

    def collect(text: Optional[str]) -> None:
        for word in split_words(text):
            frequency[word] = frequency.get(word, 0) + 1

    collect(raw_cut_words)

    for article in articles:
        collect(article.title)
        collect(article.content)
        collect(article.classify)

    collect(active_keyword)

    ranked = sorted(
        ((word, count) for word, count in frequency.items() if count >= min_count),
        key=lambda pair: pair[1],
        reverse=True,
    )[:top_n]

    logger.debug(f"Keyword cloud: {len(frequency)} distinct words, {len(ranked)} kept")

    return [KeywordEntry(word=word, count=count) for word, count in ranked]
