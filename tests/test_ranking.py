"""
Tests for like / engagement rankings
"""

import pytest

from topic_scout.models import NormalizedArticle
from topic_scout.processing.ranking import (
    annotate_engagement,
    engagement_rate,
    top_engagement,
    top_liked,
)


def create_test_article(article_id: str, read: int = 0, like: int = 0, watch: int = 0) -> NormalizedArticle:
    """Helper to create test article"""
    return NormalizedArticle(
        id=article_id,
        title=f"文章{article_id}",
        read_count=read,
        like_count=like,
        watch_count=watch,
    )


def scenario_articles():
    return [
        create_test_article("a1", read=100, like=5, watch=5),
        create_test_article("a2", read=50, like=20, watch=5),
        create_test_article("a3", read=10, like=1, watch=0),
    ]


def test_engagement_rate_zero_reads():
    """閱讀為 0 時分母取 1"""
    article = create_test_article("x", read=0, like=5, watch=5)
    assert engagement_rate(article) == 1000.0


def test_top_liked_order_and_filter():
    articles = scenario_articles() + [create_test_article("a4", read=500, like=0)]
    ranked = top_liked(articles)

    assert [a.id for a in ranked] == ["a2", "a1", "a3"]
    assert all(a.like_count > 0 for a in ranked)


def test_top_engagement_tie_keeps_original_order():
    """a1 與 a3 互動率同為 10%，保留原始順序"""
    ranked = top_engagement(scenario_articles())

    assert [a.id for a in ranked] == ["a2", "a1", "a3"]
    assert [engagement_rate(a) for a in ranked] == [50.0, 10.0, 10.0]


def test_top_engagement_excludes_unread():
    articles = [create_test_article("unread", read=0, like=9, watch=9), create_test_article("read", read=10, like=1)]
    assert [a.id for a in top_engagement(articles)] == ["read"]


def test_rankings_capped_at_five():
    articles = [create_test_article(f"a{i}", read=100 + i, like=i + 1, watch=i) for i in range(8)]

    liked = top_liked(articles)
    engaged = top_engagement(articles)

    assert len(liked) == 5
    assert len(engaged) == 5
    assert [a.like_count for a in liked] == sorted([a.like_count for a in liked], reverse=True)
    rates = [engagement_rate(a) for a in engaged]
    assert rates == sorted(rates, reverse=True)


def test_rankings_do_not_mutate_input():
    articles = scenario_articles()
    original = list(articles)

    top_liked(articles)
    top_engagement(articles)

    assert articles == original


def test_empty_input():
    assert top_liked([]) == []
    assert top_engagement([]) == []


def test_annotate_engagement_rounds_rate():
    annotated = annotate_engagement([create_test_article("a", read=3, like=1, watch=0)])

    assert annotated[0].engagement_rate == pytest.approx(33.33)
    assert annotated[0].id == "a"
