"""
Tests for article normalization
"""

import pytest

from topic_scout.processing.normalize import normalize_article, normalize_articles
from topic_scout.utils.time import now_millis


def create_raw(**overrides):
    """Helper to create a kw_search data record"""
    raw = {
        "avatar": "https://mmbiz.qpic.cn/a.jpg",
        "classify": "科技",
        "content": "人工智能正在改变内容行业",
        "ghid": "gh_001",
        "is_original": 1,
        "looking": 12,
        "praise": 34,
        "publish_time": 1714540800,
        "publish_time_str": "2024-05-01 13:20:00",
        "read": 5600,
        "short_link": "https://mp.weixin.qq.com/s/x",
        "title": "人工智能观察",
        "url": "https://mp.weixin.qq.com/s?__biz=x",
        "wx_id": "tech_frontier",
        "wx_name": "科技前沿观察",
    }
    raw.update(overrides)
    return raw


def test_field_mapping():
    """測試欄位對應"""
    article = normalize_article(create_raw())

    assert article.id == "gh_001"
    assert article.title == "人工智能观察"
    assert article.cover_url == "https://mmbiz.qpic.cn/a.jpg"
    assert article.read_count == 5600
    assert article.like_count == 34
    assert article.watch_count == 12
    assert article.publish_time_text == "2024-05-01 13:20:00"
    assert article.short_link == "https://mp.weixin.qq.com/s/x"
    assert article.wx_name == "科技前沿观察"
    assert article.wx_id == "tech_frontier"


def test_id_fallback_chain():
    """測試 id 依序取 ghid -> wx_id -> url"""
    assert normalize_article(create_raw(ghid="")).id == "tech_frontier"
    assert normalize_article(create_raw(ghid="", wx_id="")).id == "https://mp.weixin.qq.com/s?__biz=x"
    assert normalize_article(create_raw(ghid=None, wx_id="", url="")).id == ""


def test_publish_timestamp_from_epoch_seconds():
    article = normalize_article(create_raw())
    assert article.publish_timestamp == 1714540800000


def test_publish_timestamp_from_text_uses_timezone():
    """publish_time 無效時解析字串 (naive 時間視為 Asia/Shanghai)"""
    article = normalize_article(
        create_raw(publish_time=0, publish_time_str="2024-05-05 09:00:00"),
        tz_name="Asia/Shanghai",
    )
    assert article.publish_timestamp == 1714870800000


def test_publish_timestamp_falls_back_to_now():
    before = now_millis()
    article = normalize_article(create_raw(publish_time=None, publish_time_str="昨天"))
    after = now_millis()

    assert before <= article.publish_timestamp <= after
    assert isinstance(article.publish_timestamp, int)


@pytest.mark.parametrize("flag,expected", [(1, True), (0, False), ("1", False), (True, False), (None, False)])
def test_is_original_only_for_integer_one(flag, expected):
    assert normalize_article(create_raw(is_original=flag)).is_original is expected


def test_counters_default_to_zero():
    """測試計數欄位缺失或非數值時為 0"""
    article = normalize_article(create_raw(read="很多", praise=None, looking=-5))
    assert article.read_count == 0
    assert article.like_count == 0
    assert article.watch_count == 0

    assert normalize_article(create_raw(read="120")).read_count == 120


def test_empty_record_never_fails():
    article = normalize_article({})

    assert article.id == ""
    assert article.title == ""
    assert article.read_count == 0
    assert article.is_original is False
    assert article.publish_timestamp > 0


def test_normalize_articles_skips_non_objects():
    articles = normalize_articles([create_raw(), "broken", None, create_raw(ghid="gh_002")])
    assert [a.id for a in articles] == ["gh_001", "gh_002"]
