"""
Tests for report snapshot and export
"""

import json
from datetime import datetime, timezone

import pytest

from topic_scout.errors import ExportError
from topic_scout.models import NormalizedArticle
from topic_scout.processing.report import build_export_payload, build_report_snapshot
from topic_scout.storage.file_store import ExportStore, export_file_name


def create_snapshot():
    articles = [
        NormalizedArticle(id="a1", title="人工智能 观察", read_count=100, like_count=5, watch_count=5),
        NormalizedArticle(id="a2", title="人工智能 应用", read_count=50, like_count=20, watch_count=5),
    ]
    return build_report_snapshot("人工智能", "mock", articles, total=2, total_page=1, page=1,
                                 raw_cut_words="人工智能")


def test_snapshot_contains_all_sections():
    snapshot = create_snapshot()

    assert [a.id for a in snapshot.top_liked] == ["a2", "a1"]
    assert [a.engagement_rate for a in snapshot.top_engagement] == [50.0, 10.0]
    assert snapshot.keyword_cloud[0].word == "人工智能"
    assert snapshot.keyword_cloud[0].count == 4
    assert len(snapshot.insights) == 4


def test_export_payload_shape():
    generated_at = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)
    payload = build_export_payload(create_snapshot(), generated_at)

    assert payload["keyword"] == "人工智能"
    assert payload["generatedAt"] == "2024-05-01T08:00:00+00:00"
    assert payload["source"] == "mock"
    assert payload["totals"] == {"total": 2, "totalPage": 1, "currentPage": 1, "articleCount": 2}
    assert payload["rawCutWords"] == "人工智能"
    assert payload["articles"][0]["readCount"] == 100
    assert payload["topEngagement"][0]["engagementRate"] == 50.0
    assert set(payload) >= {"topLiked", "keywordCloud", "insights"}


def test_export_file_name():
    generated_at = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)

    assert export_file_name("人工智能", generated_at) == "insight-report-人工智能-1714550400000.json"
    assert export_file_name("", generated_at) == "insight-report-report-1714550400000.json"
    assert "/" not in export_file_name("a/b", generated_at)


def test_export_store_writes_json(tmp_path):
    store = ExportStore(str(tmp_path / "exports"))
    path = store.write_report(create_snapshot())

    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    assert data["keyword"] == "人工智能"
    assert len(data["articles"]) == 2


def test_export_store_failure(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")

    with pytest.raises(ExportError):
        ExportStore(str(blocker)).write_report(create_snapshot())
