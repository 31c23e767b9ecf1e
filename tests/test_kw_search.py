"""
Tests for keyword search collector
"""

import pytest
import requests

from topic_scout.collectors.kw_search import (
    KwSearchClient,
    build_payload,
    is_success_code,
    parse_search_request,
)
from topic_scout.config import ScoutConfig
from topic_scout.errors import MalformedResponseError, UpstreamError, ValidationError


class FakeResponse:
    """Minimal stand-in for requests.Response"""

    def __init__(self, status_code=200, body=None, json_error=False):
        self.status_code = status_code
        self.ok = status_code < 400
        self.reason = "OK" if self.ok else "Bad Gateway"
        self._body = body
        self._json_error = json_error

    def json(self):
        if self._json_error:
            raise ValueError("Expecting value")
        return self._body


class FakeSession:
    """記錄請求並回傳預設回應"""

    def __init__(self, response=None, error=None):
        self.headers = {}
        self.response = response
        self.error = error
        self.calls = []
        self.closed = False

    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("USE_KW_SEARCH_MOCK", raising=False)
    monkeypatch.delenv("DAJIALA_API_KEY", raising=False)


def remote_client(response=None, error=None):
    session = FakeSession(response, error)
    return KwSearchClient(ScoutConfig(), session=session), session


def test_request_clamping():
    request = parse_search_request({"keyword": " AI ", "period": 99, "page": "3页", "size": 0})

    assert request.keyword == "AI"
    assert request.period == 30
    assert request.page == 3
    assert request.size == 1


def test_request_fallbacks_for_garbage():
    request = parse_search_request({"keyword": "AI", "period": "abc", "page": float("nan"), "size": True})

    assert request.period == 7
    assert request.page == 1
    assert request.size == 10


def test_request_accepts_api_aliases():
    request = parse_search_request({"kw": "新能源", "sort_type": 2, "any_kw": "汽车", "ex_kw": " "})

    assert request.keyword == "新能源"
    assert request.sort_type == 2
    assert request.any_keyword == "汽车"
    assert request.exclude_keyword is None


@pytest.mark.parametrize("keyword", ["", "   ", None])
def test_blank_keyword_rejected(keyword):
    with pytest.raises(ValidationError, match="请输入关键词keyword"):
        parse_search_request({"keyword": keyword})


def test_build_payload():
    request = parse_search_request({"keyword": "AI", "anyKeyword": "模型"})
    payload = build_payload(request, "secret")

    assert payload["kw"] == "AI"
    assert payload["key"] == "secret"
    assert payload["any_kw"] == "模型"
    assert payload["ex_kw"] == ""
    assert payload["verifycode"] == ""
    assert set(payload) == {"kw", "sort_type", "mode", "period", "page", "size", "key",
                            "any_kw", "ex_kw", "verifycode", "type"}


def test_success_codes():
    assert is_success_code(0)
    assert is_success_code(200)
    assert not is_success_code(-1)
    assert not is_success_code(False)
    assert not is_success_code(None)


def test_mock_search_filters_and_paginates():
    client = KwSearchClient(ScoutConfig(), session=FakeSession())
    result = client.search({"keyword": "人工智能", "size": 5}, source="mock")

    assert result.source == "mock"
    assert result.total == 7
    assert result.total_page == 2
    assert result.page == 1
    assert len(result.articles) == 5
    assert result.articles[0].id == "gh_mock_0001"
    assert result.raw_cut_words == "人工智能"


def test_mock_search_second_page():
    client = KwSearchClient(ScoutConfig(), session=FakeSession())
    result = client.search({"keyword": "人工智能", "size": 5, "page": 9}, source="mock")

    assert result.page == 2
    assert len(result.articles) == 2


def test_mock_search_without_match_uses_full_dataset():
    client = KwSearchClient(ScoutConfig(), session=FakeSession())
    result = client.search({"keyword": "完全不存在的词", "size": 20}, source="mock")

    assert result.total == 14
    assert result.total_page == 1
    assert len(result.articles) == 14


def test_env_flag_selects_source(monkeypatch):
    cfg = ScoutConfig()

    assert cfg.resolve_source() == "mock"
    monkeypatch.setenv("USE_KW_SEARCH_MOCK", "false")
    assert cfg.resolve_source() == "remote"
    assert cfg.resolve_source("mock") == "mock"


def test_remote_success(monkeypatch):
    monkeypatch.setenv("DAJIALA_API_KEY", "secret")
    body = {
        "code": 0,
        "msg": "success",
        "total": 40,
        "total_page": 4,
        "page": 2,
        "cut_words": "人工智能 应用",
        "data": [{"ghid": "gh_r1", "title": "远程文章", "read": 10, "praise": 1, "looking": 1}],
    }
    client, session = remote_client(FakeResponse(200, body))

    result = client.search({"keyword": "人工智能", "page": 2}, source="remote")

    assert session.headers["Content-Type"] == "application/json"
    assert session.calls[0]["json"]["kw"] == "人工智能"
    assert session.calls[0]["json"]["key"] == "secret"
    assert result.source == "remote"
    assert result.total == 40
    assert result.total_page == 4
    assert result.page == 2
    assert result.raw_cut_words == "人工智能 应用"
    assert result.articles[0].id == "gh_r1"


def test_remote_business_error(monkeypatch):
    monkeypatch.setenv("DAJIALA_API_KEY", "secret")
    client, _ = remote_client(FakeResponse(200, {"code": -1, "msg": "余额不足"}))

    with pytest.raises(UpstreamError, match="余额不足") as exc_info:
        client.search({"keyword": "AI"}, source="remote")

    assert exc_info.value.code == -1


def test_remote_http_error(monkeypatch):
    monkeypatch.setenv("DAJIALA_API_KEY", "secret")
    client, _ = remote_client(FakeResponse(502))

    with pytest.raises(UpstreamError) as exc_info:
        client.search({"keyword": "AI"}, source="remote")

    assert exc_info.value.status_code == 502


def test_remote_invalid_json(monkeypatch):
    monkeypatch.setenv("DAJIALA_API_KEY", "secret")
    client, _ = remote_client(FakeResponse(200, json_error=True))

    with pytest.raises(MalformedResponseError):
        client.search({"keyword": "AI"}, source="remote")


def test_remote_data_not_list(monkeypatch):
    monkeypatch.setenv("DAJIALA_API_KEY", "secret")
    client, _ = remote_client(FakeResponse(200, {"code": 0, "data": {"oops": 1}}))

    with pytest.raises(MalformedResponseError):
        client.search({"keyword": "AI"}, source="remote")


def test_remote_connection_error(monkeypatch):
    monkeypatch.setenv("DAJIALA_API_KEY", "secret")
    client, _ = remote_client(error=requests.ConnectionError("refused"))

    with pytest.raises(UpstreamError):
        client.search({"keyword": "AI"}, source="remote")


def test_remote_without_api_key():
    client, session = remote_client(FakeResponse(200, {"code": 0, "data": []}))

    with pytest.raises(UpstreamError):
        client.search({"keyword": "AI"}, source="remote")

    assert session.calls == []


def test_blank_keyword_never_calls_upstream(monkeypatch):
    monkeypatch.setenv("DAJIALA_API_KEY", "secret")
    client, session = remote_client(FakeResponse(200, {"code": 0, "data": []}))

    with pytest.raises(ValidationError):
        client.search({"keyword": "  "}, source="remote")

    assert session.calls == []


def test_close_closes_session():
    client, session = remote_client()
    client.close()

    assert session.closed


def test_missing_mock_dataset(tmp_path):
    cfg = ScoutConfig(search={"mock_data_path": str(tmp_path / "missing.json")})
    client = KwSearchClient(cfg, session=FakeSession())

    with pytest.raises(MalformedResponseError):
        client.search({"keyword": "AI"}, source="mock")
