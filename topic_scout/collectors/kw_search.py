"""
Keyword Search Collector

呼叫第三方公眾號文章 kw_search 介面 (或本地模擬資料)，回傳正規化後的 SearchResult。
只取單頁結果，不做重試。
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

import pydantic
import requests

from topic_scout.config import ScoutConfig
from topic_scout.errors import MalformedResponseError, UpstreamError, ValidationError
from topic_scout.models import SearchRequest, SearchResult
from topic_scout.processing.normalize import normalize_articles

logger = logging.getLogger(__name__)


MOCK_DATA_PATH = Path(__file__).parent / "mock_kw_search.json"
MOCK_MESSAGE = "使用本地模拟数据"
SUCCESS_CODES = (0, 200)


def parse_search_request(data: Dict[str, Any], defaults: Optional[Dict[str, Any]] = None) -> SearchRequest:
    """
    建立 SearchRequest

    Args:
        data: 請求參數 (camelCase 或 API snake_case 皆可)
        defaults: 未提供欄位時使用的預設值

    Raises:
        ValidationError: 缺少關鍵詞
    """
    params = dict(defaults or {})
    params.update({k: v for k, v in (data or {}).items() if v is not None})

    try:
        return SearchRequest.model_validate(params)
    except pydantic.ValidationError as e:
        fields = {str(err["loc"][0]) for err in e.errors() if err.get("loc")}
        if fields & {"keyword", "kw"}:
            raise ValidationError("请输入关键词keyword") from e
        raise ValidationError(f"搜索参数无效: {e}") from e


def build_payload(request: SearchRequest, api_key: str) -> Dict[str, Any]:
    """第三方介面的請求 body"""
    return {
        "kw": request.keyword,
        "sort_type": request.sort_type,
        "mode": request.mode,
        "period": request.period,
        "page": request.page,
        "size": request.size,
        "key": api_key,
        "any_kw": request.any_keyword or "",
        "ex_kw": request.exclude_keyword or "",
        "verifycode": "",
        "type": request.type,
    }


def is_success_code(code: Any) -> bool:
    return not isinstance(code, bool) and code in SUCCESS_CODES


def load_mock_response(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """讀取模擬資料集 (格式與第三方回應相同)"""
    file_path = Path(path) if path else MOCK_DATA_PATH

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"模拟数据格式错误: {file_path}: {e}") from e
    except OSError as e:
        raise MalformedResponseError(f"无法读取模拟数据: {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise MalformedResponseError(f"模拟数据格式错误: {file_path}")
    return data


def matches_keyword(item: Dict[str, Any], keyword_lower: str) -> bool:
    """標題/正文/帳號/分類中是否包含關鍵詞 (不分大小寫)"""
    if not keyword_lower:
        return True
    fields = [item.get("title"), item.get("content"), item.get("wx_name"), item.get("classify")]
    haystack = " ".join(str(value) for value in fields if value).lower()
    return keyword_lower in haystack


def build_mock_api_response(base_response: Dict[str, Any], request: SearchRequest) -> Dict[str, Any]:
    """
    以模擬資料集產生一頁回應

    篩選結果至少有一整頁時才使用篩選結果，否則回傳完整資料集。
    """
    dataset = base_response.get("data")
    dataset: List[Dict[str, Any]] = dataset if isinstance(dataset, list) else []

    keyword_lower = request.keyword.lower()
    size = max(1, min(request.size, len(dataset) or 10))
    filtered = [item for item in dataset if isinstance(item, dict) and matches_keyword(item, keyword_lower)]
    effective = filtered if keyword_lower and len(filtered) >= size else dataset

    total = len(effective)
    total_page = max(1, -(-max(total, 1) // size))
    page = max(1, min(request.page, total_page))
    start = (page - 1) * size
    page_data = effective[start:start + size]

    return {
        **base_response,
        "code": 0,
        "msg": MOCK_MESSAGE,
        "data": page_data,
        "data_number": len(page_data),
        "total": total,
        "total_page": total_page,
        "page": page,
        "cut_words": request.keyword,
    }


def _int_or(value: Any, fallback: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    return int(value)


def build_search_result(
    api_response: Dict[str, Any],
    request: SearchRequest,
    source: str,
    tz_name: Optional[str] = None
) -> SearchResult:
    """第三方回應 -> SearchResult"""
    data = api_response.get("data")
    if data is not None and not isinstance(data, list):
        raise MalformedResponseError("第三方服务返回的 data 不是数组")

    articles = normalize_articles(data or [], tz_name)
    cut_words = api_response.get("cut_words")

    return SearchResult(
        articles=articles,
        total=_int_or(api_response.get("total"), len(articles)),
        total_page=_int_or(api_response.get("total_page"), 1),
        page=_int_or(api_response.get("page"), request.page),
        raw_cut_words=cut_words if isinstance(cut_words, str) else "",
        source=source,
    )


class KwSearchClient:
    """公眾號文章關鍵詞搜尋"""

    def __init__(self, config: ScoutConfig, session: Optional[requests.Session] = None):
        """
        初始化 KwSearchClient

        Args:
            config: 完整設定
            session: 可注入的 requests.Session (測試用)
        """
        self.config = config
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})

    def search(
        self,
        request: Union[SearchRequest, Dict[str, Any]],
        source: Optional[str] = None
    ) -> SearchResult:
        """
        執行一次搜尋

        Args:
            request: SearchRequest 或原始參數 dict
            source: mock | remote (None 則依設定決定)

        Returns:
            SearchResult

        Raises:
            ValidationError: 關鍵詞為空
            UpstreamError: 第三方服務失敗
            MalformedResponseError: 回應無法解析
        """
        if not isinstance(request, SearchRequest):
            request = parse_search_request(request, self.request_defaults())

        resolved = self.config.resolve_source(source)

        if resolved == "mock":
            api_response = build_mock_api_response(
                load_mock_response(self.config.search.mock_data_path), request
            )
        else:
            api_response = self._search_remote(request)

        result = build_search_result(api_response, request, resolved, self.config.timezone)
        logger.info(
            f"Search '{request.keyword}' ({resolved}): {len(result.articles)} articles, "
            f"total={result.total}, page={result.page}/{result.total_page}"
        )
        return result

    def request_defaults(self) -> Dict[str, Any]:
        search_cfg = self.config.search
        return {
            "period": search_cfg.period,
            "page": search_cfg.page,
            "size": search_cfg.size,
            "sortType": search_cfg.sort_type,
            "mode": search_cfg.mode,
            "type": search_cfg.type,
        }

    def _search_remote(self, request: SearchRequest) -> Dict[str, Any]:
        api_key = self.config.get_api_key()
        if not api_key:
            raise UpstreamError(f"未配置第三方 API key (环境变量 {self.config.search.api_key_env})")

        payload = build_payload(request, api_key)

        try:
            response = self._session.post(
                self.config.search.endpoint,
                json=payload,
                timeout=self.config.search.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Search request failed: {e}")
            raise UpstreamError(f"获取公众号文章失败: {e}") from e

        if not response.ok:
            logger.error(f"Search upstream returned HTTP {response.status_code}")
            raise UpstreamError(
                f"第三方服务暂时不可用 ({response.status_code} {response.reason})",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"第三方服务返回的内容不是JSON: {e}") from e

        if not isinstance(data, dict):
            raise MalformedResponseError("第三方服务返回的内容不是JSON对象")

        if not is_success_code(data.get("code")):
            raise UpstreamError(data.get("msg") or "第三方服务返回异常", code=data.get("code"))

        return data

    def close(self):
        """關閉 HTTP session"""
        self._session.close()
