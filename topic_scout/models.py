"""
Core data models for topic_scout

定義搜尋結果、關鍵詞雲、洞察、報告快照與歷史記錄的資料契約。
JSON 輸出一律使用 camelCase 欄位名 (model_dump(by_alias=True))。
"""

import math
import re
from typing import Optional, List, Literal, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


DataSource = Literal["mock", "remote"]


def _camel_config(**extra) -> ConfigDict:
    return ConfigDict(alias_generator=to_camel, populate_by_name=True, **extra)


_ARTICLE_EXAMPLE = {
    "id": "gh_3a1f0c9e2b77",
    "title": "人工智能如何改变内容生产",
    "coverUrl": "https://mmbiz.qpic.cn/avatar.jpg",
    "readCount": 12800,
    "likeCount": 320,
    "watchCount": 96,
    "publishTimestamp": 1714540800000,
    "publishTimeText": "2024-05-01 13:20:00",
    "isOriginal": True,
    "url": "https://mp.weixin.qq.com/s/abc",
    "shortLink": "https://mp.weixin.qq.com/s/abc",
    "classify": "科技",
    "wxName": "科技前沿观察",
    "wxId": "tech_frontier",
    "content": "生成式人工智能正在重塑内容行业...",
}


class NormalizedArticle(BaseModel):
    """
    單篇搜尋結果 (每個外部記錄一筆)

    由 processing.normalize 產生，建立後不再修改。
    """
    model_config = _camel_config(frozen=True, json_schema_extra={"example": _ARTICLE_EXAMPLE})

    id: str = Field(default="", description="ghid / wx_id / url 中第一個非空值")
    title: str = Field(default="", description="文章標題")
    cover_url: str = Field(default="", description="封面或頭像 URL")
    read_count: int = Field(default=0, ge=0, description="閱讀數")
    like_count: int = Field(default=0, ge=0, description="點讚數")
    watch_count: int = Field(default=0, ge=0, description="在看數")
    publish_timestamp: int = Field(default=0, description="發布時間 (epoch millis)")
    publish_time_text: str = Field(default="", description="原始發布時間字串")
    is_original: bool = Field(default=False, description="是否原創")
    url: str = Field(default="", description="文章連結")
    short_link: str = Field(default="", description="短連結")
    classify: str = Field(default="", description="分類標籤")
    wx_name: str = Field(default="", description="公眾號名稱")
    wx_id: str = Field(default="", description="公眾號 ID")
    content: str = Field(default="", description="正文或摘要")


class EngagedArticle(NormalizedArticle):
    """附帶互動率的文章 (互動榜使用)"""
    engagement_rate: Optional[float] = Field(None, description="(點讚+在看)/max(閱讀,1)*100")


class KeywordEntry(BaseModel):
    """詞雲中的一個詞"""
    word: str = Field(..., min_length=2)
    count: int = Field(..., ge=2)


class Insight(BaseModel):
    """敘述性洞察"""
    id: int = Field(..., ge=1, le=5)
    title: str
    description: str


class SearchResult(BaseModel):
    """單次搜尋的正規化結果"""
    model_config = _camel_config()

    articles: List[NormalizedArticle] = Field(default_factory=list)
    total: int = 0
    total_page: int = 1
    page: int = 1
    raw_cut_words: str = ""
    source: DataSource = "mock"


class TopicReport(BaseModel):
    """持久化於 report_json 欄位的巢狀報告"""
    model_config = _camel_config()

    articles: List[NormalizedArticle] = Field(default_factory=list)
    top_liked: List[NormalizedArticle] = Field(default_factory=list)
    top_engagement: List[EngagedArticle] = Field(default_factory=list)
    keyword_cloud: List[KeywordEntry] = Field(default_factory=list)
    insights: List[Insight] = Field(default_factory=list)


def _coerce_source(value: Any) -> str:
    return "remote" if value == "remote" else "mock"


class ReportSnapshot(TopicReport):
    """
    報告快照

    一次搜尋 + 分析的完整結果，同時是匯出與歷史保存的單位。
    """
    keyword: str = Field(default="", description="當前關鍵詞")
    data_source: DataSource = Field(default="mock", description="mock | remote")
    total: Optional[int] = Field(None, description="搜尋結果總數")
    total_page: Optional[int] = Field(None, description="總頁數")
    page: Optional[int] = Field(None, description="當前頁")
    raw_cut_words: Optional[str] = Field(None, description="API 分詞結果")

    @field_validator("keyword", mode="before")
    @classmethod
    def _strip_keyword(cls, value: Any) -> str:
        return str(value if value is not None else "").strip()

    @field_validator("data_source", mode="before")
    @classmethod
    def _source(cls, value: Any) -> str:
        return _coerce_source(value)

    @property
    def report(self) -> TopicReport:
        return TopicReport(
            articles=self.articles,
            top_liked=self.top_liked,
            top_engagement=self.top_engagement,
            keyword_cloud=self.keyword_cloud,
            insights=self.insights,
        )


class TopicHistoryRecord(BaseModel):
    """持久化的歷史記錄 (topics 表一列)"""
    model_config = _camel_config()

    id: int
    keyword: str
    data_source: DataSource = "mock"
    article_count: int = 0
    total: Optional[int] = None
    total_page: Optional[int] = None
    page: Optional[int] = None
    raw_cut_words: Optional[str] = None
    created_at: str = ""
    report: TopicReport = Field(default_factory=TopicReport)

    @field_validator("data_source", mode="before")
    @classmethod
    def _source(cls, value: Any) -> str:
        return _coerce_source(value)


_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def clamp_number(value: Any, fallback: int, minimum: int = 1, maximum: Optional[int] = None) -> int:
    """
    解析整數並夾在 [minimum, maximum]

    非數值 (或無法解析的字串) 使用 fallback；字串取前導整數部分。
    """
    if isinstance(value, bool):
        parsed = None
    elif isinstance(value, (int, float)):
        parsed = int(value) if math.isfinite(value) else None
    else:
        match = _LEADING_INT_RE.match(str(value if value is not None else ""))
        parsed = int(match.group(1)) if match else None

    if parsed is None:
        return fallback

    parsed = max(minimum, parsed)
    if maximum is not None:
        parsed = min(maximum, parsed)
    return parsed


def read_text(value: Any) -> str:
    if isinstance(value, bool):
        return ""
    if isinstance(value, (str, int, float)):
        return str(value).strip()
    return ""


class SearchRequest(BaseModel):
    """
    搜尋請求

    數值欄位採 clamp-with-fallback：不可解析 -> 預設值，越界 -> 夾至邊界。
    同時接受 camelCase 與第三方 API 的 snake_case 別名 (kw, sort_type, any_kw, ex_kw)。
    """
    model_config = _camel_config()

    keyword: str = Field(..., validation_alias=AliasChoices("keyword", "kw"))
    period: int = Field(default=7, description="回溯天數 1-30")
    page: int = Field(default=1, description="頁碼 (>=1)")
    size: int = Field(default=10, description="每頁數量 1-50")
    sort_type: int = Field(default=1, validation_alias=AliasChoices("sortType", "sort_type"))
    mode: int = Field(default=1)
    type: int = Field(default=1)
    any_keyword: Optional[str] = Field(
        None, validation_alias=AliasChoices("anyKeyword", "any_keyword", "any_kw")
    )
    exclude_keyword: Optional[str] = Field(
        None, validation_alias=AliasChoices("excludeKeyword", "exclude_keyword", "ex_kw")
    )

    @field_validator("keyword", mode="before")
    @classmethod
    def _keyword(cls, value: Any) -> str:
        text = read_text(value)
        if not text:
            raise ValueError("请输入关键词keyword")
        return text

    @field_validator("period", mode="before")
    @classmethod
    def _period(cls, value: Any) -> int:
        return clamp_number(value, 7, 1, 30)

    @field_validator("page", mode="before")
    @classmethod
    def _page(cls, value: Any) -> int:
        return clamp_number(value, 1, 1)

    @field_validator("size", mode="before")
    @classmethod
    def _size(cls, value: Any) -> int:
        return clamp_number(value, 10, 1, 50)

    @field_validator("sort_type", "mode", "type", mode="before")
    @classmethod
    def _flags(cls, value: Any) -> int:
        return clamp_number(value, 1, 1)

    @field_validator("any_keyword", "exclude_keyword", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        return read_text(value) or None
