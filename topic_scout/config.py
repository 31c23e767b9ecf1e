"""
Configuration schemas using Pydantic

定義搜尋來源、歷史記錄後端、匯出目錄等設定。
"""

from typing import Optional, Literal
from pydantic import BaseModel, Field
import os


API_ENDPOINT = "https://www.dajiala.com/fbmain/monitor/v3/kw_search"


class SearchConfig(BaseModel):
    """關鍵詞搜尋設定"""
    endpoint: str = Field(default=API_ENDPOINT, description="第三方 kw_search 介面")
    api_key_env: str = Field(default="DAJIALA_API_KEY", description="API key 環境變數名稱")
    default_source: Literal["mock", "remote"] = Field(default="mock", description="預設資料來源")
    mock_env: str = Field(
        default="USE_KW_SEARCH_MOCK",
        description="環境變數值為 'false' 時停用模擬資料"
    )
    mock_data_path: Optional[str] = Field(None, description="模擬資料 JSON (None=內建資料集)")
    timeout: Optional[float] = Field(None, description="HTTP timeout 秒數 (None=不設定)")

    # 搜尋請求預設值
    period: int = Field(default=7, description="回溯天數")
    page: int = Field(default=1, description="頁碼")
    size: int = Field(default=20, description="每頁數量")
    sort_type: int = Field(default=1, description="排序方式")
    mode: int = Field(default=1, description="搜尋模式")
    type: int = Field(default=1, description="搜尋類型")


class HistoryConfig(BaseModel):
    """歷史記錄後端設定"""
    backend: Literal["sqlite", "postgres"] = Field(default="sqlite", description="儲存後端")
    sqlite_path: str = Field(default="data/content-factory.db", description="SQLite 檔案路徑")
    postgres_dsn: Optional[str] = Field(None, description="Postgres DSN (環境變數名稱)")
    list_limit: int = Field(default=30, description="列表最多筆數")
    max_records: Optional[int] = Field(
        None,
        description="保留筆數上限 (None=不清理，保存後刪除較舊記錄)"
    )
    auto_save: bool = Field(default=True, description="產生洞察後自動保存")


class ExportConfig(BaseModel):
    """報告匯出設定"""
    output_dir: str = Field(default="out", description="匯出目錄")


class ScoutConfig(BaseModel):
    """完整設定 schema"""
    timezone: str = Field(default="Asia/Shanghai", description="發布時間字串的預設時區")
    search: SearchConfig = Field(default_factory=SearchConfig, description="搜尋設定")
    history: HistoryConfig = Field(default_factory=HistoryConfig, description="歷史記錄設定")
    export: ExportConfig = Field(default_factory=ExportConfig, description="匯出設定")

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "ScoutConfig":
        """從 YAML 檔案載入設定"""
        import yaml
        with open(yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls(**(data or {}))

    def get_api_key(self) -> Optional[str]:
        """取得 API key (從環境變數)"""
        return os.environ.get(self.search.api_key_env) or None

    def get_postgres_dsn(self) -> Optional[str]:
        """取得 Postgres DSN (從環境變數)"""
        if self.history.postgres_dsn:
            return os.environ.get(self.history.postgres_dsn)
        return None

    def resolve_source(self, preference: Optional[str] = None) -> str:
        """決定實際資料來源：明確指定 > 環境變數 > 設定預設值"""
        if preference in ("mock", "remote"):
            return preference
        flag = os.environ.get(self.search.mock_env)
        if flag is not None:
            return "remote" if flag.strip().lower() == "false" else "mock"
        return self.search.default_source
