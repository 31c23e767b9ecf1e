"""
Analysis session

一次分析工作階段的狀態：搜尋 -> 產生洞察 -> 自動保存；以及歷史記錄的回放與刪除。
回放時直接使用保存的排行、詞雲與洞察，不重新抓取也不重新計算。
"""

from pathlib import Path
from typing import List, Optional
import logging

from topic_scout.collectors.kw_search import KwSearchClient
from topic_scout.errors import StoreError, TopicScoutError, ValidationError
from topic_scout.models import NormalizedArticle, ReportSnapshot, TopicHistoryRecord, TopicReport
from topic_scout.processing.report import build_report_snapshot
from topic_scout.storage.file_store import ExportStore
from topic_scout.storage.history import HISTORY_LIMIT, HistoryStore
from topic_scout.utils.hashing import snapshot_signature

logger = logging.getLogger(__name__)


class AnalysisSession:
    """
    選題分析工作階段

    client 可為 None (僅回放歷史記錄時)。
    """

    def __init__(
        self,
        client: Optional[KwSearchClient],
        store: HistoryStore,
        auto_save: bool = True,
        history_limit: int = HISTORY_LIMIT,
        source_preference: Optional[str] = None,
    ):
        self.client = client
        self.store = store
        self.auto_save = auto_save
        self.history_limit = history_limit
        self.source_preference = source_preference

        self.active_keyword = ""
        self.data_source = "mock"
        self.articles: List[NormalizedArticle] = []
        self.raw_cut_words = ""
        self.total = 0
        self.total_page = 0
        self.page = 1

        self.show_results = False
        self.show_insight = False
        self.error_message: Optional[str] = None

        self.history: List[TopicHistoryRecord] = []
        self.history_error: Optional[str] = None
        self.is_saving = False
        self.last_saved_signature: Optional[str] = None
        self.is_playback = False
        self._replayed_report: Optional[TopicReport] = None

    # ── Search ───────────────────────────────────────────────

    def search(self, keyword: str, **params) -> ReportSnapshot:
        """
        搜尋並計算報告

        Raises:
            ValidationError: 關鍵詞為空 (不呼叫外部服務)
            UpstreamError / MalformedResponseError: 搜尋失敗，當前結果會被清空
        """
        keyword = (keyword or "").strip()
        if not keyword:
            raise ValidationError("请输入关键词keyword")

        self.is_playback = False
        self._replayed_report = None
        self.last_saved_signature = None
        self.error_message = None
        self.show_insight = False

        try:
            result = self.client.search({"keyword": keyword, **params}, source=self.source_preference)
        except TopicScoutError as e:
            self.error_message = str(e)
            self.show_results = False
            self.articles = []
            raise

        self.articles = list(result.articles)
        self.raw_cut_words = result.raw_cut_words
        self.total = result.total
        self.total_page = result.total_page
        self.page = result.page
        self.data_source = result.source
        self.active_keyword = keyword
        self.show_results = True

        return self.build_snapshot()

    def generate_insight(self) -> Optional[int]:
        """顯示洞察；若符合條件則自動保存，回傳新記錄 id"""
        if not self.articles:
            return None
        self.show_insight = True
        return self.maybe_autosave()

    # ── Snapshot & signature ─────────────────────────────────

    def build_snapshot(self) -> ReportSnapshot:
        """由當前狀態產生快照；回放模式下沿用保存的計算結果"""
        if self.is_playback and self._replayed_report is not None:
            report = self._replayed_report
            return ReportSnapshot(
                keyword=self.active_keyword,
                data_source=self.data_source,
                total=self.total,
                total_page=self.total_page,
                page=self.page,
                raw_cut_words=self.raw_cut_words,
                articles=self.articles,
                top_liked=report.top_liked,
                top_engagement=report.top_engagement,
                keyword_cloud=report.keyword_cloud,
                insights=report.insights,
            )

        return build_report_snapshot(
            keyword=self.active_keyword,
            data_source=self.data_source,
            articles=self.articles,
            total=self.total,
            total_page=self.total_page,
            page=self.page,
            raw_cut_words=self.raw_cut_words,
        )

    def history_signature(self) -> Optional[str]:
        if not self.active_keyword or not self.articles:
            return None
        return snapshot_signature(self.build_snapshot())

    # ── History persistence ──────────────────────────────────

    def maybe_autosave(self) -> Optional[int]:
        """
        自動保存

        只在啟用自動保存、已顯示洞察、非回放、非保存中、且 signature 與上次不同時寫入。
        """
        if not self.show_insight or not self.auto_save or not self.articles or self.is_playback:
            return None

        signature = self.history_signature()
        if not signature or signature == self.last_saved_signature or self.is_saving:
            return None

        return self.persist_history(signature)

    def persist_history(self, signature: Optional[str] = None) -> int:
        """
        保存當前快照並刷新歷史列表

        寫入成功後即記錄 signature；之後的列表刷新失敗只記在 history_error。

        Raises:
            ValidationError / StoreError: 保存失敗，歷史列表維持原狀
        """
        self.is_saving = True
        try:
            snapshot = self.build_snapshot()
            record_id = self.store.save(snapshot)
        except (ValidationError, StoreError) as e:
            self.history_error = str(e)
            logger.warning(f"Failed to save topic history: {e}")
            raise
        finally:
            self.is_saving = False

        self.last_saved_signature = signature or snapshot_signature(snapshot)
        self.history_error = None

        try:
            self.refresh_history()
        except StoreError as e:
            logger.warning(f"Saved topic history #{record_id} but failed to refresh list: {e}")

        return record_id

    def refresh_history(self) -> List[TopicHistoryRecord]:
        try:
            self.history = self.store.list(self.history_limit)
            self.history_error = None
        except StoreError as e:
            self.history_error = str(e)
            raise
        return self.history

    def load_history(self, record: TopicHistoryRecord) -> ReportSnapshot:
        """回放一筆歷史記錄 (不抓取、不重新計算)"""
        self.is_playback = True
        self.active_keyword = record.keyword
        self.data_source = record.data_source
        self.source_preference = record.data_source
        self.raw_cut_words = record.raw_cut_words or ""
        self.total = record.total if record.total is not None else record.article_count
        self.total_page = record.total_page if record.total_page is not None else 1
        self.page = record.page if record.page is not None else 1
        self.articles = list(record.report.articles)
        self._replayed_report = record.report
        self.show_results = True
        self.show_insight = True
        self.error_message = None

        logger.info(f"Replaying topic history #{record.id} ({record.keyword})")
        return self.build_snapshot()

    def delete_history(self, record_id: int) -> bool:
        """
        刪除歷史記錄

        Returns:
            記錄是否存在
        """
        target = next((item for item in self.history if item.id == record_id), None)

        try:
            deleted = self.store.delete(record_id)
            self.history = self.store.list(self.history_limit)
        except StoreError as e:
            self.history_error = str(e)
            raise

        if self.is_playback and target and self.active_keyword == target.keyword:
            self.is_playback = False
            self._replayed_report = None
        self.last_saved_signature = None
        return deleted

    # ── Export ───────────────────────────────────────────────

    def export(self, export_store: ExportStore) -> Optional[Path]:
        """匯出當前報告；尚未產生洞察時不匯出"""
        if not self.show_insight or not self.articles:
            return None
        return export_store.write_report(self.build_snapshot())
