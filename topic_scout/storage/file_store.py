"""
File-based export backend

將報告快照匯出為本地 JSON 文件。
"""

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Optional
import logging

from topic_scout.errors import ExportError
from topic_scout.models import ReportSnapshot
from topic_scout.processing.report import build_export_payload
from topic_scout.utils.time import utcnow

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_RE = re.compile(r'[\\/:*?"<>|\s]+')


def export_file_name(keyword: str, generated_at: datetime) -> str:
    """insight-report-{keyword}-{epoch_ms}.json"""
    safe_keyword = _UNSAFE_FILENAME_RE.sub("_", keyword or "").strip("_") or "report"
    return f"insight-report-{safe_keyword}-{int(generated_at.timestamp() * 1000)}.json"


class ExportStore:
    """報告匯出目錄"""

    def __init__(self, base_dir: str = "out"):
        """
        初始化 ExportStore

        Args:
            base_dir: 匯出目錄 (寫入時才建立)
        """
        self.base_dir = Path(base_dir)

    def write_report(self, snapshot: ReportSnapshot, generated_at: Optional[datetime] = None) -> Path:
        """
        寫入匯出文件

        Returns:
            文件路徑

        Raises:
            ExportError: 目錄或文件無法寫入
        """
        generated_at = generated_at or utcnow()
        payload = build_export_payload(snapshot, generated_at)
        file_path = self.base_dir / export_file_name(snapshot.keyword, generated_at)

        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, ensure_ascii=False, default=str)
        except OSError as e:
            logger.error(f"Failed to export report: {e}")
            raise ExportError(f"导出报告失败: {e}") from e

        logger.info(f"Written report: {file_path}")
        return file_path
