"""
Exception taxonomy

所有對外可見的失敗都經由以下例外傳遞。
"""


class TopicScoutError(Exception):
    """Base class for topic_scout failures"""
    pass


class ValidationError(TopicScoutError):
    """關鍵詞缺失等輸入錯誤（在呼叫外部服務或寫入前拋出）"""
    pass


class UpstreamError(TopicScoutError):
    """第三方搜尋服務不可用、HTTP 非成功、或業務 code 非成功"""

    def __init__(self, message: str, code=None, status_code=None):
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class MalformedResponseError(TopicScoutError):
    """回應內容無法解析為預期結構"""
    pass


class StoreError(TopicScoutError):
    """歷史記錄存取失敗"""
    pass


class ExportError(TopicScoutError):
    """報告匯出失敗"""
    pass
