"""Fatal pipeline errors.

Degradations (planner fallback, skipped or failed searches) are never raised;
they travel as `DegradedReason` values on the result objects instead.
"""
from __future__ import annotations


class PipelineError(Exception):
    """Base class for failures that abort a whole analysis."""

    user_message: str = "分析失败。请稍后重试。"
    retryable: bool = True

    def __init__(self, message: str, *, user_message: str | None = None):
        super().__init__(message)
        if user_message:
            self.user_message = user_message


class ExtractionError(PipelineError):
    user_message = "PDF 解析失败，请确认上传的是有效的 PDF 文件。"
    retryable = False


class LLMConfigurationError(PipelineError):
    user_message = "语言模型 API 密钥缺失或无效，请在设置中重新填写。"
    retryable = False


class SynthesisError(PipelineError):
    user_message = "分析失败。请稍后重试，或检查您的 API 密钥/网络连接。"
