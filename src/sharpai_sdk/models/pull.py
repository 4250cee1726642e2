"""模型拉取进度 record（`/api/pull` 的 NDJSON 行）。"""

from __future__ import annotations

from typing import Optional

from sharpai_sdk.models.common import WireRecord

_SIZES = ("B", "KB", "MB", "GB", "TB")


class PullModelProgress(WireRecord):
    """
    一条拉取进度。

    字段：
    - status：阶段描述；拉取完成时为 `success`
    - downloaded：已下载字节数
    - percent：完成比例（0..1）
    - error：服务端报告的错误（无错误时为空串）
    - digest/total/completed：分层下载信息（服务端可选提供）
    """

    status: str = ""
    downloaded: Optional[int] = None
    percent: Optional[float] = None
    error: Optional[str] = None
    digest: Optional[str] = None
    total: Optional[int] = None
    completed: Optional[int] = None

    def progress_percentage(self) -> Optional[float]:
        """百分比（0..100）；优先使用 `percent`，否则由 completed/total 推算。"""

        if self.percent is not None:
            return float(self.percent) * 100.0
        if self.total and self.completed is not None:
            return float(self.completed) / float(self.total) * 100.0
        return None

    def formatted_progress(self) -> str:
        """形如 `12.50 MB (42.0%)`；缺少进度信息时返回 status。"""

        pct = self.progress_percentage()
        done = self.downloaded if self.downloaded is not None else self.completed
        if done is not None and pct is not None:
            return f"{format_bytes(done)} ({pct:.1f}%)"
        return self.status or "Unknown"

    def is_complete(self) -> bool:
        return (self.status or "").strip().lower() == "success"

    def has_error(self) -> bool:
        return bool(self.error)


def format_bytes(num: int) -> str:
    """把字节数格式化为 `B/KB/MB/GB/TB`（两位小数）。"""

    size = float(num)
    order = 0
    while size >= 1024 and order < len(_SIZES) - 1:
        order += 1
        size = size / 1024
    return f"{size:.2f} {_SIZES[order]}"


__all__ = ["PullModelProgress", "format_bytes"]
