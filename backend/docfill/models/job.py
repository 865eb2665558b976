"""
任务模型 - 批量导出任务的状态机与生命周期

状态迁移：
    CREATED → DOWNLOADING → PROGRESS(可重复) → DOWNLOADED
    任意非终态 → ERROR
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from ..interfaces import InvalidJobTransition


class JobStatus(str, Enum):
    """任务状态枚举"""
    CREATED = "CREATED"
    DOWNLOADING = "DOWNLOADING"
    PROGRESS = "PROGRESS"
    DOWNLOADED = "DOWNLOADED"
    ERROR = "ERROR"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.DOWNLOADED, JobStatus.ERROR)


_ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.CREATED: frozenset({JobStatus.DOWNLOADING, JobStatus.ERROR}),
    JobStatus.DOWNLOADING: frozenset(
        {JobStatus.PROGRESS, JobStatus.DOWNLOADED, JobStatus.ERROR}
    ),
    JobStatus.PROGRESS: frozenset(
        {JobStatus.PROGRESS, JobStatus.DOWNLOADED, JobStatus.ERROR}
    ),
    JobStatus.DOWNLOADED: frozenset(),
    JobStatus.ERROR: frozenset(),
}


class DocumentFailure(BaseModel):
    """单个文档的跳过/降级记录（不影响整体状态）"""
    document_id: int
    name: str | None = None
    reason: str


class JobSnapshot(BaseModel):
    """推送给订阅者的任务状态快照"""
    job_id: str
    format: str
    status: JobStatus
    document_ids: list[int]
    created_at: datetime
    progress_percent: int = 0
    failures: list[DocumentFailure] = Field(default_factory=list)


class ExportJob(BaseModel):
    """批量导出任务实体"""
    job_id: str = Field(..., description="UUID")
    format: str
    document_ids: list[int] = Field(default_factory=list)

    # 状态
    status: JobStatus = JobStatus.CREATED
    processed: int = 0
    progress_percent: int = 0

    # 产物（仅在 DOWNLOADED 时设置一次）
    archive_path: Path | None = None

    # 结果
    failures: list[DocumentFailure] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list, description="错误信息")

    # 时间戳
    created_at: datetime = Field(default_factory=datetime.now)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def total(self) -> int:
        return len(self.document_ids)

    def _transition(self, target: JobStatus) -> None:
        if target not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidJobTransition(self.status.value, target.value)
        self.status = target

    def mark_downloading(self) -> None:
        """worker 已拾取任务"""
        self._transition(JobStatus.DOWNLOADING)
        self.started_at = datetime.now()

    def mark_progress(self, processed: int, percent: int) -> None:
        """进度推进（由调用方按十分位节流）"""
        self._transition(JobStatus.PROGRESS)
        self.processed = processed
        self.progress_percent = percent

    def mark_downloaded(self, archive_path: Path) -> None:
        """全部处理完成，归档已落盘"""
        if self.archive_path is not None:
            raise InvalidJobTransition(self.status.value, JobStatus.DOWNLOADED.value)
        self._transition(JobStatus.DOWNLOADED)
        self.archive_path = archive_path
        self.progress_percent = 100
        self.finished_at = datetime.now()

    def mark_error(self, error: str) -> None:
        """标记为失败并清除归档路径"""
        self._transition(JobStatus.ERROR)
        self.archive_path = None
        self.errors.append(error)
        self.finished_at = datetime.now()

    def add_failure(self, document_id: int, reason: str, name: str | None = None) -> None:
        """记录单个文档失败（不中断）"""
        self.failures.append(DocumentFailure(document_id=document_id, name=name, reason=reason))

    def snapshot(self) -> JobSnapshot:
        return JobSnapshot(
            job_id=self.job_id,
            format=self.format,
            status=self.status,
            document_ids=list(self.document_ids),
            created_at=self.created_at,
            progress_percent=self.progress_percent,
            failures=[f.model_copy() for f in self.failures],
        )
