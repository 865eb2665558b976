"""
任务管理器 - 导出任务创建/查询/更新

职责：
1. 创建任务并分配ID
2. 任务状态持久化（每次迁移落盘 job.json，临时文件 + 原子替换）
3. 任务查询（内存缓存优先，其次磁盘）

线程安全：任务记录是唯一的共享可变状态，读写均在锁内完成并以副本交换，
读者看到的是单调推进的状态序列。

测试要点：
- test_create_job: 创建任务
- test_get_job_returns_copy: 返回副本
- test_update_job_persists: 更新落盘
- test_load_from_disk: 从磁盘加载
"""

from __future__ import annotations

import json
import logging
import os
import threading
import uuid

from ..config import RuntimeConfig, get_config
from ..interfaces import IJobManager
from ..models import ExportJob, JobStatus

logger = logging.getLogger(__name__)


class JobManager(IJobManager):
    """任务管理器实现"""

    def __init__(self, config: RuntimeConfig | None = None):
        self.config = config or get_config()
        self._jobs: dict[str, ExportJob] = {}  # 内存缓存
        self._lock = threading.RLock()

    def create_job(self, export_format: str, document_ids: list[int]) -> ExportJob:
        """创建任务（文档ID去重并保持顺序）"""
        job = ExportJob(
            job_id=str(uuid.uuid4()),
            format=export_format,
            document_ids=list(dict.fromkeys(document_ids)),
        )
        self.update_job(job)
        logger.info(f"任务已创建: {job.job_id} ({export_format}, {job.total} 个文档)")
        return job.model_copy(deep=True)

    def get_job(self, job_id: str) -> ExportJob | None:
        """获取任务"""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                job = self._load_job(job_id)
                if job is None:
                    return None
                self._jobs[job_id] = job
            return job.model_copy(deep=True)

    def update_job(self, job: ExportJob) -> None:
        """更新任务状态"""
        with self._lock:
            stored = job.model_copy(deep=True)
            self._persist_job(stored)
            self._jobs[job.job_id] = stored

    def list_jobs(
        self,
        status: JobStatus | None = None,
        limit: int = 100,
    ) -> list[ExportJob]:
        """列出任务"""
        with self._lock:
            jobs = [j.model_copy(deep=True) for j in self._jobs.values()]

        if status:
            jobs = [j for j in jobs if j.status == status]

        # 按创建时间降序
        jobs.sort(key=lambda j: j.created_at, reverse=True)

        return jobs[:limit]

    def _persist_job(self, job: ExportJob) -> None:
        """持久化任务"""
        job_dir = self.config.get_job_dir(job.job_id)
        job_dir.mkdir(parents=True, exist_ok=True)

        job_file = job_dir / "job.json"
        tmp_file = job_dir / "job.json.tmp"
        with open(tmp_file, "w", encoding="utf-8") as f:
            json.dump(job.model_dump(mode="json"), f, ensure_ascii=False, indent=2)
        os.replace(tmp_file, job_file)

    def _load_job(self, job_id: str) -> ExportJob | None:
        """从磁盘加载任务"""
        try:
            uuid.UUID(job_id)
        except ValueError:
            return None

        job_file = self.config.get_job_dir(job_id) / "job.json"

        if not job_file.exists():
            return None

        try:
            with open(job_file, encoding="utf-8") as f:
                data = json.load(f)
            return ExportJob.model_validate(data)
        except (OSError, ValueError) as e:
            logger.warning(f"任务记录读取失败: {job_file}: {e}")
            return None
