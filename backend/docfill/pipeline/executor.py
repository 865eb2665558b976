"""
批量导出执行器 - N 个文档 → 单个 zip 归档

职责：
1. 拾取任务（创建与拾取在不同线程，按配置重试直到任务可见）
2. 并行计算：构建替换表 → 读模板（任务级缓存）→ 规范化（任务级转换器缓存）→ 实例化 → 导出
3. 串行写归档：按提交顺序等待结果，条目顺序与请求顺序一致
4. 进度按十分位节流，每次状态迁移先落盘再推送
5. 单文档缺失（文档记录或模板文件）跳过并记录；其他未捕获异常 → ERROR

状态迁移：
    CREATED → DOWNLOADING → PROGRESS* → DOWNLOADED | ERROR

测试要点：
- test_entries_follow_request_order: 条目顺序
- test_template_read_once: 模板每个任务只读一次
- test_progress_throttled_to_deciles: 进度节流
- test_missing_template_skipped: 缺失模板跳过
- test_unsupported_format_errors: 不支持的格式 → ERROR
- test_job_not_visible: 任务不可见时放弃
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

from ..config import RuntimeConfig, get_config
from ..doc_gen import DocumentRenderer
from ..interfaces import (
    DocumentNotFound,
    IDocumentSource,
    IFormatConverter,
    IJobManager,
    ITemplateStore,
    JobNotVisible,
    TemplateFileMissing,
)
from ..models import ExportJob, JobStatus
from .notifier import NotificationChannel
from .packager import ArchiveWriter

logger = logging.getLogger(__name__)


@dataclass
class RenderedDocument:
    """单个文档的渲染结果（payload 为 None 表示已跳过）"""
    document_id: int
    name: str | None
    payload: bytes | None
    reason: str | None = None


class JobCaches:
    """任务级缓存：模板字节按路径、转换器按扩展名（并发下每个键只加载一次）"""

    def __init__(self, store: ITemplateStore, resolve_converter: Callable[[str], IFormatConverter]):
        self._store = store
        self._resolve_converter = resolve_converter
        self._files: dict[str, Future[bytes]] = {}
        self._converters: dict[str, IFormatConverter] = {}
        self._files_lock = threading.Lock()
        self._converters_lock = threading.Lock()

    def template_bytes(self, path: str) -> bytes:
        """同一路径只读取一次；不同路径的读取互不等待"""
        with self._files_lock:
            pending = self._files.get(path)
            loader = pending is None
            if loader:
                pending = Future()
                self._files[path] = pending

        if loader:
            try:
                pending.set_result(self._store.read(path))
            except Exception as e:
                pending.set_exception(e)
        return pending.result()

    def converter(self, extension: str) -> IFormatConverter:
        with self._converters_lock:
            converter = self._converters.get(extension)
            if converter is None:
                converter = self._resolve_converter(extension)
                self._converters[extension] = converter
            return converter


class BatchExportExecutor:
    """批量导出执行器"""

    def __init__(
        self,
        job_manager: IJobManager,
        documents: IDocumentSource,
        store: ITemplateStore,
        renderer: DocumentRenderer,
        channel: NotificationChannel,
        config: RuntimeConfig | None = None,
    ):
        self.job_manager = job_manager
        self.documents = documents
        self.store = store
        self.renderer = renderer
        self.channel = channel
        self.config = config or get_config()

    def run(self, job_id: str) -> None:
        """执行任务（失败记录在任务上，不向调用方抛出）"""
        try:
            job = self._wait_for_job(job_id)
        except JobNotVisible as e:
            logger.warning(f"放弃任务: {e}")
            return

        if job.status is not JobStatus.CREATED:
            logger.warning(f"[{job.job_id}] 任务已被拾取 ({job.status.value})，忽略")
            return

        job.mark_downloading()
        self._commit(job)
        logger.info(f"[{job.job_id}] 开始导出: {job.total} 个文档 → {job.format}")

        futures: list[Future[RenderedDocument]] = []
        pool = ThreadPoolExecutor(
            max_workers=self.config.concurrency.resolve_max_workers(),
            thread_name_prefix=f"export-{job.job_id[:8]}",
        )
        try:
            self.renderer.exporters.resolve(job.format)
            caches = JobCaches(self.store, self.renderer.converters.resolve)
            futures = [
                pool.submit(self._render_one, document_id, job.format, caches)
                for document_id in job.document_ids
            ]

            archive_path = (
                self.config.get_downloads_dir() / f"documents_{uuid.uuid4().hex}.zip"
            )
            with ArchiveWriter(archive_path) as archive:
                last_bucket = 0
                for processed, future in enumerate(futures, start=1):
                    self._collect(job, archive, future.result())

                    bucket = processed * 10 // job.total
                    if bucket > last_bucket:
                        last_bucket = bucket
                        job.mark_progress(processed, bucket * 10)
                        self._commit(job)

            job.mark_downloaded(archive_path)
            self._commit(job)
            logger.info(
                f"[{job.job_id}] 导出完成: {len(archive.entries)} 个条目, "
                f"{len(job.failures)} 个失败 → {archive_path}"
            )

        except Exception as e:
            logger.exception(f"[{job.job_id}] 导出失败")
            for future in futures:
                future.cancel()
            if not job.status.is_terminal:
                job.mark_error(str(e))
                self._commit(job)

        finally:
            pool.shutdown(wait=True, cancel_futures=True)

    def _wait_for_job(self, job_id: str) -> ExportJob:
        """
        等待任务可见

        Raises:
            JobNotVisible: 重试次数内任务始终不可见
        """
        pickup = self.config.pickup
        for attempt in range(1, pickup.max_retries + 1):
            job = self.job_manager.get_job(job_id)
            if job is not None:
                return job
            logger.debug(f"任务尚不可见: {job_id} (第 {attempt} 次)")
            if attempt < pickup.max_retries:
                time.sleep(pickup.delay_ms / 1000)
        raise JobNotVisible(job_id, pickup.max_retries)

    def _render_one(
        self, document_id: int, export_format: str, caches: JobCaches
    ) -> RenderedDocument:
        document = self.documents.get_document(document_id)
        if document is None:
            return RenderedDocument(
                document_id, None, None, str(DocumentNotFound([document_id]))
            )

        template = document.template
        try:
            data = caches.template_bytes(template.file_path)
        except TemplateFileMissing as e:
            return RenderedDocument(document_id, document.name, None, str(e))

        payload = self.renderer.render(
            data,
            template.extension,
            document.build_replacements(),
            export_format,
            resolve_converter=caches.converter,
        )
        return RenderedDocument(document_id, document.name, payload)

    def _collect(self, job: ExportJob, archive: ArchiveWriter, result: RenderedDocument) -> None:
        if result.payload is None:
            logger.warning(f"[{job.job_id}] 跳过文档 {result.document_id}: {result.reason}")
            job.add_failure(result.document_id, result.reason or "", name=result.name)
            return

        archive.write_entry(
            result.name or str(result.document_id),
            job.format,
            result.payload,
            result.document_id,
        )
        if not result.payload:
            job.add_failure(result.document_id, "导出内容为空", name=result.name)

    def _commit(self, job: ExportJob) -> None:
        """先落盘再推送"""
        self.job_manager.update_job(job)
        self.channel.publish(job.snapshot())
