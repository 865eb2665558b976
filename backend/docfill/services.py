"""
服务门面 - 模板上传、文档实例、单文档导出、批量导出任务

职责：
1. 模板上传：上传限制校验 → 文本抽取 → 字段发现 → 内容哈希去重落盘
2. 文档实例：字段值校验（未知字段、必填字段）
3. 单文档导出：同步渲染，错误直接抛出
4. 批量导出：后台线程池执行，错误记录在任务上
5. 任务查询、归档下载、进度订阅

使用方式：
    services = build_services()
    template = services.templates.upload_template("invoice", "invoice.docx", data)
    document = services.documents.create_document(template.template_id, "ann", {"NAME": "Ann"})
    job_id = services.exports.submit_batch_job([document.document_id], "pdf")
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from .config import RuntimeConfig, get_config
from .doc_gen import (
    DocumentRenderer,
    FieldDiscoveryEngine,
    LibreOfficeEngine,
    TemplateInstantiator,
    build_converters,
    build_exporters,
)
from .extractors import build_extractors
from .interfaces import (
    DocumentNotFound,
    ITextExtractor,
    JobNotFound,
    JobNotReady,
    TemplateAlreadyExists,
    TemplateNotFound,
    UploadRejected,
    normalize_extension,
)
from .models import DocumentRecord, ExportJob, JobStatus, Template, TemplateField, ValueBinding
from .pipeline import BatchExportExecutor, JobManager, NotificationChannel, Subscriber
from .registry import CapabilityRegistry
from .storage import DocumentRepository, TemplateFileStore, TemplateRepository, calculate_sha256

logger = logging.getLogger(__name__)


class TemplateService:
    """模板服务"""

    def __init__(
        self,
        repository: TemplateRepository,
        store: TemplateFileStore,
        extractors: CapabilityRegistry[ITextExtractor],
        discovery: FieldDiscoveryEngine,
        config: RuntimeConfig | None = None,
    ):
        self.repository = repository
        self.store = store
        self.extractors = extractors
        self.discovery = discovery
        self.config = config or get_config()

    def upload_template(
        self,
        name: str,
        filename: str,
        data: bytes,
        required_fields: list[str] | None = None,
    ) -> Template:
        """
        上传模板

        Raises:
            UploadRejected: 扩展名或大小不满足上传限制
            TemplateAlreadyExists: 模板名称重复
            UnsupportedFormat: 没有抽取器支持该扩展名
            UnrecognizedTemplateFormat: 抽取文本为空
        """
        extension = self._check_upload(filename, data)
        if self.repository.find_by_name(name) is not None:
            raise TemplateAlreadyExists(name)

        fields = self._discover(data, extension, filename)
        required = set(required_fields or ())
        for field in fields:
            field.required = field.name in required

        content_hash, file_path = self._store_bytes(data, filename, extension)
        template = Template(
            template_id=self.repository.next_id(),
            name=name,
            file_path=file_path,
            content_hash=content_hash,
            extension=extension,
            fields=fields,
        )
        self.repository.add(template)
        logger.info(f"模板已上传: {name} ({extension}, {len(fields)} 个字段)")
        return template

    def replace_template_file(self, template_id: int, filename: str, data: bytes) -> Template:
        """替换模板文件并重新发现字段（同名字段保留必填设置）"""
        template = self.repository.get(template_id)
        if template is None:
            raise TemplateNotFound(template_id)

        extension = self._check_upload(filename, data)
        fields = self._discover(data, extension, filename)
        for field in fields:
            previous = template.get_field(field.name)
            field.required = previous.required if previous else False

        content_hash, file_path = self._store_bytes(data, filename, extension)
        template.file_path = file_path
        template.content_hash = content_hash
        template.extension = extension
        template.fields = fields
        self.repository.update(template)
        logger.info(f"模板文件已替换: {template.name} ({len(fields)} 个字段)")
        return template

    def get_template(self, template_id: int) -> Template:
        template = self.repository.get(template_id)
        if template is None:
            raise TemplateNotFound(template_id)
        return template

    def _check_upload(self, filename: str, data: bytes) -> str:
        limits = self.config.upload_limits
        extension = normalize_extension(Path(filename).suffix)
        if extension not in limits.allowed_exts:
            raise UploadRejected(f"不允许的文件类型: {filename}", {"extension": extension})
        if len(data) > limits.max_file_mb * 1024 * 1024:
            raise UploadRejected(
                f"文件过大: {filename}",
                {"size": len(data), "max_file_mb": limits.max_file_mb},
            )
        return extension

    def _discover(self, data: bytes, extension: str, filename: str) -> list[TemplateField]:
        text = self.extractors.resolve(extension).extract_text(data)
        logger.debug(f"模板文本已抽取: {filename} ({len(text)} 字符)")
        return self.discovery.discover(text)

    def _store_bytes(self, data: bytes, filename: str, extension: str) -> tuple[str, str]:
        """相同内容复用已存文件"""
        content_hash = calculate_sha256(data)
        existing = self.repository.find_by_hash(content_hash)
        if existing is not None:
            logger.info(f"内容已存在，复用模板文件: {existing.file_path}")
            return content_hash, existing.file_path
        return content_hash, self.store.save(data, filename, extension)


class DocumentService:
    """文档实例服务"""

    def __init__(
        self,
        templates: TemplateRepository,
        documents: DocumentRepository,
        store: TemplateFileStore,
        renderer: DocumentRenderer,
    ):
        self.templates = templates
        self.documents = documents
        self.store = store
        self.renderer = renderer

    def create_document(
        self, template_id: int, name: str, values: dict[str, str | None]
    ) -> DocumentRecord:
        """
        创建文档实例

        Raises:
            TemplateNotFound: 模板不存在
            UnknownFieldBinding: 值引用了模板中不存在的字段
            RequiredValueMissing: 必填字段没有非空值
        """
        template = self.templates.get(template_id)
        if template is None:
            raise TemplateNotFound(template_id)

        document = DocumentRecord(
            document_id=self.documents.next_id(),
            name=name,
            template=template,
            values=[ValueBinding(field_name=k, value=v) for k, v in values.items()],
        )
        document.validate_bindings()
        self.documents.add(document)
        return document

    def export_document(self, document_id: int, export_format: str) -> bytes:
        """单文档同步导出"""
        document = self.documents.get_document(document_id)
        if document is None:
            raise DocumentNotFound([document_id])

        template = document.template
        data = self.store.read(template.file_path)
        return self.renderer.render(
            data,
            template.extension,
            document.build_replacements(),
            normalize_extension(export_format),
        )


class ExportService:
    """批量导出服务"""

    def __init__(
        self,
        job_manager: JobManager,
        executor: BatchExportExecutor,
        channel: NotificationChannel,
        config: RuntimeConfig | None = None,
    ):
        self.job_manager = job_manager
        self.executor = executor
        self.channel = channel
        self.config = config or get_config()
        self._pool = ThreadPoolExecutor(
            max_workers=self.config.concurrency.job_workers,
            thread_name_prefix="batch-export",
        )
        self._running: dict[str, Future] = {}

    def submit_batch_job(self, document_ids: list[int], export_format: str) -> str:
        """提交批量导出任务，立即返回任务ID"""
        job = self.job_manager.create_job(normalize_extension(export_format), document_ids)
        self.channel.publish(job.snapshot())
        future = self._pool.submit(self.executor.run, job.job_id)
        self._running[job.job_id] = future
        future.add_done_callback(lambda _: self._running.pop(job.job_id, None))
        return job.job_id

    def wait(self, job_id: str, timeout: float | None = None) -> ExportJob:
        """等待任务执行结束"""
        future = self._running.get(job_id)
        if future is not None:
            future.result(timeout=timeout)
        return self.get_job(job_id)

    def get_job(self, job_id: str) -> ExportJob:
        job = self.job_manager.get_job(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    def list_jobs(self, status: JobStatus | None = None, limit: int = 100) -> list[ExportJob]:
        return self.job_manager.list_jobs(status=status, limit=limit)

    def download_archive(self, job_id: str) -> Path:
        """
        归档路径（仅 DOWNLOADED 状态可下载）

        Raises:
            JobNotFound: 任务不存在
            JobNotReady: 任务尚未完成或已失败
        """
        job = self.get_job(job_id)
        if job.status is not JobStatus.DOWNLOADED or job.archive_path is None:
            raise JobNotReady(job_id, job.status.value)
        return job.archive_path

    def subscribe(self, job_id: str | None = None) -> Subscriber:
        return self.channel.subscribe(job_id)

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)


@dataclass
class Services:
    templates: TemplateService
    documents: DocumentService
    exports: ExportService
    channel: NotificationChannel


def build_services(config: RuntimeConfig | None = None) -> Services:
    """按配置装配所有服务"""
    config = config or get_config()
    config.ensure_dirs()

    engine = LibreOfficeEngine(config=config)
    discovery = FieldDiscoveryEngine(config.discovery)
    renderer = DocumentRenderer(
        converters=build_converters(engine),
        exporters=build_exporters(engine),
        instantiator=TemplateInstantiator(config.instantiation, discovery),
    )
    store = TemplateFileStore(config.get_samples_dir())
    template_repo = TemplateRepository()
    document_repo = DocumentRepository()
    channel = NotificationChannel(config.notifications.subscriber_timeout_sec)
    job_manager = JobManager(config)
    executor = BatchExportExecutor(job_manager, document_repo, store, renderer, channel, config)

    return Services(
        templates=TemplateService(template_repo, store, build_extractors(), discovery, config),
        documents=DocumentService(template_repo, document_repo, store, renderer),
        exports=ExportService(job_manager, executor, channel, config),
        channel=channel,
    )
