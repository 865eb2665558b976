"""
流水线模块 - 批量导出任务编排与执行

子模块：
- executor: 批量导出执行器
- job_manager: 任务管理
- packager: zip 归档写入
- notifier: 进度推送通道
"""

from .executor import BatchExportExecutor
from .job_manager import JobManager
from .notifier import NotificationChannel, Subscriber, format_sse
from .packager import ArchiveWriter

__all__ = [
    "BatchExportExecutor",
    "JobManager",
    "NotificationChannel",
    "Subscriber",
    "format_sse",
    "ArchiveWriter",
]
