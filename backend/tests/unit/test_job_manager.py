"""
任务管理器与归档写入器单元测试
"""

import json
import zipfile

from docfill.config import RuntimeConfig
from docfill.models import JobStatus
from docfill.pipeline import ArchiveWriter, JobManager
from docfill.pipeline.packager import entry_name


class TestJobManager:
    """任务管理器测试"""

    def test_create_job(self, runtime_config: RuntimeConfig):
        """文档ID去重并保持顺序"""
        job = JobManager(runtime_config).create_job("pdf", [3, 1, 3, 2])
        assert job.status is JobStatus.CREATED
        assert job.document_ids == [3, 1, 2]

    def test_get_job_returns_copy(self, runtime_config: RuntimeConfig):
        manager = JobManager(runtime_config)
        job = manager.create_job("txt", [1])
        job.mark_downloading()

        assert manager.get_job(job.job_id).status is JobStatus.CREATED
        fetched = manager.get_job(job.job_id)
        fetched.document_ids.append(9)
        assert manager.get_job(job.job_id).document_ids == [1]

    def test_update_job_persists(self, runtime_config: RuntimeConfig):
        manager = JobManager(runtime_config)
        job = manager.create_job("txt", [1])
        job.mark_downloading()
        manager.update_job(job)

        job_file = runtime_config.get_job_dir(job.job_id) / "job.json"
        assert json.loads(job_file.read_text(encoding="utf-8"))["status"] == "DOWNLOADING"
        assert not (job_file.parent / "job.json.tmp").exists()

    def test_load_from_disk(self, runtime_config: RuntimeConfig):
        job = JobManager(runtime_config).create_job("csv", [5])
        loaded = JobManager(runtime_config).get_job(job.job_id)
        assert loaded is not None
        assert loaded.format == "csv"
        assert loaded.document_ids == [5]

    def test_corrupt_record(self, runtime_config: RuntimeConfig):
        job = JobManager(runtime_config).create_job("csv", [5])
        (runtime_config.get_job_dir(job.job_id) / "job.json").write_text("{", encoding="utf-8")
        assert JobManager(runtime_config).get_job(job.job_id) is None

    def test_unknown_job(self, runtime_config: RuntimeConfig):
        manager = JobManager(runtime_config)
        assert manager.get_job("5f0c7c8e-0000-4000-8000-000000000000") is None
        assert manager.get_job("../escape") is None

    def test_list_jobs(self, runtime_config: RuntimeConfig):
        manager = JobManager(runtime_config)
        first = manager.create_job("txt", [1])
        second = manager.create_job("txt", [2])
        second.mark_downloading()
        manager.update_job(second)

        assert {j.job_id for j in manager.list_jobs()} == {first.job_id, second.job_id}
        assert [j.job_id for j in manager.list_jobs(status=JobStatus.CREATED)] == [first.job_id]
        assert len(manager.list_jobs(limit=1)) == 1


class TestArchiveWriter:
    """归档写入器测试"""

    def test_entry_names(self):
        assert entry_name("report", "pdf") == "report.pdf"
        assert entry_name("a/b\\c", "txt") == "a_b_c.txt"
        assert entry_name("  ", "txt") == "document.txt"

    def test_duplicate_names(self, tmp_path):
        path = tmp_path / "out" / "docs.zip"
        with ArchiveWriter(path) as archive:
            archive.write_entry("same", "txt", b"1", 1)
            archive.write_entry("same", "txt", b"2", 2)

        assert archive.entries == ["same.txt", "same_2.txt"]
        with zipfile.ZipFile(path) as zf:
            assert zf.namelist() == ["same.txt", "same_2.txt"]
            assert zf.read("same_2.txt") == b"2"
            assert zf.getinfo("same.txt").compress_type == zipfile.ZIP_DEFLATED
