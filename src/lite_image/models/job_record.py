"""队列读模型。

供界面渲染的任务记录和队列汇总，在每次状态迁移时同步更新。
"""

from typing import TypedDict

from humanize import naturalsize
from pydantic import BaseModel, ConfigDict, Field

from .job import Job, JobStatus


class BaseRecord(BaseModel):
    """记录基类，包含通用方法"""

    model_config = ConfigDict(frozen=True)

    @staticmethod
    def format_size(size_bytes: int) -> str:
        """格式化文件大小为人类可读格式"""
        return naturalsize(size_bytes, binary=True)


class JobRecord(BaseRecord):
    """单个任务的只读视图"""

    id: str = Field(description="任务标识")
    file_name: str = Field(description="原始文件名")
    status: JobStatus = Field(description="任务状态")
    original_size: int = Field(description="原始文件大小（字节）")

    # 仅在 DONE 状态下存在
    output_size: int | None = Field(None, description="输出文件大小（字节）")
    output_width: int | None = Field(None, description="输出宽度")
    output_height: int | None = Field(None, description="输出高度")
    output_file_name: str | None = Field(None, description="输出文件名")
    savings_ratio: float | None = Field(None, description="体积节省比例，可为负")

    # 仅在 ERROR 状态下存在
    error: str | None = Field(None, description="失败原因")

    @classmethod
    def from_job(cls, job: Job) -> "JobRecord":
        """根据任务当前状态构建记录"""
        fields: dict = {
            "id": job.id,
            "file_name": job.file_name,
            "status": job.status,
            "original_size": job.original_size,
            "error": job.error,
        }
        if (result := job.result) is not None:
            fields.update(
                output_size=result.output_size,
                output_width=result.output_width,
                output_height=result.output_height,
                output_file_name=result.output_file_name,
                savings_ratio=result.savings_ratio,
            )
        return cls(**fields)

    def get_original_size_human(self) -> str:
        return self.format_size(self.original_size)

    def get_output_size_human(self) -> str | None:
        if self.output_size is None:
            return None
        return self.format_size(self.output_size)

    def get_summary(self) -> str:
        """记录摘要"""
        match self.status:
            case JobStatus.DONE:
                savings = (self.savings_ratio or 0.0) * 100
                return (
                    f"{self.get_original_size_human()} → {self.get_output_size_human()} "
                    f"({self.output_width}×{self.output_height}, 节省 {savings:.1f}%)"
                )
            case JobStatus.ERROR:
                return f"失败: {self.error}"
            case JobStatus.PROCESSING:
                return "处理中"
            case _:
                return "等待中"


class QueueSummary(BaseRecord):
    """队列汇总"""

    records: list[JobRecord] = Field(default_factory=list, description="全部记录")

    def count(self, status: JobStatus) -> int:
        return sum(1 for r in self.records if r.status == status)

    def get_total_count(self) -> int:
        return len(self.records)

    def get_done_count(self) -> int:
        return self.count(JobStatus.DONE)

    def get_error_count(self) -> int:
        return self.count(JobStatus.ERROR)

    def get_pending_count(self) -> int:
        return self.count(JobStatus.PENDING)

    def get_total_saved_bytes(self) -> int:
        """已完成任务的总节省字节数，整体变大时为负"""
        return sum(
            r.original_size - r.output_size
            for r in self.records
            if r.status == JobStatus.DONE and r.output_size is not None
        )

    def get_summary(self) -> str:
        """队列摘要"""
        summary = f"已处理 {self.get_done_count()}/{self.get_total_count()} 个文件"
        saved = self.get_total_saved_bytes()
        if saved > 0:
            summary += f"（节省 {self.format_size(saved)}）"
        if errors := self.get_error_count():
            summary += f"，失败 {errors} 个"
        return summary


class QueueStatusResponse(TypedDict):
    """队列状态响应类型定义"""

    success: bool
    summary: str
    jobs: list[dict]
