"""任务模型。

任务状态使用以 status 为判别字段的联合类型：只有 DoneState 携带结果，
只有 ErrorState 携带失败原因，其它状态无法访问这些字段。
"""

import uuid
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, computed_field

from .constants import OutputFormat
from .transform_config import TransformConfig


class JobStatus(str, Enum):
    """任务状态"""

    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.DONE, JobStatus.ERROR)


class SourceImage(BaseModel):
    """用户提交的源图像（不可变）"""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(repr=False, description="原始字节")
    media_type: str = Field(description="声明的 MIME 类型")
    file_name: str = Field(description="原始文件名")

    @property
    def size(self) -> int:
        return len(self.data)


class TransformResult(BaseModel):
    """单个任务的转换结果"""

    model_config = ConfigDict(frozen=True)

    output_bytes: bytes = Field(repr=False, description="输出字节")
    output_width: int = Field(ge=1, description="输出宽度")
    output_height: int = Field(ge=1, description="输出高度")
    output_file_name: str = Field(description="输出文件名")
    output_format: OutputFormat = Field(description="实际使用的格式")
    original_size: int = Field(ge=0, description="原始文件大小（字节）")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def output_size(self) -> int:
        return len(self.output_bytes)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def savings_ratio(self) -> float:
        """体积节省比例，文件变大时为负数，不做截断"""
        return compute_savings_ratio(self.original_size, self.output_size)


def compute_savings_ratio(original_size: int, output_size: int) -> float:
    """(原始大小 - 输出大小) / 原始大小；原始大小为 0 时返回 0.0"""
    if original_size == 0:
        return 0.0
    return (original_size - output_size) / original_size


class PendingState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal[JobStatus.PENDING] = JobStatus.PENDING


class ProcessingState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal[JobStatus.PROCESSING] = JobStatus.PROCESSING


class DoneState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal[JobStatus.DONE] = JobStatus.DONE
    result: TransformResult


class ErrorState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal[JobStatus.ERROR] = JobStatus.ERROR
    reason: str


JobState = Annotated[
    PendingState | ProcessingState | DoneState | ErrorState,
    Field(discriminator="status"),
]

# 允许的状态迁移，DONE 和 ERROR 为终态
_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.PENDING: {JobStatus.PROCESSING},
    JobStatus.PROCESSING: {JobStatus.DONE, JobStatus.ERROR},
    JobStatus.DONE: set(),
    JobStatus.ERROR: set(),
}


def new_job_id() -> str:
    return uuid.uuid4().hex


class Job(BaseModel):
    """队列中的单个任务"""

    id: str = Field(default_factory=new_job_id, description="任务标识")
    source: SourceImage | None = Field(description="源图像，终态后释放")
    config: TransformConfig = Field(description="入队时的配置快照")
    state: JobState = Field(default_factory=PendingState)

    _file_name: str = PrivateAttr(default="")
    _original_size: int = PrivateAttr(default=0)

    def model_post_init(self, context: Any) -> None:
        if self.source is not None:
            self._file_name = self.source.file_name
            self._original_size = self.source.size

    @property
    def status(self) -> JobStatus:
        return self.state.status

    @property
    def file_name(self) -> str:
        return self._file_name

    @property
    def original_size(self) -> int:
        return self._original_size

    @property
    def result(self) -> TransformResult | None:
        """仅在 DONE 状态下返回结果"""
        match self.state:
            case DoneState(result=result):
                return result
            case _:
                return None

    @property
    def error(self) -> str | None:
        """仅在 ERROR 状态下返回失败原因"""
        match self.state:
            case ErrorState(reason=reason):
                return reason
            case _:
                return None

    def advance(
        self, new_state: PendingState | ProcessingState | DoneState | ErrorState
    ) -> None:
        """迁移到新状态

        Raises:
            InvalidTransitionError: 迁移不合法（如离开终态）
        """
        if new_state.status not in _TRANSITIONS[self.status]:
            from ..exceptions import InvalidTransitionError

            raise InvalidTransitionError(
                f"非法的状态迁移: {self.status.value} -> {new_state.status.value}",
                self.file_name,
            )
        self.state = new_state

    def release_source(self) -> None:
        """终态后释放源图像字节"""
        if self.status.is_terminal:
            self.source = None
