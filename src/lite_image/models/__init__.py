"""数据模型包。

定义转换配置、任务状态和队列读模型。
"""

from .constants import (
    ImageFormats,
    OutputFormat,
    format_from_media_type,
    get_format_alias,
    is_vector_media_type,
    normalize_media_type,
)
from .job import (
    DoneState,
    ErrorState,
    Job,
    JobState,
    JobStatus,
    PendingState,
    ProcessingState,
    SourceImage,
    TransformResult,
    compute_savings_ratio,
)
from .job_record import JobRecord, QueueStatusResponse, QueueSummary
from .transform_config import (
    DimensionsResize,
    NoResize,
    PercentageResize,
    ResizeRule,
    TransformConfig,
)


__all__ = [
    "DimensionsResize",
    "DoneState",
    "ErrorState",
    # 常量和工具
    "ImageFormats",
    # 任务模型
    "Job",
    # 读模型
    "JobRecord",
    "JobState",
    "JobStatus",
    # 配置模型
    "NoResize",
    "OutputFormat",
    "PendingState",
    "PercentageResize",
    "ProcessingState",
    "QueueStatusResponse",
    "QueueSummary",
    "ResizeRule",
    "SourceImage",
    "TransformConfig",
    "TransformResult",
    "compute_savings_ratio",
    "format_from_media_type",
    "get_format_alias",
    "is_vector_media_type",
    "normalize_media_type",
]
