"""本地批量图像转换库。

按到达顺序逐个缩放并重新编码图像（WEBP / JPEG / PNG），基于 Pillow 11。
"""

__version__ = "0.1.0"
__description__ = "本地批量图像缩放与格式转换，基于 Pillow 11"

# 核心功能导出
from .engine.config import ConfigBuilder, build_config
from .engine.export import DirectoryExportSink, MemoryExportSink
from .engine.queue import JobQueue, QueueSettings
from .models.constants import OutputFormat
from .models.job_record import JobRecord, QueueSummary
from .models.transform_config import TransformConfig


__all__ = [
    "ConfigBuilder",
    "DirectoryExportSink",
    "JobQueue",
    "JobRecord",
    "MemoryExportSink",
    "OutputFormat",
    "QueueSettings",
    "QueueSummary",
    "TransformConfig",
    "build_config",
    "get_version",
]


def get_version() -> str:
    """获取版本号。"""
    return __version__
