"""图像转换处理引擎模块。

包含任务队列、导出目标和配置构建等处理逻辑。
"""

from .config import ConfigBuilder, build_config
from .export import DirectoryExportSink, ExportSink, MemoryExportSink
from .queue import JobQueue, QueueSettings


__all__ = [
    "ConfigBuilder",
    "DirectoryExportSink",
    "ExportSink",
    "JobQueue",
    "MemoryExportSink",
    "QueueSettings",
    "build_config",
]
