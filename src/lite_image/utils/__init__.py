"""工具模块包。

提供纯工具函数，不包含业务逻辑。
"""

# 从文件助手模块导入
from .file_helpers import (
    find_image_files,
    get_image_mime_type,
    guess_media_type,
    load_source_image,
)

# 从日志工具模块导入
from .logging_helpers import configure_logging, get_logger

# 从消息格式化模块导入
from .message_formatter import MessageFormatter

# 从命名助手模块导入
from .naming_helpers import FileNamingStrategy, PathResolver


__all__ = [
    "FileNamingStrategy",
    "MessageFormatter",
    "PathResolver",
    "configure_logging",
    "find_image_files",
    "get_image_mime_type",
    "get_logger",
    "guess_media_type",
    "load_source_image",
]
