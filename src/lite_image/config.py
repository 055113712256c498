"""统一配置管理模块。

提供应用程序的全局配置管理，包括默认值、环境变量支持等。
"""

import os
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class TransformDefaults:
    """转换相关的默认配置"""

    # 对应设置面板中的默认值
    QUALITY: float = 0.70
    OUTPUT_FORMAT: str = "WEBP"
    RESIZE_MODE: str = "none"
    RESIZE_PERCENTAGE: int = 50

    # 编码器参数
    WEBP_METHOD: int = 4  # 0=最快, 6=最慢但压缩最好
    PNG_COMPRESS_LEVEL: int = 9
    JPEG_OPTIMIZE: bool = True

    def get_format_defaults(self, format_name: str) -> dict[str, Any]:
        """获取格式特定的编码默认参数"""
        defaults = {
            "JPEG": {
                "optimize": self.JPEG_OPTIMIZE,
                "progressive": False,
            },
            "WEBP": {
                "method": self.WEBP_METHOD,
            },
            "PNG": {
                "optimize": True,
                "compress_level": self.PNG_COMPRESS_LEVEL,
            },
        }
        return dict(defaults.get(format_name, {}))


@dataclass(frozen=True)
class QueueDefaults:
    """队列调度相关的默认配置"""

    # 每个任务开始前的节奏延迟（秒），用于保持界面响应
    PACING_DELAY: float = 0.3
    # 导出后的冷却时间（秒），外部保存机制会静默丢弃过快的连续保存
    EXPORT_COOLDOWN: float = 1.0

    AUTO_EXPORT: bool = True
    EXPORT_DIR: str = "lite_image_output"


@dataclass(frozen=True)
class LoggingDefaults:
    """日志相关的默认配置"""

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # 文件日志
    ENABLE_FILE_LOGGING: bool = False
    LOG_FILE_PATH: str = "lite_image.log"
    LOG_FILE_MAX_SIZE: int = 10 * 1024 * 1024  # 10MB
    LOG_FILE_BACKUP_COUNT: int = 5


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


class AppConfig:
    """应用程序配置管理器

    支持环境变量覆盖默认配置
    """

    def __init__(self):
        self.transform = TransformDefaults()
        self.queue = QueueDefaults()
        self.logging = LoggingDefaults()

        # 从环境变量加载配置
        self._load_from_env()

    def _load_from_env(self):
        """从环境变量加载配置"""
        # 转换配置
        if quality := os.getenv("LITE_IMAGE_QUALITY"):
            object.__setattr__(self.transform, "QUALITY", float(quality))

        if output_format := os.getenv("LITE_IMAGE_OUTPUT_FORMAT"):
            object.__setattr__(self.transform, "OUTPUT_FORMAT", output_format.upper())

        if webp_method := os.getenv("LITE_IMAGE_WEBP_METHOD"):
            object.__setattr__(self.transform, "WEBP_METHOD", int(webp_method))

        # 队列配置
        if pacing_delay := os.getenv("LITE_IMAGE_PACING_DELAY"):
            object.__setattr__(self.queue, "PACING_DELAY", float(pacing_delay))

        if export_cooldown := os.getenv("LITE_IMAGE_EXPORT_COOLDOWN"):
            object.__setattr__(self.queue, "EXPORT_COOLDOWN", float(export_cooldown))

        if auto_export := os.getenv("LITE_IMAGE_AUTO_EXPORT"):
            object.__setattr__(self.queue, "AUTO_EXPORT", _parse_bool(auto_export))

        if export_dir := os.getenv("LITE_IMAGE_EXPORT_DIR"):
            object.__setattr__(self.queue, "EXPORT_DIR", export_dir)

        # 日志配置
        if log_level := os.getenv("LITE_IMAGE_LOG_LEVEL"):
            object.__setattr__(self.logging, "LOG_LEVEL", log_level.upper())

        if enable_file_log := os.getenv("LITE_IMAGE_ENABLE_FILE_LOGGING"):
            object.__setattr__(
                self.logging, "ENABLE_FILE_LOGGING", _parse_bool(enable_file_log)
            )


# 全局配置实例
config = AppConfig()


def get_config() -> AppConfig:
    """获取全局配置实例"""
    return config


def reset_config():
    """重置配置（主要用于测试）"""
    global config
    config = AppConfig()
