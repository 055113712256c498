"""图像转换异常处理模块。

定义统一的异常类和错误处理机制，包含编解码异常映射装饰器。
所有异常都在单个任务边界被捕获并转换为 ERROR 状态，不会中断队列。
"""

from collections.abc import Callable
from functools import wraps
from typing import TypeVar

from PIL.Image import DecompressionBombError, UnidentifiedImageError

from .models.job import ErrorState
from .utils.logging_helpers import get_logger
from .utils.message_formatter import MessageFormatter


logger = get_logger()
T = TypeVar("T")


# 统一的异常类型
class LiteImageError(Exception):
    """图像转换相关错误基类"""

    def __init__(self, message: str, file_name: str | None = None):
        super().__init__(message)
        self.message = message
        self.file_name = file_name


class DecodeError(LiteImageError):
    """源字节无法解码（损坏、不支持的格式或无法创建绘制表面）"""

    pass


class EncodeError(LiteImageError):
    """无法生成输出（尺寸非法或编码器拒绝该格式）"""

    pass


class ConfigError(LiteImageError):
    """转换配置无效"""

    pass


class InvalidTransitionError(LiteImageError):
    """任务状态迁移不合法"""

    pass


def handle_codec_errors(
    operation_name: str, error_cls: type[LiteImageError] = DecodeError
):
    """统一的编解码异常映射装饰器

    Args:
        operation_name: 操作名称，用于日志记录
        error_cls: 映射后的异常类型
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except LiteImageError:
                raise
            except UnidentifiedImageError as e:
                logger.debug(f"{operation_name} - 无法识别图像格式: {e}")
                raise error_cls(f"无法识别的图像格式: {e}") from e
            except DecompressionBombError as e:
                logger.debug(f"{operation_name} - 图像过大: {e}")
                raise error_cls(f"图像尺寸过大，可能存在安全风险: {e}") from e
            except (OSError, SyntaxError) as e:
                # Pillow 对截断或损坏的数据会抛出 OSError / SyntaxError
                logger.debug(f"{operation_name} - 数据无效: {e}")
                raise error_cls(f"{operation_name}失败: {e}") from e
            except (ValueError, TypeError, KeyError) as e:
                logger.debug(f"{operation_name} - 参数错误: {e}")
                raise error_cls(f"{operation_name}参数错误: {e}") from e
            except MemoryError as e:
                raise error_cls(f"{operation_name}内存不足") from e

        return wrapper

    return decorator


class ErrorHandler:
    """统一错误处理器

    提供标准化的错误处理和日志记录功能。
    """

    @staticmethod
    def _log_error(
        operation: str, file_name: str, error: Exception, level: str = "error"
    ) -> None:
        """标准化的错误日志记录

        Args:
            operation: 操作名称（如"图像转换"、"导出"等）
            file_name: 相关文件名
            error: 异常对象
            level: 日志级别 ("error", "warning", "debug")
        """
        log_msg = MessageFormatter.format_error(operation, file_name, error)
        getattr(logger, level, logger.error)(log_msg)

    @staticmethod
    def handle_with_context(
        error: Exception,
        file_name: str,
        operation: str = "未知操作",
        log_level: str = "error",
    ) -> ErrorState:
        """记录错误并构建 ERROR 状态

        Args:
            error: 异常对象
            file_name: 源文件名
            operation: 操作名称
            log_level: 日志级别 ("error", "warning", "debug")

        Returns:
            ErrorState: 带可读失败原因的错误状态
        """
        ErrorHandler._log_error(operation, file_name, error, log_level)
        message = error.message if isinstance(error, LiteImageError) else str(error)
        return ErrorState(reason=f"{operation}: {message or type(error).__name__}")

    @staticmethod
    def handle_job_error(
        error: Exception, file_name: str, operation: str = "图像转换"
    ) -> ErrorState:
        """任务边界的统一错误处理，按异常类型分发日志级别"""
        match error:
            case DecodeError() as de:
                return ErrorHandler.handle_with_context(
                    de, file_name, f"{operation} - 解码", log_level="warning"
                )
            case EncodeError() as ee:
                return ErrorHandler.handle_with_context(
                    ee, file_name, f"{operation} - 编码", log_level="error"
                )
            case ConfigError() as ce:
                return ErrorHandler.handle_with_context(
                    ce, file_name, f"{operation} - 配置", log_level="warning"
                )
            case _:
                return ErrorHandler.handle_with_context(
                    error, file_name, operation, log_level="error"
                )
