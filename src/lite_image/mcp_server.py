"""本地图像转换 MCP 服务器。

核心库只接受字节；这里负责把本地路径读成 SourceImage 交给队列，
并把队列的读模型转换成 MCP 响应。
"""

from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from .config import get_config
from .engine.config import ConfigBuilder
from .engine.export import DirectoryExportSink
from .engine.queue import JobQueue
from .exceptions import ConfigError
from .models.job import SourceImage
from .models.job_record import JobRecord, QueueStatusResponse
from .utils.file_helpers import find_image_files, load_source_image
from .utils.logging_helpers import configure_logging, get_logger
from .utils.message_formatter import MessageFormatter


# MCP 服务器响应类型定义
MCPEnqueueResponse = dict[str, Any]
MCPExportResponse = dict[str, Any]


class MCPResponseBuilder:
    """MCP 服务器响应构建器，专门用于构建符合 MCP 协议的响应格式。"""

    @staticmethod
    def error(
        message: str,
        error_type: str = "general",
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """构建错误结果。

        Args:
            message: 错误消息
            error_type: 错误类型
            details: 额外的错误详情

        Returns:
            dict: 标准化的错误响应
        """
        result = {
            "success": False,
            "error": message,
            "error_type": error_type,
        }

        if details:
            result["details"] = details

        return result

    @staticmethod
    def validation_error(message: str, field: str | None = None) -> dict[str, Any]:
        """构建验证错误结果。"""
        details = {"field": field} if field else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="validation",
            details=details,
        )

    @staticmethod
    def file_error(message: str, file_path: str | None = None) -> dict[str, Any]:
        """构建文件相关错误结果。"""
        details = {"file_path": file_path} if file_path else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="file",
            details=details,
        )

    @staticmethod
    def record(record: JobRecord) -> dict[str, Any]:
        """把任务记录转换为响应字典"""
        result = record.model_dump(mode="json", exclude_none=True)
        result["summary"] = record.get_summary()
        return result


logger = get_logger()

# 创建MCP应用
mcp: FastMCP[Any] = FastMCP("本地图像转换服务")

# 全局队列实例，完成的任务自动导出到配置的目录
queue = JobQueue(export_sink=DirectoryExportSink(get_config().queue.EXPORT_DIR))

config_builder = ConfigBuilder()


def _collect_sources(paths: list[str], recursive: bool) -> list[SourceImage]:
    """把文件和目录路径展开为 SourceImage 列表，保持输入顺序"""
    sources: list[SourceImage] = []
    for raw_path in paths:
        path = Path(raw_path)
        if path.is_dir():
            sources.extend(
                load_source_image(file_path)
                for file_path in find_image_files(path, recursive=recursive)
            )
        else:
            sources.append(load_source_image(path))
    return sources


@mcp.tool()
async def enqueue_images(
    paths: list[str] | str,
    resize_mode: str = "none",
    percentage: int | None = None,
    width: int | None = None,
    height: int | None = None,
    maintain_aspect_ratio: bool = True,
    output_format: str | None = "WEBP",
    quality: int | None = None,
    recursive: bool = False,
    wait: bool = False,
) -> MCPEnqueueResponse:
    """把图像加入转换队列

    队列按到达顺序逐个处理，完成的文件自动保存到导出目录。

    Args:
        paths: 图像文件或目录路径
        resize_mode: 尺寸模式 none / percentage / dimensions
        percentage: 缩放百分比 1-100（percentage 模式）
        width: 目标宽度（dimensions 模式）
        height: 目标高度（dimensions 模式）
        maintain_aspect_ratio: 是否保持宽高比
        output_format: 输出格式 WEBP / JPEG / PNG，None 保持源格式
        quality: 质量 1-100，PNG 忽略
        recursive: 目录是否递归子目录
        wait: 是否等待队列处理完成后再返回

    Returns:
        dict: 新任务的标识和当前队列状态
    """
    path_list = [paths] if isinstance(paths, str) else list(paths)

    try:
        transform_config = config_builder.build(
            resize_mode=resize_mode,
            percentage=percentage,
            width=width,
            height=height,
            maintain_aspect_ratio=maintain_aspect_ratio,
            output_format=output_format,
            quality=quality,
        )
    except ConfigError as e:
        return MCPResponseBuilder.validation_error(e.message)

    try:
        sources = _collect_sources(path_list, recursive)
    except FileNotFoundError as e:
        return MCPResponseBuilder.file_error(str(e))
    except OSError as e:
        target = ", ".join(path_list)
        logger.error(MessageFormatter.operation_failed("读取文件", target, e))
        return MCPResponseBuilder.file_error(str(e))

    if not sources:
        return MCPResponseBuilder.file_error("没有找到可处理的图像文件")

    job_ids = queue.enqueue(sources, transform_config)
    if wait:
        await queue.wait_idle()

    return {
        "success": True,
        "job_ids": job_ids,
        "queue": _queue_status(),
    }


def _queue_status() -> QueueStatusResponse:
    summary = queue.summary()
    return {
        "success": True,
        "summary": summary.get_summary(),
        "jobs": [MCPResponseBuilder.record(r) for r in summary.records],
    }


@mcp.tool()
def get_queue_status() -> QueueStatusResponse:
    """获取队列中所有任务的状态

    Returns:
        dict: 队列摘要和每个任务的记录（按到达顺序）
    """
    return _queue_status()


@mcp.tool()
async def download_all(output_dir: str | None = None) -> MCPExportResponse:
    """按到达顺序重新导出所有已完成的文件

    Args:
        output_dir: 导出目录，默认使用配置的导出目录

    Returns:
        dict: 导出数量
    """
    sink = DirectoryExportSink(output_dir) if output_dir else None
    exported = await queue.download_all(sink)
    target = output_dir or get_config().queue.EXPORT_DIR
    return {
        "success": True,
        "exported": exported,
        "output_dir": str(Path(target).resolve()),
    }


@mcp.tool()
def clear_queue() -> dict[str, Any]:
    """清空队列

    正在处理的任务会在后台结束，但结果会被丢弃。
    """
    removed = queue.clear()
    return {"success": True, "removed": removed}


# ============================================================================
# 应用入口
# ============================================================================


def main() -> None:
    """启动 MCP 服务器"""
    configure_logging()
    logger.info("启动图像转换 MCP 服务器")
    mcp.run()


if __name__ == "__main__":
    main()
