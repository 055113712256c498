"""消息格式化工具模块。

提供统一的错误消息、状态消息格式化功能。
"""

from pathlib import Path


class MessageFormatter:
    """统一的消息格式化器"""

    @staticmethod
    def file_not_found(file_path: str | Path) -> str:
        """文件不存在错误消息"""
        return f"文件不存在: {file_path}"

    @staticmethod
    def job_not_found(job_id: str) -> str:
        """任务不存在错误消息"""
        return f"任务不存在: {job_id}"

    @staticmethod
    def operation_failed(
        operation: str, target: str | Path, error: Exception | None = None
    ) -> str:
        """操作失败消息"""
        msg = f"{operation}失败: {target}"
        if error:
            msg += f" - {error}"
        return msg

    @staticmethod
    def format_error(operation: str, target: str | Path, error: Exception) -> str:
        """格式化通用错误消息"""
        return f"{operation}失败 [{target}]: {error}"

    @staticmethod
    def status_change(file_name: str, old_status: str, new_status: str) -> str:
        """任务状态变化消息"""
        return f"任务状态变化 [{file_name}]: {old_status} -> {new_status}"
