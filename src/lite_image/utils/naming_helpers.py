"""文件命名工具模块。

提供统一的输出文件命名策略和导出路径生成功能。
"""

import itertools
from pathlib import Path

from ..models.constants import OutputFormat


class FileNamingStrategy:
    """文件命名策略类"""

    @staticmethod
    def split_extension(file_name: str) -> tuple[str, str]:
        """拆分文件名和扩展名

        以点开头且没有其它点的文件（如 ".hidden"）视为没有扩展名。

        Returns:
            tuple: (主文件名, 扩展名含点；无扩展名时为空字符串)
        """
        index = file_name.rfind(".")
        if index <= 0:
            return file_name, ""
        return file_name[:index], file_name[index:]

    @staticmethod
    def generate_output_name(source_name: str, target_format: OutputFormat) -> str:
        """生成输出文件名

        Args:
            source_name: 源文件名
            target_format: 目标格式

        Returns:
            str: 替换为规范扩展名后的文件名
        """
        stem, _ = FileNamingStrategy.split_extension(source_name)
        return f"{stem}{target_format.extension}"


class PathResolver:
    """路径解析器"""

    @staticmethod
    def safe_file_name(file_name: str) -> str:
        """去掉目录部分，避免导出时写出目标目录之外"""
        name = Path(file_name.replace("\\", "/")).name
        return name or "image"

    @staticmethod
    def ensure_unique_path(path: Path) -> Path:
        """确保路径唯一，如果文件已存在则添加数字后缀

        Args:
            path: 原始路径

        Returns:
            Path: 唯一的路径
        """
        if not path.exists():
            return path

        base = path.stem
        suffix = path.suffix
        parent = path.parent

        for counter in itertools.count(1):
            new_path = parent / f"{base}_{counter}{suffix}"
            if not new_path.exists():
                return new_path

        return path  # pragma: no cover
