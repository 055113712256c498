"""导出模块。

把完成的输出交给平台的保存机制。外部保存机制有隐含的速率限制，
连续调用之间的间隔由队列负责控制。
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path

from ..utils.logging_helpers import get_logger
from ..utils.naming_helpers import PathResolver


logger = get_logger()


class ExportSink(ABC):
    """导出接口"""

    @abstractmethod
    async def export(self, data: bytes, file_name: str) -> None:
        """保存一个输出文件"""


class DirectoryExportSink(ExportSink):
    """保存到本地目录，文件名冲突时自动添加数字后缀"""

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir)

    async def export(self, data: bytes, file_name: str) -> None:
        loop = asyncio.get_running_loop()
        path = await loop.run_in_executor(None, self._write, data, file_name)
        logger.info(f"已导出: {path}")

    def _write(self, data: bytes, file_name: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = PathResolver.ensure_unique_path(
            self.output_dir / PathResolver.safe_file_name(file_name)
        )
        path.write_bytes(data)
        return path


class MemoryExportSink(ExportSink):
    """在内存中保留导出的文件，用于无界面场景"""

    def __init__(self) -> None:
        self.exported: list[tuple[str, bytes]] = []

    async def export(self, data: bytes, file_name: str) -> None:
        self.exported.append((file_name, data))
        logger.debug(f"已导出到内存: {file_name} ({len(data)} bytes)")

    @property
    def file_names(self) -> list[str]:
        return [name for name, _ in self.exported]
