"""工具函数模块。

提供读取本地图像文件的实用工具函数，供 MCP 外壳把路径转换为队列输入。
"""

import mimetypes
from collections.abc import Iterator
from pathlib import Path

from PIL import Image

from ..models.constants import ImageFormats, normalize_media_type
from ..models.job import SourceImage
from .logging_helpers import get_logger
from .message_formatter import MessageFormatter


logger = get_logger()


def find_image_files(
    directory: str | Path,
    recursive: bool = True,
    exclude_dirs: list[str] | None = None,
) -> Iterator[Path]:
    """查找目录中可以入队的图像文件。

    只返回 MIME 类型属于 ImageFormats.ACCEPTED_MEDIA_TYPES 的文件，
    按路径排序以保证入队顺序稳定。

    Args:
        directory: 搜索目录
        recursive: 是否递归搜索子目录
        exclude_dirs: 要排除的目录名列表

    Yields:
        Path: 图像文件路径
    """
    directory = Path(directory)
    exclude_dirs = exclude_dirs or []

    if not directory.is_dir():
        logger.warning(MessageFormatter.file_not_found(directory))
        return

    pattern = "**/*" if recursive else "*"

    try:
        for file_path in sorted(directory.glob(pattern)):
            if (
                file_path.is_file()
                and guess_media_type(file_path) in ImageFormats.ACCEPTED_MEDIA_TYPES
                and not any(
                    exclude_dir in file_path.parts for exclude_dir in exclude_dirs
                )
            ):
                yield file_path
    except PermissionError as e:
        logger.error(MessageFormatter.operation_failed("访问目录", directory, e))


def guess_media_type(file_path: str | Path) -> str:
    """根据扩展名推断 MIME 类型，失败时返回空字符串

    优先使用 Pillow 注册的扩展名，其它类型（如 SVG）交给 mimetypes。
    """
    suffix = Path(file_path).suffix.lower()
    format_name = Image.registered_extensions().get(suffix)
    if format_name and (media_type := Image.MIME.get(format_name)):
        return normalize_media_type(media_type)

    media_type, _ = mimetypes.guess_type(str(file_path))
    return normalize_media_type(media_type)


def get_image_mime_type(file_path: str | Path) -> str | None:
    """读取文件头获取图片的 MIME 类型

    Args:
        file_path: 图片文件路径

    Returns:
        str | None: MIME 类型，如 'image/jpeg'，无法识别时返回 None
    """
    try:
        with Image.open(file_path) as img:
            if img.format:
                return Image.MIME.get(img.format) or f"image/{img.format.lower()}"
            return None
    except Exception as e:
        logger.debug(MessageFormatter.operation_failed("获取 MIME 类型", file_path, e))
        return None


def load_source_image(file_path: str | Path) -> SourceImage:
    """读取文件内容构建 SourceImage

    声明的 MIME 类型优先取自扩展名（与浏览器的 File.type 一致），
    扩展名无法识别时再读取文件头。

    Raises:
        FileNotFoundError: 文件不存在
    """
    path = Path(file_path)
    if not path.is_file():
        raise FileNotFoundError(MessageFormatter.file_not_found(path))

    media_type = guess_media_type(path) or get_image_mime_type(path) or ""
    return SourceImage(data=path.read_bytes(), media_type=media_type, file_name=path.name)
