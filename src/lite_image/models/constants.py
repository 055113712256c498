"""图像格式相关常量定义。

输出格式枚举、MIME 类型和扩展名映射集中在这里，避免在各模块中硬编码。
"""

from enum import Enum
from typing import Final


class OutputFormat(str, Enum):
    """支持的输出格式"""

    WEBP = "WEBP"
    JPEG = "JPEG"
    PNG = "PNG"

    @property
    def mime_type(self) -> str:
        return ImageFormats.MIME_TYPES[self.value]

    @property
    def extension(self) -> str:
        return ImageFormats.PREFERRED_EXTENSIONS[self.value]

    @property
    def is_lossless(self) -> bool:
        return self.value in ImageFormats.LOSSLESS_FORMATS

    @classmethod
    def parse(cls, value: "str | OutputFormat") -> "OutputFormat":
        """解析格式名、扩展名或 MIME 类型（如 "webp"、".jpg"、"image/png"）"""
        if isinstance(value, OutputFormat):
            return value

        text = value.strip()
        if "/" in text:
            format_name = format_from_media_type(text)
            if format_name is None:
                raise ValueError(f"不支持的输出格式: {value}")
            return format_name

        try:
            return cls(get_format_alias(text.lstrip(".")))
        except ValueError:
            supported = ", ".join(f.value for f in cls)
            raise ValueError(f"不支持的输出格式: {value}，支持的格式: {supported}") from None


class ImageFormats:
    """格式映射表"""

    # 用户友好的别名
    ALIASES: Final[dict[str, str]] = {
        "JPG": "JPEG",
    }

    MIME_TYPES: Final[dict[str, str]] = {
        "WEBP": "image/webp",
        "JPEG": "image/jpeg",
        "PNG": "image/png",
    }

    # 输出文件的规范扩展名
    PREFERRED_EXTENSIONS: Final[dict[str, str]] = {
        "WEBP": ".webp",
        "JPEG": ".jpg",
        "PNG": ".png",
    }

    # 解码前需要先光栅化的矢量格式
    VECTOR_MEDIA_TYPES: Final[set[str]] = {"image/svg+xml", "image/svg"}

    # 浏览器及部分工具使用的非标准 MIME 写法
    MEDIA_TYPE_ALIASES: Final[dict[str, str]] = {
        "image/jpg": "image/jpeg",
        "image/pjpeg": "image/jpeg",
        "image/x-png": "image/png",
    }

    LOSSLESS_FORMATS: Final[set[str]] = {"PNG"}

    # 输入端接受的 MIME 类型（与拖放区域的 accept 属性一致）
    ACCEPTED_MEDIA_TYPES: Final[set[str]] = {"image/png", "image/jpeg", "image/webp"}


def normalize_media_type(media_type: str | None) -> str:
    """标准化 MIME 类型：小写、去掉参数部分、合并别名"""
    if not media_type:
        return ""
    base = media_type.split(";", 1)[0].strip().lower()
    return ImageFormats.MEDIA_TYPE_ALIASES.get(base, base)


def format_from_media_type(media_type: str | None) -> OutputFormat | None:
    """根据 MIME 类型获取对应的输出格式，非 WEBP/JPEG/PNG 返回 None"""
    normalized = normalize_media_type(media_type)
    for format_name, mime in ImageFormats.MIME_TYPES.items():
        if mime == normalized:
            return OutputFormat(format_name)
    return None


def is_vector_media_type(media_type: str | None) -> bool:
    """检查是否为矢量格式"""
    return normalize_media_type(media_type) in ImageFormats.VECTOR_MEDIA_TYPES


def get_format_alias(format_str: str) -> str:
    """获取格式的标准名称"""
    format_upper = format_str.upper()
    return ImageFormats.ALIASES.get(format_upper, format_upper)
