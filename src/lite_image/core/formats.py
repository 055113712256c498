"""格式策略模块。

把请求的输出格式和质量映射为有效的编码参数，处理无损格式忽略质量等规则，
并为 Pillow 准备对应的保存参数和色彩模式。
"""

import math
from typing import Any

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field

from ..config import get_config
from ..models.constants import (
    OutputFormat,
    format_from_media_type,
    is_vector_media_type,
)
from ..utils.logging_helpers import get_logger
from ..utils.naming_helpers import FileNamingStrategy


logger = get_logger()


class EncodeParams(BaseModel):
    """有效的编码参数"""

    model_config = ConfigDict(frozen=True)

    format: OutputFormat = Field(description="输出格式")
    quality: float | None = Field(
        None, ge=0, le=1, description="质量，无损格式为 None"
    )


def resolve_encode_params(format: OutputFormat, quality: float | None) -> EncodeParams:
    """根据格式和质量计算编码参数

    - PNG：无损，完全丢弃质量参数
    - JPEG / WEBP：质量原样传递，并钳制到 [0, 1]
    """
    if format.is_lossless:
        return EncodeParams(format=format, quality=None)

    return EncodeParams(format=format, quality=clamp_quality(quality))


def clamp_quality(quality: float | None) -> float:
    """把质量钳制到 [0, 1]，缺失或非有限值时使用默认质量"""
    if quality is None or not math.isfinite(quality):
        default_quality = get_config().transform.QUALITY
        logger.warning(f"质量参数无效: {quality}，使用默认值 {default_quality}")
        quality = default_quality

    clamped = max(0.0, min(1.0, float(quality)))
    if clamped != quality:
        logger.debug(f"质量参数 {quality} 超出范围，钳制为 {clamped}")
    return clamped


def resolve_target_format(
    declared_media_type: str | None, requested: OutputFormat | None
) -> OutputFormat:
    """确定实际的输出格式

    明确指定的格式优先；否则沿用源图自身的格式。矢量格式（如 SVG）
    或其它无法直接编码的类型改用 PNG 作为光栅化目标，而不是失败。
    """
    if requested is not None:
        return requested

    if is_vector_media_type(declared_media_type):
        logger.debug(f"矢量源格式 {declared_media_type}，使用 PNG 作为光栅化目标")
        return OutputFormat.PNG

    return format_from_media_type(declared_media_type) or OutputFormat.PNG


def output_file_name(source_name: str, format: OutputFormat) -> str:
    """用目标格式的规范扩展名替换源文件扩展名，无扩展名时直接追加"""
    return FileNamingStrategy.generate_output_name(source_name, format)


def get_save_parameters(params: EncodeParams) -> dict[str, Any]:
    """获取 Pillow 保存参数

    Returns:
        dict: 含 format 的保存参数字典
    """
    defaults = get_config().transform
    save_params: dict[str, Any] = {"format": params.format.value}
    save_params.update(defaults.get_format_defaults(params.format.value))

    match params.format:
        case OutputFormat.JPEG:
            save_params["quality"] = get_jpeg_quality(params.quality)
        case OutputFormat.WEBP:
            save_params["quality"] = get_webp_quality(params.quality)
        case OutputFormat.PNG:
            # 无损，不传递质量
            pass

    return save_params


def get_jpeg_quality(quality: float | None) -> int:
    """JPEG 质量映射到 Pillow 的 1-100"""
    if quality is None:
        return 100
    return max(1, min(100, math.floor(quality * 100 + 0.5)))


def get_webp_quality(quality: float | None) -> int:
    """WebP 质量映射到 Pillow 的 0-100"""
    if quality is None:
        return 100
    return max(0, min(100, math.floor(quality * 100 + 0.5)))


class FormatProcessor:
    """为目标格式准备色彩模式"""

    # 合成透明像素时使用的背景色
    BACKGROUND_COLOR: tuple[int, int, int] = (255, 255, 255)

    def prepare_for_format(
        self, img: Image.Image, target_format: OutputFormat
    ) -> Image.Image:
        """为目标格式准备图片

        Args:
            img: PIL图片对象
            target_format: 目标格式

        Returns:
            Image.Image: 处理后的图片对象
        """
        match target_format:
            case OutputFormat.JPEG:
                return self._prepare_for_jpeg(img)
            case OutputFormat.PNG:
                return self._prepare_for_png(img)
            case OutputFormat.WEBP:
                return self._prepare_for_webp(img)
            case _:
                return img

    def _prepare_for_jpeg(self, img: Image.Image) -> Image.Image:
        """JPEG 不支持透明度，透明像素合成到白色背景上"""
        if img.mode == "P":
            if "transparency" not in img.info:
                return img.convert("RGB")
            img = img.convert("RGBA")

        if img.mode in ("RGBA", "LA", "PA"):
            img = img.convert("RGBA")
            background = Image.new("RGB", img.size, self.BACKGROUND_COLOR)
            background.paste(img, mask=img.split()[-1])
            return background

        if img.mode != "RGB":
            # CMYK、灰度、二值等模式统一转换为RGB
            return img.convert("RGB")

        return img

    def _prepare_for_png(self, img: Image.Image) -> Image.Image:
        """PNG 支持多数模式，只处理调色板透明度和 CMYK"""
        if img.mode == "P":
            if "transparency" in img.info:
                return img.convert("RGBA")
            return img.convert("RGB")

        if img.mode in ("CMYK", "YCbCr", "LAB", "HSV", "F"):
            return img.convert("RGB")

        return img

    def _prepare_for_webp(self, img: Image.Image) -> Image.Image:
        """WebP 仅支持 RGB 和 RGBA"""
        if img.mode in ("RGB", "RGBA"):
            return img

        has_alpha = img.mode in ("LA", "PA", "RGBa", "La") or (
            img.mode == "P" and "transparency" in img.info
        )
        return img.convert("RGBA" if has_alpha else "RGB")
