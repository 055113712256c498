"""核心模块包。

单个图像的转换流水线：尺寸计算、格式策略、编解码适配和任务执行。
"""

from .codec import CodecAdapter, PillowCodec, PixelSurface
from .formats import (
    EncodeParams,
    FormatProcessor,
    clamp_quality,
    output_file_name,
    resolve_encode_params,
    resolve_target_format,
)
from .geometry import resolve_dimensions, round_half_up
from .transform import execute_job, transform_image


__all__ = [
    "CodecAdapter",
    "EncodeParams",
    "FormatProcessor",
    "PillowCodec",
    "PixelSurface",
    "clamp_quality",
    "execute_job",
    "output_file_name",
    "resolve_dimensions",
    "resolve_encode_params",
    "resolve_target_format",
    "round_half_up",
    "transform_image",
]
