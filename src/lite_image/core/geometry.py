"""尺寸计算模块。

根据源图尺寸和尺寸规则计算输出尺寸。纯函数，不涉及 I/O。
"""

import math

from ..exceptions import ConfigError
from ..models.transform_config import (
    DimensionsResize,
    NoResize,
    PercentageResize,
    ResizeRule,
)


def round_half_up(value: float) -> int:
    """四舍五入（.5 向上取整），与画布尺寸的取整方式一致"""
    return math.floor(value + 0.5)


def _finalize(width: float, height: float) -> tuple[int, int]:
    """取整并保证最小为 1 像素"""
    return max(1, round_half_up(width)), max(1, round_half_up(height))


def resolve_dimensions(
    source_width: int, source_height: int, rule: ResizeRule | None
) -> tuple[int, int]:
    """计算输出尺寸

    Args:
        source_width: 源图宽度
        source_height: 源图高度
        rule: 尺寸规则，None 等同于 NoResize

    Returns:
        tuple[int, int]: (输出宽度, 输出高度)，均不小于 1

    Raises:
        ConfigError: 源图尺寸非正数
    """
    if source_width <= 0 or source_height <= 0:
        raise ConfigError(f"源图尺寸无效: {source_width}×{source_height}")

    match rule:
        case None | NoResize():
            return source_width, source_height

        case PercentageResize(scale=scale):
            return _finalize(source_width * scale, source_height * scale)

        case DimensionsResize(preserve_aspect=False) as dims:
            # 各轴独立：有目标值取目标值，否则保持源值
            return _finalize(
                dims.target_width or source_width,
                dims.target_height or source_height,
            )

        case DimensionsResize() as dims:
            return _resolve_preserving_aspect(
                source_width, source_height, dims.target_width, dims.target_height
            )

    raise ConfigError(f"未知的尺寸规则: {rule!r}")


def _resolve_preserving_aspect(
    source_width: int,
    source_height: int,
    target_width: int | None,
    target_height: int | None,
) -> tuple[int, int]:
    """保持宽高比的尺寸计算"""
    ratio = source_width / source_height

    if target_width and not target_height:
        return _finalize(target_width, target_width / ratio)

    if target_height and not target_width:
        return _finalize(target_height * ratio, target_height)

    if target_width and target_height:
        # 适应目标框：取较小的缩放系数，不变形
        factor = min(target_width / source_width, target_height / source_height)
        return _finalize(source_width * factor, source_height * factor)

    # 未指定任何目标值，保持原尺寸
    return source_width, source_height
