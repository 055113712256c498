"""配置构建器模块。

把设置面板中的原始值（百分比、1-100 的质量、可能为空字符串的宽高）
转换为经过验证的 TransformConfig，集成参数验证功能。
"""

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..config import get_config
from ..exceptions import ConfigError
from ..models.constants import OutputFormat
from ..models.transform_config import (
    DimensionsResize,
    NoResize,
    PercentageResize,
    TransformConfig,
)


logger = logging.getLogger(__name__)

RESIZE_MODES = ("none", "percentage", "dimensions")


class ConfigBuilder:
    """转换配置构建器

    提供统一的配置构建接口和参数验证。
    """

    def build(
        self,
        resize_mode: str = "none",
        percentage: float | None = None,
        width: int | str | None = None,
        height: int | str | None = None,
        maintain_aspect_ratio: bool = True,
        output_format: str | OutputFormat | None = OutputFormat.WEBP,
        quality: float | None = None,
    ) -> TransformConfig:
        """构建转换配置

        Args:
            resize_mode: 尺寸模式 none / percentage / dimensions
            percentage: 缩放百分比 1-100
            width: 目标宽度，空字符串、0 或 None 表示自动
            height: 目标高度，空字符串、0 或 None 表示自动
            maintain_aspect_ratio: 是否保持宽高比
            output_format: 输出格式（名称、扩展名或 MIME 类型），None 保持源格式
            quality: 质量 1-100

        Returns:
            TransformConfig: 构建的配置对象

        Raises:
            ConfigError: 参数验证失败
        """
        defaults = get_config().transform

        try:
            resize_rule = self._build_resize_rule(
                resize_mode,
                percentage if percentage is not None else defaults.RESIZE_PERCENTAGE,
                width,
                height,
                maintain_aspect_ratio,
            )
            return TransformConfig(
                resize_rule=resize_rule,
                output_format=(
                    OutputFormat.parse(output_format)
                    if output_format is not None
                    else None
                ),
                quality=(
                    quality / 100 if quality is not None else defaults.QUALITY
                ),
            )

        except PydanticValidationError as e:
            message = self._format_validation_error(e)
            logger.debug(f"配置验证失败: {message}")
            raise ConfigError(message) from e
        except ConfigError:
            raise
        except (ValueError, TypeError) as e:
            raise ConfigError(f"配置构建失败: {e!s}") from e

    def from_defaults(self, **overrides: Any) -> TransformConfig:
        """使用设置面板的默认值构建配置"""
        defaults = get_config().transform
        params: dict[str, Any] = {
            "resize_mode": defaults.RESIZE_MODE,
            "percentage": defaults.RESIZE_PERCENTAGE,
            "output_format": defaults.OUTPUT_FORMAT,
            "quality": defaults.QUALITY * 100,
        }
        params.update(overrides)
        return self.build(**params)

    def _build_resize_rule(
        self,
        resize_mode: str,
        percentage: float,
        width: int | str | None,
        height: int | str | None,
        maintain_aspect_ratio: bool,
    ) -> NoResize | PercentageResize | DimensionsResize:
        """根据模式构建尺寸规则"""
        match resize_mode.lower():
            case "none":
                return NoResize()
            case "percentage":
                return PercentageResize(scale=percentage / 100)
            case "dimensions":
                return DimensionsResize(
                    target_width=self._parse_dimension("width", width),
                    target_height=self._parse_dimension("height", height),
                    preserve_aspect=maintain_aspect_ratio,
                )
            case _:
                modes = ", ".join(RESIZE_MODES)
                raise ConfigError(f"不支持的尺寸模式: {resize_mode}，可用模式: {modes}")

    @staticmethod
    def _parse_dimension(field: str, value: int | str | None) -> int | None:
        """解析宽高输入，空值和 0 表示自动"""
        if value is None:
            return None
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
            try:
                value = int(value)
            except ValueError:
                raise ConfigError(f"{field} 必须是整数，当前值: {value!r}") from None
        return int(value) or None

    def _format_validation_error(self, error: PydanticValidationError) -> str:
        """格式化验证错误"""
        messages = []
        for err in error.errors():
            field = ".".join(str(loc) for loc in err["loc"])
            msg = err["msg"]
            if field:
                messages.append(f"{field}: {msg}")
            else:
                messages.append(msg)
        return "; ".join(messages)


# 全局配置构建器实例
_default_builder = ConfigBuilder()


def build_config(**kwargs: Any) -> TransformConfig:
    """便捷的配置构建函数

    使用全局配置构建器实例构建配置。

    Args:
        **kwargs: 配置参数

    Returns:
        TransformConfig: 构建的配置对象
    """
    return _default_builder.build(**kwargs)
