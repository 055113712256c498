"""转换配置模型。

定义尺寸调整规则、输出格式和质量参数。配置在入队时按值快照，
之后界面上对"当前配置"的修改不会影响已入队的任务。
"""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from .constants import OutputFormat


class NoResize(BaseModel):
    """保持原始尺寸"""

    model_config = ConfigDict(frozen=True)

    mode: Literal["none"] = "none"


class PercentageResize(BaseModel):
    """按比例缩放"""

    model_config = ConfigDict(frozen=True)

    mode: Literal["percentage"] = "percentage"
    scale: float = Field(gt=0, le=1, description="缩放比例 (0, 1]")


class DimensionsResize(BaseModel):
    """按目标宽高调整"""

    model_config = ConfigDict(frozen=True)

    mode: Literal["dimensions"] = "dimensions"
    target_width: int | None = Field(None, gt=0, description="目标宽度")
    target_height: int | None = Field(None, gt=0, description="目标高度")
    preserve_aspect: bool = Field(True, description="保持宽高比")


ResizeRule = Annotated[
    NoResize | PercentageResize | DimensionsResize,
    Field(discriminator="mode"),
]


class TransformConfig(BaseModel):
    """单次提交的转换配置（不可变）"""

    model_config = ConfigDict(frozen=True)

    resize_rule: ResizeRule = Field(default_factory=NoResize, description="尺寸规则")
    output_format: OutputFormat | None = Field(
        OutputFormat.WEBP, description="输出格式，None 表示保持源格式"
    )
    # 质量范围由上游界面约束，核心在格式策略中再次钳制，不在此处拒绝
    quality: float = Field(0.7, description="压缩质量 [0, 1]")

    @model_validator(mode="before")
    @classmethod
    def parse_output_format(cls, data: object) -> object:
        if isinstance(data, dict) and isinstance(data.get("output_format"), str):
            data = {**data, "output_format": OutputFormat.parse(data["output_format"])}
        return data

    @computed_field  # type: ignore[prop-decorator]
    @property
    def quality_applies(self) -> bool:
        """质量参数是否生效；PNG 为无损格式，质量控件无效"""
        return self.output_format is None or not self.output_format.is_lossless

    def snapshot(self) -> "TransformConfig":
        """创建独立副本，供入队时按值捕获"""
        return self.model_copy(deep=True)
