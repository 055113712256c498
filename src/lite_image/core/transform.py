"""图像转换流水线。

单个任务的处理步骤：解码 → 计算尺寸 → 缩放 → 编码 → 生成输出文件名。
任务边界捕获所有异常并转换为 ERROR 状态，不会影响队列中的其它任务。
"""

from ..exceptions import ErrorHandler
from ..models.job import DoneState, ErrorState, SourceImage, TransformResult
from ..models.transform_config import TransformConfig
from ..utils.logging_helpers import get_logger
from .codec import CodecAdapter
from .formats import output_file_name, resolve_encode_params, resolve_target_format
from .geometry import resolve_dimensions


logger = get_logger()


async def transform_image(
    source: SourceImage, config: TransformConfig, codec: CodecAdapter
) -> TransformResult:
    """执行单个图像转换

    Args:
        source: 源图像
        config: 转换配置快照
        codec: 编解码适配器

    Returns:
        TransformResult: 转换结果

    Raises:
        DecodeError: 源图无法解码
        EncodeError: 无法生成输出
        ConfigError: 配置或源图尺寸无效
    """
    surface = await codec.decode(source.data, source.media_type)

    width, height = resolve_dimensions(
        surface.width, surface.height, config.resize_rule
    )
    if (width, height) != surface.size:
        logger.debug(
            f"调整尺寸 [{source.file_name}]: {surface.width}×{surface.height} "
            f"-> {width}×{height}"
        )
    surface = await codec.resample(surface, width, height)

    target_format = resolve_target_format(source.media_type, config.output_format)
    params = resolve_encode_params(target_format, config.quality)
    output_bytes = await codec.encode(surface, target_format, params)

    return TransformResult(
        output_bytes=output_bytes,
        output_width=surface.width,
        output_height=surface.height,
        output_file_name=output_file_name(source.file_name, target_format),
        output_format=target_format,
        original_size=source.size,
    )


async def execute_job(
    source: SourceImage, config: TransformConfig, codec: CodecAdapter
) -> DoneState | ErrorState:
    """在任务边界执行转换，总是返回终态而不抛出异常"""
    try:
        result = await transform_image(source, config, codec)
    except Exception as e:
        return ErrorHandler.handle_job_error(e, source.file_name)

    logger.info(
        f"转换完成 [{source.file_name}] -> {result.output_file_name} "
        f"({result.output_width}×{result.output_height}, "
        f"节省 {result.savings_ratio * 100:.1f}%)"
    )
    return DoneState(result=result)
