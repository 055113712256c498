"""编解码适配器模块。

把外部图像编解码服务包装成统一的异步接口：decode / resample / encode。
Pillow 的调用都是 CPU 密集的同步操作，在事件循环的默认执行器中运行，
不会阻塞事件循环。
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from concurrent.futures import Executor
from dataclasses import dataclass
from functools import partial
from io import BytesIO
from typing import TypeVar

import cairosvg
from PIL import Image, ImageOps

from ..exceptions import DecodeError, EncodeError, handle_codec_errors
from ..models.constants import OutputFormat, is_vector_media_type
from ..utils.logging_helpers import get_logger
from .formats import EncodeParams, FormatProcessor, get_save_parameters


logger = get_logger()
T = TypeVar("T")


@dataclass(frozen=True)
class PixelSurface:
    """已解码的像素表面"""

    width: int
    height: int
    image: Image.Image

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height


class CodecAdapter(ABC):
    """图像编解码服务的异步接口"""

    @abstractmethod
    async def decode(self, data: bytes, media_type: str) -> PixelSurface:
        """解码字节为像素表面

        Raises:
            DecodeError: 字节无法解码或无法创建绘制表面
        """

    @abstractmethod
    async def resample(
        self, surface: PixelSurface, width: int, height: int
    ) -> PixelSurface:
        """使用高质量滤波器缩放到指定尺寸"""

    @abstractmethod
    async def encode(
        self, surface: PixelSurface, format: OutputFormat, params: EncodeParams
    ) -> bytes:
        """把像素表面编码为目标格式

        Raises:
            EncodeError: 尺寸非法或编码器拒绝该格式
        """


class PillowCodec(CodecAdapter):
    """基于 Pillow 的编解码适配器"""

    # 放大和缩小都使用 LANCZOS，避免最近邻采样的锯齿
    RESAMPLE_FILTER = Image.Resampling.LANCZOS

    def __init__(self, executor: Executor | None = None) -> None:
        """初始化适配器

        Args:
            executor: 运行 Pillow 调用的执行器，None 使用事件循环默认执行器
        """
        self.executor = executor
        self.format_processor = FormatProcessor()

    async def _run(self, func: Callable[..., T], *args) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, partial(func, *args))

    async def decode(self, data: bytes, media_type: str) -> PixelSurface:
        return await self._run(self._decode_sync, data, media_type)

    async def resample(
        self, surface: PixelSurface, width: int, height: int
    ) -> PixelSurface:
        if surface.size == (width, height):
            return surface
        return await self._run(self._resample_sync, surface, width, height)

    async def encode(
        self, surface: PixelSurface, format: OutputFormat, params: EncodeParams
    ) -> bytes:
        if surface.width <= 0 or surface.height <= 0:
            raise EncodeError(f"输出尺寸无效: {surface.width}×{surface.height}")
        if params.format != format:
            raise EncodeError(
                f"编码参数格式 {params.format.value} 与目标格式 {format.value} 不一致"
            )
        return await self._run(self._encode_sync, surface, params)

    @handle_codec_errors("图像解码", DecodeError)
    def _decode_sync(self, data: bytes, media_type: str) -> PixelSurface:
        if not data:
            raise DecodeError("源文件为空")

        if is_vector_media_type(media_type):
            data = self._rasterize_vector(data)

        with Image.open(BytesIO(data)) as img:
            logger.debug(
                f"解码图像: 声明类型={media_type}, 实际格式={img.format}, "
                f"尺寸={img.size}, 模式={img.mode}"
            )
            # 按 EXIF 方向信息旋转，与浏览器的显示方向一致
            img = ImageOps.exif_transpose(img)
            img.load()
            img = self._normalize_mode(img)

        width, height = img.size
        if width <= 0 or height <= 0:
            raise DecodeError(f"图像尺寸无效: {width}×{height}")
        return PixelSurface(width=width, height=height, image=img)

    @staticmethod
    def _rasterize_vector(data: bytes) -> bytes:
        """把 SVG 按其声明的宽高光栅化为 PNG 字节"""
        try:
            png_bytes = cairosvg.svg2png(bytestring=data)
        except Exception as e:
            raise DecodeError(f"矢量图光栅化失败: {e}") from e

        if not png_bytes:
            raise DecodeError("矢量图光栅化未生成数据")
        logger.debug(f"矢量图已光栅化: {len(data)} -> {len(png_bytes)} bytes")
        return png_bytes

    @staticmethod
    def _normalize_mode(img: Image.Image) -> Image.Image:
        """转换为 RGB / RGBA，调色板和二值图像的缩放只能使用最近邻"""
        if img.mode in ("RGB", "RGBA"):
            return img

        has_alpha = img.mode in ("LA", "PA", "La", "RGBa") or (
            img.mode == "P" and "transparency" in img.info
        )
        return img.convert("RGBA" if has_alpha else "RGB")

    @handle_codec_errors("图像缩放", EncodeError)
    def _resample_sync(
        self, surface: PixelSurface, width: int, height: int
    ) -> PixelSurface:
        if width <= 0 or height <= 0:
            raise EncodeError(f"目标尺寸无效: {width}×{height}")

        resized = surface.image.resize((width, height), self.RESAMPLE_FILTER)
        return PixelSurface(width=width, height=height, image=resized)

    @handle_codec_errors("图像编码", EncodeError)
    def _encode_sync(self, surface: PixelSurface, params: EncodeParams) -> bytes:
        img = self.format_processor.prepare_for_format(surface.image, params.format)
        save_params = get_save_parameters(params)

        buffer = BytesIO()
        img.save(buffer, **save_params)
        output = buffer.getvalue()
        if not output:
            raise EncodeError(f"编码器未生成 {params.format.value} 数据")
        return output
