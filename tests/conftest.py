"""测试配置文件。

提供测试所需的fixtures和配置。
"""

import asyncio
from collections.abc import Callable
from io import BytesIO

import pytest
from PIL import Image, ImageDraw

from lite_image.config import reset_config
from lite_image.core.codec import CodecAdapter, PixelSurface
from lite_image.core.formats import EncodeParams
from lite_image.engine.export import MemoryExportSink
from lite_image.engine.queue import QueueSettings
from lite_image.exceptions import DecodeError
from lite_image.models.constants import OutputFormat


ImageFactory = Callable[..., bytes]


def _draw_pattern(img: Image.Image) -> None:
    """绘制简单图案，避免纯色图片被编码器过度压缩"""
    draw = ImageDraw.Draw(img)
    width, height = img.size
    for i in range(20):
        x, y = (i * 37) % width, (i * 23) % height
        color = (i * 13 % 256, i * 29 % 256, i * 47 % 256)
        draw.rectangle([x, y, x + width // 8, y + height // 8], fill=color)


@pytest.fixture
def make_image() -> ImageFactory:
    """生成图像字节的工厂"""

    def factory(
        width: int = 64,
        height: int = 48,
        format: str = "PNG",
        mode: str = "RGB",
        color: tuple | str = "white",
        pattern: bool = True,
        **save_params,
    ) -> bytes:
        img = Image.new(mode, (width, height), color=color)
        if pattern and mode in ("RGB", "RGBA"):
            _draw_pattern(img)
        buffer = BytesIO()
        img.save(buffer, format=format, **save_params)
        return buffer.getvalue()

    return factory


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """每个测试使用不受外部环境变量影响的默认配置"""
    for name in (
        "LITE_IMAGE_QUALITY",
        "LITE_IMAGE_OUTPUT_FORMAT",
        "LITE_IMAGE_WEBP_METHOD",
        "LITE_IMAGE_PACING_DELAY",
        "LITE_IMAGE_EXPORT_COOLDOWN",
        "LITE_IMAGE_AUTO_EXPORT",
        "LITE_IMAGE_EXPORT_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


class RecordingSleep:
    """记录等待时长，只让出一次事件循环而不真正等待"""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        await asyncio.sleep(0)


class FakeCodec(CodecAdapter):
    """不依赖 Pillow 的编解码器

    源字节按文本解释为键：以 "broken" 开头的解码失败；delays 指定解码耗时；
    gates 中的事件未触发前解码会一直等待。
    """

    def __init__(
        self,
        delays: dict[str, float] | None = None,
        gates: dict[str, asyncio.Event] | None = None,
        size: tuple[int, int] = (400, 300),
    ) -> None:
        self.delays = delays or {}
        self.gates = gates or {}
        self.size = size
        self.active = 0
        self.max_active = 0
        self.decoded: list[str] = []

    async def decode(self, data: bytes, media_type: str) -> PixelSurface:
        key = data.decode()
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            self.decoded.append(key)
            if key in self.gates:
                await self.gates[key].wait()
            await asyncio.sleep(self.delays.get(key, 0))
            if key.startswith("broken"):
                raise DecodeError(f"无法解码: {key}")
            width, height = self.size
            return PixelSurface(width=width, height=height, image=None)
        finally:
            self.active -= 1

    async def resample(
        self, surface: PixelSurface, width: int, height: int
    ) -> PixelSurface:
        return PixelSurface(width=width, height=height, image=None)

    async def encode(
        self, surface: PixelSurface, format: OutputFormat, params: EncodeParams
    ) -> bytes:
        return f"{format.value}:{surface.width}x{surface.height}".encode()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fake_codec() -> FakeCodec:
    return FakeCodec()


@pytest.fixture
def memory_sink() -> MemoryExportSink:
    return MemoryExportSink()


@pytest.fixture
def queue_settings() -> QueueSettings:
    """与默认值一致的调度参数"""
    return QueueSettings(pacing_delay=0.3, export_cooldown=1.0, auto_export=True)
