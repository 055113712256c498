#!/usr/bin/env python3
"""批量转换演示脚本。

展示 lite_image 库的核心功能：
- 生成几张测试图像并加入队列
- 监听任务状态变化
- 自动导出到本地目录并打印汇总
"""

import asyncio
import shutil
from io import BytesIO
from pathlib import Path

from PIL import Image, ImageDraw

from lite_image import (
    ConfigBuilder,
    DirectoryExportSink,
    JobQueue,
    JobRecord,
)
from lite_image.utils.logging_helpers import configure_logging


OUTPUT_DIR = Path(__file__).parent.parent / "tmp" / "demo_output"


def create_test_image(width: int, height: int, format: str) -> bytes:
    """创建带渐变条纹的测试图像"""
    img = Image.new("RGB", (width, height), "white")
    draw = ImageDraw.Draw(img)
    for i in range(0, width, 16):
        draw.rectangle([i, 0, i + 8, height], fill=(i % 256, 120, 255 - i % 256))

    buffer = BytesIO()
    img.save(buffer, format=format)
    return buffer.getvalue()


def print_record(record: JobRecord) -> None:
    print(f"  [{record.status.value:>10}] {record.file_name}: {record.get_summary()}")


async def main() -> None:
    configure_logging("WARNING")

    if OUTPUT_DIR.exists():
        shutil.rmtree(OUTPUT_DIR)

    queue = JobQueue(export_sink=DirectoryExportSink(OUTPUT_DIR))
    queue.subscribe(print_record)

    files = [
        (create_test_image(1920, 1080, "JPEG"), "image/jpeg", "landscape.jpg"),
        (create_test_image(800, 1200, "PNG"), "image/png", "portrait.png"),
        (b"not an image", "image/png", "broken.png"),
    ]

    print("🎯 宽度 800，输出 WEBP，质量 70")
    config = ConfigBuilder().build(
        resize_mode="dimensions", width=800, output_format="WEBP", quality=70
    )
    queue.enqueue(files, config)
    await queue.wait_idle()

    print(f"\n📊 {queue.summary().get_summary()}")
    print(f"📁 输出目录: {OUTPUT_DIR}")
    for path in sorted(OUTPUT_DIR.iterdir()):
        print(f"  - {path.name} ({path.stat().st_size / 1024:.1f} KB)")


if __name__ == "__main__":
    asyncio.run(main())
