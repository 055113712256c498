"""任务队列测试。

使用 FakeCodec 和不真正等待的 sleep，验证调度顺序、单飞行、清空和导出节奏。
"""

import asyncio
import logging

import pytest

from lite_image.engine.export import ExportSink, MemoryExportSink
from lite_image.engine.queue import JobQueue, QueueSettings
from lite_image.exceptions import ConfigError
from lite_image.models.constants import OutputFormat
from lite_image.models.job import JobStatus
from lite_image.models.transform_config import DimensionsResize, TransformConfig


def _files(*keys: str) -> list[tuple[bytes, str, str]]:
    return [(key.encode(), "image/png", f"{key}.png") for key in keys]


class FailingSink(ExportSink):
    """每次导出都失败的导出目标"""

    async def export(self, data: bytes, file_name: str) -> None:
        raise OSError("磁盘已满")


class TestScheduling:
    """调度与单飞行测试"""

    @pytest.mark.asyncio
    async def test_processes_in_arrival_order(self, fake_codec, recording_sleep):
        """测试较慢的中间任务不会被后面的任务超过"""
        fake_codec.delays = {"a": 0.001, "b": 0.05, "c": 0.001}
        queue = JobQueue(codec=fake_codec, sleep=recording_sleep)
        completed: list[str] = []
        queue.subscribe(
            lambda r: completed.append(r.file_name)
            if r.status == JobStatus.DONE
            else None
        )

        queue.enqueue(_files("a", "b", "c"), TransformConfig())
        await queue.wait_idle()

        assert completed == ["a.png", "b.png", "c.png"]
        assert fake_codec.decoded == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_never_two_processing(self, fake_codec, recording_sleep):
        queue = JobQueue(codec=fake_codec, sleep=recording_sleep)
        max_processing = 0

        def check(_record):
            nonlocal max_processing
            processing = sum(
                1 for r in queue.records() if r.status == JobStatus.PROCESSING
            )
            max_processing = max(max_processing, processing)

        queue.subscribe(check)
        queue.enqueue(_files("a", "b"), TransformConfig())
        queue.enqueue(_files("c"), TransformConfig())
        await queue.wait_idle()

        assert max_processing == 1
        assert fake_codec.max_active == 1
        assert queue.summary().get_done_count() == 3

    @pytest.mark.asyncio
    async def test_first_job_starts_immediately(self, fake_codec, recording_sleep):
        queue = JobQueue(codec=fake_codec, sleep=recording_sleep)

        first, second = queue.enqueue(_files("a", "b"), TransformConfig())

        assert queue.get(first).status == JobStatus.PROCESSING
        assert queue.get(second).status == JobStatus.PENDING
        await queue.wait_idle()

    @pytest.mark.asyncio
    async def test_pacing_delay_before_each_job(self, fake_codec, recording_sleep):
        settings = QueueSettings(pacing_delay=0.3, auto_export=False)
        queue = JobQueue(codec=fake_codec, settings=settings, sleep=recording_sleep)

        queue.enqueue(_files("a", "b"), TransformConfig())
        await queue.wait_idle()

        assert recording_sleep.calls == [0.3, 0.3]

    @pytest.mark.asyncio
    async def test_error_does_not_stop_queue(self, fake_codec, recording_sleep):
        queue = JobQueue(codec=fake_codec, sleep=recording_sleep)

        ids = queue.enqueue(_files("a", "broken", "c"), TransformConfig())
        await queue.wait_idle()

        statuses = [queue.get(job_id).status for job_id in ids]
        assert statuses == [JobStatus.DONE, JobStatus.ERROR, JobStatus.DONE]
        assert queue.get(ids[1]).error

    @pytest.mark.asyncio
    async def test_config_captured_per_enqueue(self, fake_codec, recording_sleep):
        queue = JobQueue(codec=fake_codec, sleep=recording_sleep)

        first = queue.enqueue(
            _files("a"),
            TransformConfig(
                resize_rule=DimensionsResize(target_width=200),
                output_format=OutputFormat.WEBP,
            ),
        )
        second = queue.enqueue(
            _files("b"), TransformConfig(output_format=OutputFormat.JPEG)
        )
        await queue.wait_idle()

        a = queue.get(first[0])
        b = queue.get(second[0])
        assert (a.output_width, a.output_height, a.output_file_name) == (
            200,
            150,
            "a.webp",
        )
        assert (b.output_width, b.output_height, b.output_file_name) == (
            400,
            300,
            "b.jpg",
        )

    def test_enqueue_without_running_loop(self, fake_codec, recording_sleep):
        """测试事件循环外入队时任务保持等待，wait_idle 时再启动"""
        queue = JobQueue(codec=fake_codec, sleep=recording_sleep)

        ids = queue.enqueue(_files("a"), TransformConfig())
        assert queue.get(ids[0]).status == JobStatus.PENDING
        assert not queue.is_idle

        asyncio.run(queue.wait_idle())
        assert queue.get(ids[0]).status == JobStatus.DONE
        assert queue.is_idle

    def test_enqueue_nothing(self, fake_codec):
        queue = JobQueue(codec=fake_codec)
        assert queue.enqueue([], TransformConfig()) == []
        assert len(queue) == 0


class TestClear:
    """清空队列测试"""

    @pytest.mark.asyncio
    async def test_clear_during_processing(
        self, fake_codec, recording_sleep, memory_sink
    ):
        """测试清空后进行中任务的结果被丢弃，新任务仍然逐个处理"""
        gate = asyncio.Event()
        fake_codec.gates = {"a": gate}
        queue = JobQueue(
            codec=fake_codec, export_sink=memory_sink, sleep=recording_sleep
        )

        queue.enqueue(_files("a"), TransformConfig())
        for _ in range(10):
            await asyncio.sleep(0)
        assert fake_codec.decoded == ["a"]

        assert queue.clear() == 1
        assert queue.records() == []

        queue.enqueue(_files("b"), TransformConfig())
        # 清空前的任务仍在处理中，新任务不能同时开始
        assert queue.records()[0].status == JobStatus.PENDING
        assert fake_codec.decoded == ["a"]

        gate.set()
        await queue.wait_idle()

        records = queue.records()
        assert [r.file_name for r in records] == ["b.png"]
        assert records[0].status == JobStatus.DONE
        assert memory_sink.file_names == ["b.webp"]
        assert fake_codec.max_active == 1

    @pytest.mark.asyncio
    async def test_clear_empty_queue(self, fake_codec):
        queue = JobQueue(codec=fake_codec)
        assert queue.clear() == 0
        assert queue.is_idle

    @pytest.mark.asyncio
    async def test_cleared_result_not_reported(
        self, fake_codec, recording_sleep
    ):
        gate = asyncio.Event()
        fake_codec.gates = {"a": gate}
        queue = JobQueue(codec=fake_codec, sleep=recording_sleep)
        seen: list[tuple[str, JobStatus]] = []
        queue.subscribe(lambda r: seen.append((r.file_name, r.status)))

        queue.enqueue(_files("a"), TransformConfig())
        for _ in range(10):
            await asyncio.sleep(0)
        queue.clear()
        gate.set()
        await queue.wait_idle()

        assert ("a.png", JobStatus.DONE) not in seen
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_clear_notifies_listeners(self, fake_codec, recording_sleep):
        """测试清空后清空监听器收到移除数量，读模型同时变为空"""
        queue = JobQueue(codec=fake_codec, sleep=recording_sleep)
        cleared: list[tuple[int, int]] = []
        queue.subscribe_clear(lambda removed: cleared.append((removed, len(queue))))

        queue.enqueue(_files("a", "b"), TransformConfig())
        await queue.wait_idle()

        assert queue.clear() == 2
        assert cleared == [(2, 0)]

    def test_clear_listener_errors_isolated(self, fake_codec):
        queue = JobQueue(codec=fake_codec)
        calls: list[int] = []

        def broken(_removed: int) -> None:
            raise RuntimeError("listener failed")

        queue.subscribe_clear(broken)
        queue.subscribe_clear(calls.append)

        assert queue.clear() == 0
        assert calls == [0]

        queue.unsubscribe_clear(broken)
        queue.unsubscribe_clear(calls.append)
        queue.clear()
        assert calls == [0]


class TestExport:
    """导出与冷却时间测试"""

    @pytest.mark.asyncio
    async def test_auto_export_with_cooldown(
        self, fake_codec, recording_sleep, memory_sink, queue_settings
    ):
        queue = JobQueue(
            codec=fake_codec,
            export_sink=memory_sink,
            settings=queue_settings,
            sleep=recording_sleep,
        )

        queue.enqueue(_files("a", "b"), TransformConfig())
        await queue.wait_idle()

        assert memory_sink.file_names == ["a.webp", "b.webp"]
        assert memory_sink.exported[0][1] == b"WEBP:400x300"
        assert recording_sleep.calls == [0.3, 1.0, 0.3, 1.0]

    @pytest.mark.asyncio
    async def test_failed_job_not_exported(
        self, fake_codec, recording_sleep, memory_sink, queue_settings
    ):
        queue = JobQueue(
            codec=fake_codec,
            export_sink=memory_sink,
            settings=queue_settings,
            sleep=recording_sleep,
        )

        queue.enqueue(_files("broken", "c"), TransformConfig())
        await queue.wait_idle()

        assert memory_sink.file_names == ["c.webp"]
        assert recording_sleep.calls == [0.3, 0.3, 1.0]

    @pytest.mark.asyncio
    async def test_auto_export_disabled(self, fake_codec, recording_sleep, memory_sink):
        settings = QueueSettings(auto_export=False)
        queue = JobQueue(
            codec=fake_codec,
            export_sink=memory_sink,
            settings=settings,
            sleep=recording_sleep,
        )

        queue.enqueue(_files("a"), TransformConfig())
        await queue.wait_idle()

        assert memory_sink.exported == []

    @pytest.mark.asyncio
    async def test_download_all_spacing(self, fake_codec, recording_sleep):
        """测试批量导出按到达顺序进行，相邻两次导出之间间隔冷却时间"""
        settings = QueueSettings(
            pacing_delay=0.3, export_cooldown=1.0, auto_export=False
        )
        queue = JobQueue(codec=fake_codec, settings=settings, sleep=recording_sleep)
        queue.enqueue(_files("a", "broken", "c", "d"), TransformConfig())
        await queue.wait_idle()
        recording_sleep.calls.clear()

        sink = MemoryExportSink()
        exported = await queue.download_all(sink)

        assert exported == 3
        assert sink.file_names == ["a.webp", "c.webp", "d.webp"]
        assert recording_sleep.calls == [1.0, 1.0]

    @pytest.mark.asyncio
    async def test_download_all_stops_when_cleared(self, fake_codec):
        settings = QueueSettings(
            pacing_delay=0, export_cooldown=1.0, auto_export=False
        )
        holder: list[JobQueue] = []

        async def clearing_sleep(delay: float) -> None:
            if delay == 1.0:
                holder[0].clear()

        queue = JobQueue(codec=fake_codec, settings=settings, sleep=clearing_sleep)
        holder.append(queue)
        queue.enqueue(_files("a", "b"), TransformConfig())
        await queue.wait_idle()

        sink = MemoryExportSink()
        assert await queue.download_all(sink) == 1
        assert sink.file_names == ["a.webp"]

    @pytest.mark.asyncio
    async def test_download_all_requires_sink(self, fake_codec, recording_sleep):
        queue = JobQueue(codec=fake_codec, sleep=recording_sleep)
        with pytest.raises(ConfigError):
            await queue.download_all()

    @pytest.mark.asyncio
    async def test_download_single(self, fake_codec, recording_sleep, memory_sink):
        settings = QueueSettings(auto_export=False)
        queue = JobQueue(
            codec=fake_codec,
            export_sink=memory_sink,
            settings=settings,
            sleep=recording_sleep,
        )
        done_id, error_id = queue.enqueue(_files("a", "broken"), TransformConfig())
        await queue.wait_idle()

        assert await queue.download(done_id)
        assert not await queue.download(error_id)
        assert not await queue.download("missing")
        assert memory_sink.file_names == ["a.webp"]

    @pytest.mark.asyncio
    async def test_download_unknown_id_logged(
        self, fake_codec, memory_sink, caplog
    ):
        queue = JobQueue(codec=fake_codec, export_sink=memory_sink)

        with caplog.at_level(logging.WARNING, logger="lite_image.engine.queue"):
            assert not await queue.download("missing")

        assert "任务不存在: missing" in caplog.text
        assert memory_sink.file_names == []

    @pytest.mark.asyncio
    async def test_export_failure_keeps_done(
        self, fake_codec, recording_sleep, queue_settings
    ):
        queue = JobQueue(
            codec=fake_codec,
            export_sink=FailingSink(),
            settings=queue_settings,
            sleep=recording_sleep,
        )

        ids = queue.enqueue(_files("a", "b"), TransformConfig())
        await queue.wait_idle()

        assert [queue.get(i).status for i in ids] == [JobStatus.DONE, JobStatus.DONE]
        assert await queue.download_all() == 0


class TestReadModel:
    """读模型与监听器测试"""

    @pytest.mark.asyncio
    async def test_listener_sees_every_transition(self, fake_codec, recording_sleep):
        queue = JobQueue(codec=fake_codec, sleep=recording_sleep)
        statuses: list[JobStatus] = []
        queue.subscribe(lambda r: statuses.append(r.status))

        queue.enqueue(_files("a"), TransformConfig())
        await queue.wait_idle()

        assert statuses == [JobStatus.PENDING, JobStatus.PROCESSING, JobStatus.DONE]

    @pytest.mark.asyncio
    async def test_failing_listener_isolated(self, fake_codec, recording_sleep):
        queue = JobQueue(codec=fake_codec, sleep=recording_sleep)
        seen: list[JobStatus] = []

        def broken_listener(_record):
            raise RuntimeError("界面渲染失败")

        queue.subscribe(broken_listener)
        queue.subscribe(lambda r: seen.append(r.status))
        ids = queue.enqueue(_files("a"), TransformConfig())
        await queue.wait_idle()

        assert queue.get(ids[0]).status == JobStatus.DONE
        assert seen[-1] == JobStatus.DONE

    @pytest.mark.asyncio
    async def test_unsubscribe(self, fake_codec, recording_sleep):
        queue = JobQueue(codec=fake_codec, sleep=recording_sleep)
        seen: list[JobStatus] = []

        def listener(record):
            seen.append(record.status)

        queue.subscribe(listener)
        queue.unsubscribe(listener)
        queue.enqueue(_files("a"), TransformConfig())
        await queue.wait_idle()

        assert seen == []

    @pytest.mark.asyncio
    async def test_summary(self, fake_codec, recording_sleep):
        queue = JobQueue(codec=fake_codec, sleep=recording_sleep)
        queue.enqueue(_files("a", "broken", "c"), TransformConfig())
        await queue.wait_idle()

        summary = queue.summary()
        assert summary.get_total_count() == 3
        assert summary.get_done_count() == 2
        assert summary.get_error_count() == 1
        assert summary.get_pending_count() == 0
        assert "已处理 2/3" in summary.get_summary()

    @pytest.mark.asyncio
    async def test_record_fields(self, fake_codec, recording_sleep):
        queue = JobQueue(codec=fake_codec, sleep=recording_sleep)
        (job_id,) = queue.enqueue([(b"a", "image/png", "a.png")], TransformConfig())
        await queue.wait_idle()

        record = queue.get(job_id)
        assert record.original_size == 1
        assert record.output_size == len(b"WEBP:400x300")
        assert record.savings_ratio == pytest.approx(1 - len(b"WEBP:400x300"))
        assert record.error is None
