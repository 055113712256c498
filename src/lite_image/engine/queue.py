"""任务队列模块。

按到达顺序逐个处理任务（单飞行）：任何时刻最多只有一个任务处于 PROCESSING。
每次入队或任务进入终态后调用 _schedule_next()，如果没有进行中的任务就启动
最早的 PENDING 任务。任务开始前有节奏延迟；自动导出后有冷却时间，用于遵守
外部保存机制的速率限制。
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

from ..config import get_config
from ..core.codec import CodecAdapter, PillowCodec
from ..core.transform import execute_job
from ..exceptions import ConfigError, ErrorHandler
from ..models.job import (
    DoneState,
    ErrorState,
    Job,
    JobStatus,
    ProcessingState,
    SourceImage,
)
from ..models.job_record import JobRecord, QueueSummary
from ..models.transform_config import TransformConfig
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from .export import ExportSink


logger = get_logger()

Listener = Callable[[JobRecord], None]
ClearListener = Callable[[int], None]
SleepFunc = Callable[[float], Awaitable[None]]
SourceInput = SourceImage | tuple[bytes, str, str]


@dataclass(frozen=True)
class QueueSettings:
    """队列调度参数"""

    pacing_delay: float = 0.3
    export_cooldown: float = 1.0
    auto_export: bool = True

    @classmethod
    def from_config(cls) -> "QueueSettings":
        """从全局配置读取"""
        queue_defaults = get_config().queue
        return cls(
            pacing_delay=queue_defaults.PACING_DELAY,
            export_cooldown=queue_defaults.EXPORT_COOLDOWN,
            auto_export=queue_defaults.AUTO_EXPORT,
        )


class JobQueue:
    """单飞行的图像转换队列

    队列中的任务只由队列自身修改（入队、状态迁移、清空）。
    """

    def __init__(
        self,
        codec: CodecAdapter | None = None,
        export_sink: ExportSink | None = None,
        settings: QueueSettings | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """初始化队列

        Args:
            codec: 编解码适配器，默认使用 Pillow
            export_sink: 导出目标，None 时不自动导出
            settings: 调度参数，默认从全局配置读取
            sleep: 等待函数，节奏延迟和冷却时间都通过它实现
        """
        self.codec = codec or PillowCodec()
        self.export_sink = export_sink
        self.settings = settings or QueueSettings.from_config()
        self._sleep = sleep

        self._jobs: list[Job] = []
        self._listeners: list[Listener] = []
        self._clear_listeners: list[ClearListener] = []
        self._active: asyncio.Task | None = None
        # 每次清空递增，用于丢弃清空前已在处理中的任务结果
        self._generation = 0

    # ------------------------------------------------------------------
    # 入队与调度
    # ------------------------------------------------------------------

    def enqueue(
        self, files: Iterable[SourceInput], config: TransformConfig
    ) -> list[str]:
        """把文件追加到队尾

        Args:
            files: SourceImage 或 (字节, MIME 类型, 文件名) 元组
            config: 转换配置，入队时按值快照

        Returns:
            list[str]: 新任务的标识，顺序与输入一致
        """
        snapshot = config.snapshot()
        new_jobs = [
            Job(source=self._to_source(item), config=snapshot) for item in files
        ]
        if not new_jobs:
            return []

        self._jobs.extend(new_jobs)
        logger.info(f"入队 {len(new_jobs)} 个文件，队列共 {len(self._jobs)} 个任务")
        for job in new_jobs:
            self._notify(job)

        self._schedule_next()
        return [job.id for job in new_jobs]

    @staticmethod
    def _to_source(item: SourceInput) -> SourceImage:
        if isinstance(item, SourceImage):
            return item
        data, media_type, file_name = item
        return SourceImage(data=data, media_type=media_type, file_name=file_name)

    def _schedule_next(self) -> None:
        """没有进行中的任务时，启动最早的 PENDING 任务"""
        if self._active is not None and not self._active.done():
            return
        self._active = None

        job = next((j for j in self._jobs if j.status == JobStatus.PENDING), None)
        if job is None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # 不在事件循环中（如同步代码入队），等待 wait_idle() 时再启动
            logger.debug("没有运行中的事件循环，延迟启动队列")
            return

        self._transition(job, ProcessingState())
        self._active = loop.create_task(self._run(job, self._generation))

    async def _run(self, job: Job, generation: int) -> None:
        try:
            await self._process(job, generation)
        except asyncio.CancelledError:
            self._active = None
            logger.warning(f"队列任务被取消: {job.file_name}")
            raise
        except Exception as e:
            logger.exception(f"队列任务执行异常 [{job.file_name}]: {e}")
            if job.status == JobStatus.PROCESSING and self._is_visible(job, generation):
                error_state = ErrorHandler.handle_job_error(e, job.file_name)
                self._transition(job, error_state)

        self._active = None
        self._schedule_next()

    async def _process(self, job: Job, generation: int) -> None:
        await self._sleep(self.settings.pacing_delay)

        state = await execute_job(job.source, job.config, self.codec)

        if not self._is_visible(job, generation):
            # 处理期间队列被清空，静默丢弃结果
            logger.debug(f"队列已清空，丢弃结果: {job.file_name}")
            return

        self._transition(job, state)
        job.release_source()

        if (
            isinstance(state, DoneState)
            and self.settings.auto_export
            and self.export_sink is not None
        ):
            await self._export(job, self.export_sink)
            await self._sleep(self.settings.export_cooldown)

    def _is_visible(self, job: Job, generation: int) -> bool:
        return generation == self._generation and job in self._jobs

    def _transition(
        self, job: Job, state: ProcessingState | DoneState | ErrorState
    ) -> None:
        old_status = job.status
        job.advance(state)
        logger.debug(
            MessageFormatter.status_change(
                job.file_name, old_status.value, job.status.value
            )
        )
        self._notify(job)

    # ------------------------------------------------------------------
    # 清空与导出
    # ------------------------------------------------------------------

    def clear(self) -> int:
        """清空所有可见任务

        进行中的任务不会被中断，但其结果会被丢弃且不会导出。
        清空后以移除数量调用清空监听器。

        Returns:
            int: 移除的任务数量
        """
        removed = len(self._jobs)
        self._jobs = []
        self._generation += 1
        logger.info(f"已清空队列，移除 {removed} 个任务")

        for listener in list(self._clear_listeners):
            try:
                listener(removed)
            except Exception as e:
                logger.exception(f"清空监听器异常: {e}")
        return removed

    async def download(self, job_id: str, sink: ExportSink | None = None) -> bool:
        """导出单个已完成任务

        Returns:
            bool: 是否导出成功
        """
        job = self._find(job_id)
        if job is None:
            logger.warning(MessageFormatter.job_not_found(job_id))
            return False
        if job.status != JobStatus.DONE:
            return False
        return await self._export(job, self._require_sink(sink))

    async def download_all(self, sink: ExportSink | None = None) -> int:
        """按到达顺序导出所有已完成任务，相邻两次导出间隔冷却时间

        Returns:
            int: 成功导出的数量
        """
        target = self._require_sink(sink)
        generation = self._generation
        done_jobs = [j for j in self._jobs if j.status == JobStatus.DONE]

        exported = 0
        for index, job in enumerate(done_jobs):
            if index > 0:
                await self._sleep(self.settings.export_cooldown)
            if generation != self._generation:
                logger.info("队列已清空，停止批量导出")
                break
            if await self._export(job, target):
                exported += 1

        logger.info(f"批量导出完成: {exported}/{len(done_jobs)}")
        return exported

    def _require_sink(self, sink: ExportSink | None) -> ExportSink:
        target = sink or self.export_sink
        if target is None:
            raise ConfigError("未配置导出目标")
        return target

    async def _export(self, job: Job, sink: ExportSink) -> bool:
        """调用导出目标；导出失败只记录日志，不改变任务状态"""
        result = job.result
        if result is None:
            return False
        try:
            await sink.export(result.output_bytes, result.output_file_name)
        except Exception as e:
            ErrorHandler._log_error("导出", result.output_file_name, e, "error")
            return False
        return True

    # ------------------------------------------------------------------
    # 读模型
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        """注册状态监听器，每次状态迁移时同步调用"""
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def subscribe_clear(self, listener: ClearListener) -> None:
        """注册清空监听器，参数为移除的任务数量"""
        self._clear_listeners.append(listener)

    def unsubscribe_clear(self, listener: ClearListener) -> None:
        if listener in self._clear_listeners:
            self._clear_listeners.remove(listener)

    def _notify(self, job: Job) -> None:
        if not self._listeners:
            return
        record = JobRecord.from_job(job)
        for listener in list(self._listeners):
            try:
                listener(record)
            except Exception as e:
                logger.exception(f"状态监听器异常 [{job.file_name}]: {e}")

    def records(self) -> list[JobRecord]:
        """按到达顺序返回所有可见任务的记录"""
        return [JobRecord.from_job(job) for job in self._jobs]

    def get(self, job_id: str) -> JobRecord | None:
        job = self._find(job_id)
        return JobRecord.from_job(job) if job is not None else None

    def summary(self) -> QueueSummary:
        return QueueSummary(records=self.records())

    def _find(self, job_id: str) -> Job | None:
        return next((job for job in self._jobs if job.id == job_id), None)

    @property
    def is_idle(self) -> bool:
        """没有进行中的任务，也没有等待中的任务"""
        return (self._active is None or self._active.done()) and not any(
            job.status == JobStatus.PENDING for job in self._jobs
        )

    async def wait_idle(self) -> None:
        """等待队列处理完所有任务（包括清空前已在处理中的任务）"""
        self._schedule_next()
        while (task := self._active) is not None:
            await asyncio.wait({task})
            if self._active is task:
                # 任务已结束但未调度下一个（例如被取消）
                self._active = None
                self._schedule_next()

    def __len__(self) -> int:
        return len(self._jobs)
