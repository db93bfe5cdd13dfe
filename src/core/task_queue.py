# -*- coding: utf-8 -*-
"""
有序任务队列

单个专用工作线程按提交顺序逐个执行任务：
- submit() 立即返回，不阻塞调用方（连接的读线程）
- 前一个任务执行完毕后才开始下一个
- drain() 结束当前会话：丢弃尚未开始的任务，不打断正在执行的任务，
  之后属于旧会话的提交一律丢弃；renew() 开启新会话
- stop() 执行完已排队的任务后退出，之后不再接受提交
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple, Union

from loguru import logger


@dataclass(frozen=True)
class Task:
    """不可变的延迟执行单元"""
    fn: Callable[..., Any]
    args: Tuple[Any, ...] = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    name: str = ""

    @property
    def label(self) -> str:
        """日志中使用的任务名"""
        return self.name or getattr(self.fn, "__name__", repr(self.fn))

    def run(self) -> Any:
        return self.fn(*self.args, **self.kwargs)


@dataclass
class QueueStats:
    """队列统计"""
    name: str
    submitted: int = 0
    executed: int = 0
    failed: int = 0
    discarded: int = 0
    pending: int = 0
    running: bool = False
    epoch: int = 0


# 停止标记
_STOP = object()


class OrderedTaskQueue:
    """FIFO 任务队列，由一个专用工作线程顺序执行

    每个任务在提交时记下所属会话（epoch）。drain() 使当前会话失效，
    失效会话的任务既不会入队也不会执行。
    """

    def __init__(self, name: str):
        self.name = name
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._accepting = True
        self._epoch = 0
        self._session_open = True
        self._pending = 0  # 已入队但尚未执行完毕（含正在执行）
        self._stats = QueueStats(name=name)
        self._worker = threading.Thread(
            target=self._run, name=f"{name}-worker", daemon=True
        )
        self._worker.start()

    # === 提交与执行 ===

    def submit(
        self,
        task: Union[Task, Callable[..., Any]],
        *args: Any,
        name: str = "",
        epoch: Optional[int] = None,
    ) -> bool:
        """提交任务

        Args:
            task: Task 对象，或可调用对象（连同 args 包装为 Task）
            name: 任务名（仅用于日志）
            epoch: 任务所属会话；为空时属于当前会话（drain 之后、renew 之前没有当前会话）

        Returns:
            是否被接受；队列停止或会话已失效时返回 False
        """
        if not isinstance(task, Task):
            task = Task(fn=task, args=args, name=name)

        with self._lock:
            if not self._accepting:
                logger.debug(f"[Queue:{self.name}] 队列已停止，丢弃任务: {task.label}")
                return False
            if epoch is None and not self._session_open:
                logger.debug(f"[Queue:{self.name}] 会话已结束，丢弃任务: {task.label}")
                return False
            if epoch is not None and epoch != self._epoch:
                logger.debug(f"[Queue:{self.name}] 会话 {epoch} 已失效，丢弃任务: {task.label}")
                return False
            self._pending += 1
            self._stats.submitted += 1
            self._queue.put((self._epoch, task))
        return True

    def _run(self) -> None:
        """工作线程主循环"""
        while True:
            item = self._queue.get()
            if item is _STOP:
                break

            epoch, task = item
            with self._idle:
                if epoch != self._epoch:
                    # 出队后、开始前被 drain
                    self._pending -= 1
                    self._stats.discarded += 1
                    self._idle.notify_all()
                    continue
                self._stats.running = True

            failed = False
            try:
                task.run()
            except Exception as e:
                failed = True
                logger.opt(exception=e).error(f"[Queue:{self.name}] 任务执行失败: {task.label}, 错误: {e}")
            finally:
                with self._idle:
                    self._stats.running = False
                    self._pending -= 1
                    if failed:
                        self._stats.failed += 1
                    else:
                        self._stats.executed += 1
                    self._idle.notify_all()

        logger.debug(f"[Queue:{self.name}] 工作线程已退出")

    # === 控制 ===

    def drain(self) -> int:
        """结束当前会话，丢弃所有尚未开始的任务

        Returns:
            被丢弃的任务数
        """
        discarded = 0
        stop_requested = False
        with self._idle:
            self._epoch += 1
            self._session_open = False
            while True:
                try:
                    item = self._queue.get_nowait()
                except queue.Empty:
                    break
                if item is _STOP:
                    stop_requested = True
                    continue
                discarded += 1

            # 停止标记必须保留在队尾
            if stop_requested:
                self._queue.put(_STOP)

            self._pending -= discarded
            self._stats.discarded += discarded
            self._idle.notify_all()

        if discarded:
            logger.debug(f"[Queue:{self.name}] 已丢弃 {discarded} 个未开始的任务")
        return discarded

    def renew(self) -> int:
        """开启新会话

        Returns:
            新会话的 epoch
        """
        with self._lock:
            self._session_open = True
            return self._epoch

    def stop(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """停止接受新任务，执行完已排队的任务后退出

        Args:
            wait: 是否等待工作线程退出
            timeout: 等待超时（秒）
        """
        with self._lock:
            if self._accepting:
                self._accepting = False
                self._queue.put(_STOP)

        if wait and not self.in_worker():
            self._worker.join(timeout=timeout)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """等待队列空闲（没有排队或正在执行的任务）

        Returns:
            超时前是否已空闲
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout=timeout)

    # === 查询 ===

    def in_worker(self) -> bool:
        """当前线程是否为本队列的工作线程"""
        return threading.current_thread() is self._worker

    @property
    def epoch(self) -> int:
        """当前会话"""
        return self._epoch

    @property
    def accepting(self) -> bool:
        return self._accepting

    def is_alive(self) -> bool:
        return self._worker.is_alive()

    def get_stats(self) -> QueueStats:
        """获取统计信息"""
        with self._lock:
            return QueueStats(
                name=self.name,
                submitted=self._stats.submitted,
                executed=self._stats.executed,
                failed=self._stats.failed,
                discarded=self._stats.discarded,
                pending=self._pending,
                running=self._stats.running,
                epoch=self._epoch,
            )
