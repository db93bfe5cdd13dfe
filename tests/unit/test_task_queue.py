# -*- coding: utf-8 -*-
"""
有序任务队列单元测试
"""

import sys
import threading
import unittest
from pathlib import Path

# 添加src到路径
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

import pytest


class TestOrderedTaskQueue(unittest.TestCase):
    """OrderedTaskQueue 测试"""

    def setUp(self):
        from core.task_queue import OrderedTaskQueue
        self.queue = OrderedTaskQueue("test")

    def tearDown(self):
        self.queue.stop(wait=True, timeout=2)

    def test_executes_in_submission_order(self):
        """任务按提交顺序执行"""
        results = []
        for i in range(50):
            self.queue.submit(results.append, i)

        self.assertTrue(self.queue.wait_idle(timeout=2))
        self.assertEqual(results, list(range(50)))

    def test_submit_does_not_block(self):
        """提交不等待正在执行的任务"""
        release = threading.Event()
        self.queue.submit(release.wait, 2)

        accepted = self.queue.submit(lambda: None)
        self.assertTrue(accepted)
        release.set()
        self.assertTrue(self.queue.wait_idle(timeout=2))

    def test_failing_task_does_not_stop_worker(self):
        """任务抛异常后工作线程继续运行"""
        results = []

        def boom():
            raise RuntimeError("boom")

        self.queue.submit(boom)
        self.queue.submit(results.append, "after")

        self.assertTrue(self.queue.wait_idle(timeout=2))
        self.assertEqual(results, ["after"])
        stats = self.queue.get_stats()
        self.assertEqual(stats.failed, 1)
        self.assertEqual(stats.executed, 1)

    def test_drain_discards_pending_but_not_running(self):
        """drain 丢弃未开始的任务，正在执行的任务完成，旧会话之后的提交被丢弃"""
        started = threading.Event()
        release = threading.Event()
        results = []

        def slow():
            started.set()
            release.wait(2)
            results.append("running")

        self.queue.submit(slow)
        self.assertTrue(started.wait(2))
        self.queue.submit(results.append, "pending-1")
        self.queue.submit(results.append, "pending-2")

        discarded = self.queue.drain()
        self.assertFalse(self.queue.submit(results.append, "late"))
        release.set()

        self.assertTrue(self.queue.wait_idle(timeout=2))
        self.assertEqual(discarded, 2)
        self.assertEqual(results, ["running"])
        self.assertEqual(self.queue.get_stats().discarded, 2)

    def test_renew_starts_new_session(self):
        """renew 之后的提交正常执行，旧会话的任务仍被丢弃"""
        results = []
        old = self.queue.epoch

        self.queue.drain()
        new = self.queue.renew()

        self.assertNotEqual(old, new)
        self.assertFalse(self.queue.submit(results.append, "old", epoch=old))
        self.assertTrue(self.queue.submit(results.append, "new", epoch=new))
        self.assertTrue(self.queue.submit(results.append, "default"))

        self.assertTrue(self.queue.wait_idle(timeout=2))
        self.assertEqual(results, ["new", "default"])

    def test_stop_runs_queued_tasks_then_rejects(self):
        """stop 执行完已排队的任务，之后拒绝提交"""
        results = []
        for i in range(5):
            self.queue.submit(results.append, i)

        self.queue.stop(wait=True, timeout=2)

        self.assertEqual(results, list(range(5)))
        self.assertFalse(self.queue.accepting)
        self.assertFalse(self.queue.submit(results.append, 99))
        self.assertFalse(self.queue.is_alive())

    def test_stop_is_idempotent(self):
        """重复 stop 不报错"""
        self.queue.stop(wait=True, timeout=2)
        self.queue.stop(wait=True, timeout=2)
        self.assertFalse(self.queue.is_alive())

    def test_stop_from_worker_does_not_deadlock(self):
        """在工作线程内 stop 不会等待自己"""
        done = threading.Event()

        def stop_self():
            self.queue.stop(wait=True)
            done.set()

        self.queue.submit(stop_self)
        self.assertTrue(done.wait(2))


class TestTask:
    """Task 测试"""

    def test_task_is_immutable(self):
        """Task 不可修改"""
        from dataclasses import FrozenInstanceError
        from core.task_queue import Task

        task = Task(fn=print, args=(1,), name="print")
        with pytest.raises(FrozenInstanceError):
            task.name = "other"

    def test_task_label_falls_back_to_function_name(self):
        """未命名任务使用函数名"""
        from core.task_queue import Task

        def handle_message():
            return 42

        task = Task(fn=handle_message)
        assert task.label == "handle_message"
        assert task.run() == 42

    def test_in_worker(self):
        """in_worker 只在工作线程内为真"""
        from core.task_queue import OrderedTaskQueue

        queue = OrderedTaskQueue("worker-check")
        seen = []
        queue.submit(lambda: seen.append(queue.in_worker()))
        assert queue.wait_idle(timeout=2)
        assert seen == [True]
        assert queue.in_worker() is False
        queue.stop()


class TestInterruptibleSleep:
    """可中断等待"""

    def test_sleep_completes(self):
        from utils.concurrency import CancelToken, interruptible_sleep

        assert interruptible_sleep(0.01, CancelToken()) is True

    def test_cancelled_token_returns_immediately(self):
        import time
        from utils.concurrency import CancelToken, interruptible_sleep

        token = CancelToken()
        token.cancel()
        started = time.monotonic()

        assert interruptible_sleep(30, token) is False
        assert time.monotonic() - started < 1

    def test_cancel_from_other_thread_wakes_sleeper(self):
        from utils.concurrency import CancelToken, interruptible_sleep

        token = CancelToken()
        threading.Timer(0.05, token.cancel).start()

        assert interruptible_sleep(30, token) is False
