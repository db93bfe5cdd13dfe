# -*- coding: utf-8 -*-
"""
协议引擎 (AdapterCore)

管理与 AMP 之间的连接生命周期：
- 连接事件和 Handler 回调全部提交到 inbound 队列，在同一个工作线程中处理，
  适配器状态只在这里读写
- 所有发往 AMP 的报文（以及引擎主动发起的关闭）提交到 outbound 队列，
  保证按提交顺序逐个写出
- 连接关闭后自动重连；每次关闭都会开启新会话，旧会话中尚未执行的任务
  以及旧会话任务之后产生的报文和关闭请求都会被丢弃
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional

from loguru import logger

from core.connection import ABNORMAL_CLOSURE, NORMAL_CLOSURE, MessageConnection, Payload
from core.envelope import (
    Configuration,
    Envelope,
    EnvelopeKind,
    ErrorMessage,
    Label,
    decode,
    encode,
    now_ns,
    to_nanoseconds,
)
from core.envelope.codec import TimestampLike, describe
from core.exceptions import AdapterError, EnvelopeDecodeError, ProtocolViolation
from core.handler import Handler
from core.state import AdapterState
from core.task_queue import OrderedTaskQueue
from utils.concurrency import CancelToken, interruptible_sleep
from utils.text import one_line


@dataclass(frozen=True)
class Session:
    """一个连接周期内两个队列的 epoch"""
    inbound: int
    outbound: int


class AdapterCore:
    """插件适配器协议引擎"""

    def __init__(
        self,
        name: str,
        broker_connection: MessageConnection,
        handler: Handler,
        *,
        reconnect_delay: float = 0.0,
    ):
        """
        Args:
            name: 适配器名称（随声明报文发送）
            broker_connection: 与 AMP 的连接
            handler: 被测系统 Handler
            reconnect_delay: 连接关闭后重连前的等待（秒），0 表示立即重连
        """
        self.name = name
        self.broker_connection = broker_connection
        self.handler = handler
        self.reconnect_delay = reconnect_delay

        self._state = AdapterState.DISCONNECTED
        self._inbound = OrderedTaskQueue("inbound")
        self._outbound = OrderedTaskQueue("outbound")
        self._shutdown = CancelToken()
        self._reconnects = 0
        # _session: 新提交的任务所属会话；_running_session: 正在执行的 inbound 任务所属会话
        self._session = Session(self._inbound.epoch, self._outbound.epoch)
        self._running_session = self._session

        broker_connection.listener = self
        handler.adapter_core = self

    @property
    def state(self) -> AdapterState:
        return self._state

    # ==================== 公共接口（任意线程） ====================

    def start(self) -> None:
        """连接到 AMP"""
        self._submit(self._start, name="start")

    def send_ready(self) -> None:
        """Handler 通知被测系统已就绪"""
        self._submit(self._send_ready, name="send_ready")

    def send_response(
        self,
        label: Label,
        physical_label: Optional[str] = None,
        timestamp: TimestampLike = None,
    ) -> None:
        """Handler 上报观察到的响应

        Args:
            label: 响应标签
            physical_label: 被测系统的原始消息
            timestamp: 观察时间（纳秒 / 秒 / datetime），为空时取当前时间
        """
        self._submit(self._send_response, label, physical_label, timestamp, name="send_response")

    def send_error(self, message: str) -> None:
        """发送错误报文并关闭与 AMP 的连接"""
        self._submit(self._send_error, message, name="send_error")

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        """停止适配器（仅在进程退出时调用），之后不再重连"""
        if self._shutdown.cancelled():
            return
        logger.info(f"[Core] 正在停止适配器: {self.name}")
        self._shutdown.cancel()

        self._submit(self._shutdown_tasks, name="shutdown")
        # inbound 先停：它排队的关闭任务要在 outbound 停止前进入队列
        self._inbound.stop(wait=True, timeout=timeout)
        self._outbound.stop(wait=True, timeout=timeout)
        logger.info(f"[Core] 适配器已停止: {self.name}")

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """等待两个队列都空闲"""
        return self._inbound.wait_idle(timeout) and self._outbound.wait_idle(timeout)

    def health_check(self) -> Dict[str, Any]:
        """健康检查"""
        return {
            "name": self.name,
            "healthy": self._state == AdapterState.READY,
            "state": self._state.value,
            "connection": self.broker_connection.state.value,
            "handler": self.handler.get_info(),
            "reconnects": self._reconnects,
            "queues": {
                "inbound": asdict(self._inbound.get_stats()),
                "outbound": asdict(self._outbound.get_stats()),
            },
        }

    # ==================== 连接事件（读线程） ====================

    def on_open(self) -> None:
        self._submit(self._on_open, name="on_open")

    def on_message(self, payload: Payload) -> None:
        self._submit(self._on_message, payload, name="on_message")

    def on_error(self, info: str) -> None:
        self._submit(self._on_error, info, name="on_error")

    def on_close(self, code: int, reason: str) -> None:
        # 结束旧会话：尚未开始的任务被丢弃，正在执行的任务继续运行，但它之后的提交不再生效
        discarded = self._inbound.drain() + self._outbound.drain()
        self._session = Session(self._inbound.renew(), self._outbound.renew())
        if discarded:
            logger.debug(f"[Core] 连接关闭，丢弃 {discarded} 个待处理任务")
        self._submit(self._on_close, code, reason, name="on_close")

    # ==================== inbound 任务 ====================

    def _submit(self, fn: Callable[..., Any], *args: Any, name: str) -> bool:
        # 在 inbound 任务内部提交的任务与当前任务同属一个会话
        session = self._running_session if self._inbound.in_worker() else self._session
        return self._inbound.submit(self._guarded, session, fn, *args, name=name, epoch=session.inbound)

    def _guarded(self, session: Session, fn: Callable[..., Any], *args: Any) -> None:
        """执行 inbound 任务；Handler 抛出的异常转换为错误报文"""
        self._running_session = session
        try:
            fn(*args)
        except Exception as e:
            logger.opt(exception=e).error(f"[Core] 处理 {fn.__name__} 失败: {e}")
            self._send_error(str(e) or type(e).__name__)

    def _start(self) -> None:
        if self._state != AdapterState.DISCONNECTED:
            self._violation("Adapter started while already connected.", "start")
            return
        if self._shutdown.cancelled():
            return

        logger.info(f"[Core] 连接 AMP: {self.broker_connection.url}")
        try:
            self.broker_connection.connect()
        except AdapterError as e:
            logger.error(f"[Core] 无法发起连接: {e.message}")
            self._violation(e.message, "start")

    def _on_open(self) -> None:
        if self._state != AdapterState.DISCONNECTED:
            self._violation("Connection opened while already connected.", "on_open")
            return

        self._state = AdapterState.CONNECTED
        logger.info(f"[Core] 已连接 AMP，发送声明: {self.name}")
        self._send(Envelope.of_announcement(
            self.name,
            self.handler.supported_labels(),
            self.handler.configuration,
        ))
        self._state = AdapterState.ANNOUNCED

    def _on_message(self, payload: Payload) -> None:
        try:
            envelope = decode(payload)
        except EnvelopeDecodeError as e:
            logger.error(f"[Core] 无法解析 AMP 报文 ({e.details.get('payload_size', 0)} 字节): {one_line(e.message)}")
            self._send_error(e.message)
            return

        logger.debug(f"[Core] 收到报文: {describe(envelope)}")
        if envelope.kind == EnvelopeKind.CONFIGURATION:
            self._on_configuration(envelope.configuration)
        elif envelope.kind == EnvelopeKind.LABEL:
            self._on_label(envelope.label)
        elif envelope.kind == EnvelopeKind.RESET:
            self._on_reset()
        elif envelope.kind == EnvelopeKind.ERROR:
            self._on_error_message(envelope.error)
        else:
            self._violation(
                f"Unexpected {envelope.kind.value} message received from AMP.",
                envelope.kind.value,
            )

    def _on_configuration(self, configuration: Configuration) -> None:
        if self._state == AdapterState.CONNECTED:
            self._violation("Configuration received from AMP while not yet announced.", "configuration")
            return
        if self._state in (AdapterState.CONFIGURED, AdapterState.READY):
            self._violation("Configuration received while already configured.", "configuration")
            return
        if self._state != AdapterState.ANNOUNCED:
            self._violation(f"Configuration received from AMP while {self._state.value}.", "configuration")
            return

        self.handler.configuration = configuration
        self._state = AdapterState.CONFIGURED
        logger.info(f"[Core] 已收到配置，启动 Handler: {self.handler.name}")
        self.handler.start()

    def _on_label(self, label: Label) -> None:
        if self._state != AdapterState.READY:
            self._violation("Label received from AMP while not ready.", "label")
            return

        physical_label = self.handler.stimulate(label)
        confirmation = label.model_copy(update={
            "physical_label": physical_label if physical_label is not None else label.physical_label,
            "timestamp": now_ns(),
        })
        self._send(Envelope.of_label(confirmation))

    def _on_reset(self) -> None:
        if self._state != AdapterState.READY:
            self._violation("Reset received from AMP while not ready.", "reset")
            return

        logger.info("[Core] 收到重置请求")
        self.handler.reset()

    def _on_error_message(self, error: ErrorMessage) -> None:
        logger.error(f"[Core] AMP 报告错误: {error.message}")
        self._state = AdapterState.ERROR
        self._close(NORMAL_CLOSURE, error.message)

    def _on_error(self, info: str) -> None:
        logger.error(f"[Core] AMP 连接错误: {info}")
        self._send_error(info)

    def _on_close(self, code: int, reason: str) -> None:
        if code == ABNORMAL_CLOSURE:
            logger.warning(f"[Core] 连接异常关闭 ({code})。The server may not be reachable.")
        else:
            logger.info(f"[Core] 连接已关闭 (code: {code}, reason: {reason})")

        try:
            self.handler.stop()
        except Exception as e:
            logger.opt(exception=e).error(f"[Core] 停止 Handler 失败: {e}")
        self._state = AdapterState.DISCONNECTED

        if self._shutdown.cancelled():
            return
        if self.reconnect_delay > 0:
            logger.info(f"[Core] {self.reconnect_delay} 秒后重连")
            if not interruptible_sleep(self.reconnect_delay, self._shutdown):
                return

        self._reconnects += 1
        logger.info(f"[Core] 重新连接 AMP (第 {self._reconnects} 次)")
        self._start()

    def _send_ready(self) -> None:
        if not self._state.accepts_ready():
            self._violation(f"Ready signalled by handler while {self._state.value}.", "send_ready")
            return

        self._send(Envelope.of_ready())
        self._state = AdapterState.READY
        logger.info("[Core] 适配器已就绪")

    def _send_response(self, label: Label, physical_label: Optional[str], timestamp: TimestampLike) -> None:
        observed = label.model_copy(update={
            "physical_label": physical_label,
            "timestamp": to_nanoseconds(timestamp),
        })
        self._send(Envelope.of_label(observed))

    def _send_error(self, message: str) -> None:
        logger.error(f"[Core] 发送错误并关闭连接: {message}")
        self._state = AdapterState.ERROR
        self._send(Envelope.of_error(message))
        self._close(NORMAL_CLOSURE, message)

    def _violation(self, message: str, event: str) -> None:
        violation = ProtocolViolation(message, state=self._state.value, event=event)
        logger.warning(f"[Core] 协议违例: {violation.message} {violation.details}")
        self._send_error(violation.message)

    def _shutdown_tasks(self) -> None:
        try:
            self.handler.stop()
        except Exception as e:
            logger.opt(exception=e).error(f"[Core] 停止 Handler 失败: {e}")
        self._close(NORMAL_CLOSURE, "Adapter shutting down.")

    # ==================== outbound 任务 ====================

    def _send(self, envelope: Envelope) -> None:
        self._outbound.submit(
            self._write, encode(envelope), describe(envelope),
            name=f"send:{envelope.kind.value}", epoch=self._running_session.outbound,
        )

    def _close(self, code: int, reason: str) -> None:
        self._outbound.submit(
            self._close_connection, code, reason,
            name="close", epoch=self._running_session.outbound,
        )

    def _write(self, data: bytes, summary: str) -> None:
        try:
            self.broker_connection.send(data)
            logger.debug(f"[Core] 已发送: {summary}")
        except AdapterError as e:
            logger.error(f"[Core] 发送失败 ({summary}): {e.message}")

    def _close_connection(self, code: int, reason: str) -> None:
        self.broker_connection.close(code, reason)
