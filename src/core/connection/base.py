# -*- coding: utf-8 -*-
"""
面向消息的连接（WebSocket）

MessageConnection 持有唯一一个活动传输（websocket.WebSocketApp），
在独立的读线程中运行 run_forever()：解析帧、应答心跳，并把
open / close / message / error 四种事件转发给监听者。
读线程中的任何传输异常都不会逃逸，只会变成 error / close 事件。
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Optional, Tuple

import websocket
from loguru import logger

from core.exceptions import ConnectionStateError, TransportError
from utils.text import truncate_utf8
from .interface import (
    ABNORMAL_CLOSURE,
    NORMAL_CLOSURE,
    ConnectionListener,
    ConnectionState,
    Payload,
)

AppFactory = Callable[..., Any]


class MessageConnection:
    """WebSocket 连接生命周期管理器（控制面与设备端共用）"""

    def __init__(
        self,
        url: str,
        listener: Optional[ConnectionListener] = None,
        *,
        name: str = "connection",
        header: Optional[Dict[str, str]] = None,
        ping_interval: float = 0,
        ping_timeout: Optional[float] = None,
        app_factory: Optional[AppFactory] = None,
    ):
        """
        Args:
            url: ws:// 或 wss:// 地址
            listener: 事件监听者
            name: 连接名（日志和线程名）
            header: 握手时附加的 HTTP 头
            ping_interval: 心跳间隔（秒），0 表示不发送心跳
            ping_timeout: 心跳超时（秒）
            app_factory: 传输构造函数，默认 websocket.WebSocketApp
        """
        self.url = url
        self.name = name
        self.listener = listener
        self._header = dict(header or {})
        self._ping_interval = ping_interval
        self._ping_timeout = ping_timeout
        self._app_factory = app_factory or websocket.WebSocketApp

        self._lock = threading.RLock()
        self._state = ConnectionState.CREATED
        self._app: Any = None
        self._reader: Optional[threading.Thread] = None
        self._close_request: Optional[Tuple[int, str]] = None

    # === 查询 ===

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == ConnectionState.OPEN

    # === 能力接口 ===

    def connect(self) -> None:
        """建立连接并启动读线程（立即返回，结果通过 on_open / on_close 通知）

        Raises:
            ConnectionStateError: 已经持有活动的传输
        """
        with self._lock:
            if self._state.is_live():
                raise ConnectionStateError(
                    f"Connection {self.name} is already {self._state.value}.",
                    endpoint=self.name,
                    state=self._state.value,
                )

            self._close_request = None
            app = self._app_factory(
                self.url,
                header=self._header or None,
                on_open=self._handle_open,
                on_message=self._handle_message,
                on_error=self._handle_error,
                on_close=self._handle_close,
            )
            self._app = app
            self._state = ConnectionState.OPENING
            self._reader = threading.Thread(
                target=self._run, args=(app,), name=f"{self.name}-reader", daemon=True
            )
            self._reader.start()

        logger.info(f"[{self.name}] 正在连接: {self.url}")

    def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        """关闭连接；未打开时什么也不做

        超过控制帧上限的 reason 会被截断并追加截断标记。
        """
        with self._lock:
            if self._state not in (ConnectionState.OPENING, ConnectionState.OPEN):
                logger.debug(f"[{self.name}] 连接未打开，忽略关闭请求 (状态: {self._state.value})")
                return
            reason = truncate_utf8(reason or "")
            self._close_request = (code, reason)
            self._state = ConnectionState.CLOSING
            app = self._app

        logger.info(f"[{self.name}] 关闭连接 (code: {code}, reason: {reason})")
        try:
            app.close(status=code, reason=reason.encode("utf-8"))
        except Exception as e:
            # 读线程会以 error / close 事件收尾
            logger.warning(f"[{self.name}] 关闭连接失败: {e}")

    def send(self, data: Payload) -> None:
        """发送一帧：bytes 为二进制帧，str 为文本帧

        Raises:
            ConnectionStateError: 连接未打开
            TransportError: 写入失败
        """
        with self._lock:
            if self._state != ConnectionState.OPEN:
                raise ConnectionStateError(
                    f"Connection {self.name} is not open.",
                    endpoint=self.name,
                    state=self._state.value,
                )
            app = self._app

        try:
            if isinstance(data, (bytes, bytearray)):
                app.send(bytes(data), websocket.ABNF.OPCODE_BINARY)
            else:
                app.send(data, websocket.ABNF.OPCODE_TEXT)
        except (websocket.WebSocketException, OSError) as e:
            raise TransportError(f"Failed to send on {self.name}: {e}", endpoint=self.name) from e

    # === 读线程 ===

    def _run(self, app: Any) -> None:
        """读线程：阻塞在 run_forever 中直到连接结束"""
        try:
            app.run_forever(
                ping_interval=self._ping_interval,
                ping_timeout=self._ping_timeout,
                reconnect=0,
            )
        except Exception as e:
            logger.error(f"[{self.name}] 读线程异常: {e}")
            self._handle_error(app, e)

        # run_forever 正常情况下会回调 on_close；这里兜底，重复调用会被忽略
        self._handle_close(app, None, None)

    def _is_current(self, app: Any) -> bool:
        return app is not None and app is self._app

    def _handle_open(self, app: Any) -> None:
        with self._lock:
            if not self._is_current(app) or self._state != ConnectionState.OPENING:
                return
            self._state = ConnectionState.OPEN

        logger.info(f"[{self.name}] 已连接: {self.url}")
        if self.listener:
            self.listener.on_open()

    def _handle_message(self, app: Any, message: Payload) -> None:
        if not self._is_current(app):
            return
        if self.listener:
            self.listener.on_message(message)

    def _handle_error(self, app: Any, error: Any) -> None:
        if not self._is_current(app):
            return
        info = str(error) or type(error).__name__
        logger.warning(f"[{self.name}] 传输错误: {info}")
        if self.listener:
            self.listener.on_error(info)

    def _handle_close(self, app: Any, code: Optional[int], reason: Any) -> None:
        with self._lock:
            if not self._is_current(app):
                return
            requested = self._close_request
            self._state = ConnectionState.CLOSED
            self._app = None

        if code is None:
            code, reason = requested if requested else (ABNORMAL_CLOSURE, "")
        if isinstance(reason, (bytes, bytearray)):
            reason = bytes(reason).decode("utf-8", errors="replace")
        reason = reason or ""

        logger.info(f"[{self.name}] 连接已关闭 (code: {code}, reason: {reason})")
        if self.listener:
            self.listener.on_close(code, reason)
