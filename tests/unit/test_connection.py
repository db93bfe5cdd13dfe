# -*- coding: utf-8 -*-
"""
WebSocket 连接单元测试

用假的 WebSocketApp 代替真实传输
"""

import sys
import threading
from pathlib import Path

# 添加src到路径
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

import pytest
import websocket

TIMEOUT = 2


class FakeApp:
    """模拟 websocket.WebSocketApp：run_forever 阻塞到连接结束后回调 on_close"""

    def __init__(self, url, header=None, on_open=None, on_message=None, on_error=None, on_close=None):
        self.url = url
        self.header = header
        self.on_open = on_open
        self.on_message = on_message
        self.on_error = on_error
        self.on_close = on_close
        self.sent = []
        self.close_kwargs = None
        self.run_kwargs = None
        self.send_error = None
        self.running = threading.Event()
        self._finished = threading.Event()
        self._close_code = None
        self._close_reason = None

    def run_forever(self, **kwargs):
        self.run_kwargs = kwargs
        self.running.set()
        self._finished.wait(TIMEOUT * 5)
        self.on_close(self, self._close_code, self._close_reason)

    def send(self, data, opcode=websocket.ABNF.OPCODE_TEXT):
        if self.send_error:
            raise self.send_error
        self.sent.append((data, opcode))

    def close(self, **kwargs):
        self.close_kwargs = kwargs
        self._finished.set()

    # === 测试辅助 ===

    def open(self):
        self.on_open(self)

    def receive(self, message):
        self.on_message(self, message)

    def fail(self, error):
        self.on_error(self, error)

    def drop(self, code=None, reason=None):
        self._close_code = code
        self._close_reason = reason
        self._finished.set()


class RecordingListener:
    """记录连接事件"""

    def __init__(self):
        self.events = []
        self.closed = threading.Event()

    def on_open(self):
        self.events.append(("open",))

    def on_close(self, code, reason):
        self.events.append(("close", code, reason))
        self.closed.set()

    def on_message(self, payload):
        self.events.append(("message", payload))

    def on_error(self, info):
        self.events.append(("error", info))


@pytest.fixture
def apps():
    return []


@pytest.fixture
def factory(apps):
    def _factory(*args, **kwargs):
        app = FakeApp(*args, **kwargs)
        apps.append(app)
        return app
    return _factory


@pytest.fixture
def listener():
    return RecordingListener()


class TestMessageConnection:
    """MessageConnection 测试"""

    def _connect(self, factory, listener, **kwargs):
        from core.connection import MessageConnection
        connection = MessageConnection("ws://sut.test:3001", listener, name="test", app_factory=factory, **kwargs)
        connection.connect()
        return connection

    def test_connect_starts_reader(self, factory, listener, apps):
        """connect 创建传输并在读线程中运行"""
        from core.connection import ConnectionState
        connection = self._connect(factory, listener, ping_interval=30, ping_timeout=10)

        assert connection.state == ConnectionState.OPENING
        assert len(apps) == 1
        apps[0].open()
        assert connection.state == ConnectionState.OPEN
        assert listener.events == [("open",)]
        assert apps[0].running.wait(TIMEOUT)
        assert apps[0].run_kwargs == {"ping_interval": 30, "ping_timeout": 10, "reconnect": 0}
        connection.close()

    def test_connect_while_live_raises(self, factory, listener):
        """已有活动传输时 connect 报错"""
        from core.exceptions import ConnectionStateError
        connection = self._connect(factory, listener)

        with pytest.raises(ConnectionStateError):
            connection.connect()
        connection.close()

    def test_send_uses_frame_type(self, factory, listener, apps):
        """bytes 为二进制帧，str 为文本帧"""
        connection = self._connect(factory, listener)
        apps[0].open()

        connection.send(b"\x01\x02")
        connection.send("OPEN")

        assert apps[0].sent == [
            (b"\x01\x02", websocket.ABNF.OPCODE_BINARY),
            ("OPEN", websocket.ABNF.OPCODE_TEXT),
        ]
        connection.close()

    def test_send_when_not_open_raises(self, factory, listener):
        """未打开时发送报错"""
        from core.connection import MessageConnection
        from core.exceptions import ConnectionStateError
        connection = MessageConnection("ws://sut.test:3001", listener, app_factory=factory)

        with pytest.raises(ConnectionStateError):
            connection.send("OPEN")

    def test_send_failure_raises_transport_error(self, factory, listener, apps):
        """写入失败转换为 TransportError"""
        from core.exceptions import TransportError
        connection = self._connect(factory, listener)
        apps[0].open()
        apps[0].send_error = websocket.WebSocketConnectionClosedException("gone")

        with pytest.raises(TransportError):
            connection.send("OPEN")
        connection.close()

    def test_messages_and_errors_are_forwarded(self, factory, listener, apps):
        """消息和错误转发给监听者"""
        connection = self._connect(factory, listener)
        apps[0].open()

        apps[0].receive("OPENED")
        apps[0].fail(ConnectionResetError("reset by peer"))

        assert ("message", "OPENED") in listener.events
        assert ("error", "reset by peer") in listener.events
        connection.close()

    def test_local_close_reports_requested_code(self, factory, listener, apps):
        """本地关闭且对端未回送关闭码时，上报请求的关闭码"""
        from core.connection import ConnectionState
        connection = self._connect(factory, listener)
        apps[0].open()

        connection.close(1000, "done")

        assert listener.closed.wait(TIMEOUT)
        assert listener.events[-1] == ("close", 1000, "done")
        assert apps[0].close_kwargs == {"status": 1000, "reason": b"done"}
        assert connection.state == ConnectionState.CLOSED

    def test_long_close_reason_is_truncated(self, factory, listener, apps):
        """超长关闭原因按字节截断并追加 ..."""
        connection = self._connect(factory, listener)
        apps[0].open()

        connection.close(1000, "门" * 100)

        reason = apps[0].close_kwargs["reason"]
        assert len(reason) <= 123
        assert reason.endswith(b"...")
        reason.decode("utf-8")
        assert listener.closed.wait(TIMEOUT)

    def test_remote_drop_without_code_is_abnormal(self, factory, listener, apps):
        """未收到关闭帧时上报 1006"""
        connection = self._connect(factory, listener)
        apps[0].open()

        apps[0].drop()

        assert listener.closed.wait(TIMEOUT)
        assert listener.events[-1] == ("close", 1006, "")

    def test_remote_close_code_is_reported(self, factory, listener, apps):
        """对端关闭码原样上报"""
        connection = self._connect(factory, listener)
        apps[0].open()

        apps[0].drop(1001, "server restart")

        assert listener.closed.wait(TIMEOUT)
        assert listener.events[-1] == ("close", 1001, "server restart")

    def test_close_is_idempotent(self, factory, listener, apps):
        """未打开或重复关闭都是空操作"""
        from core.connection import MessageConnection
        idle = MessageConnection("ws://sut.test:3001", listener, app_factory=factory)
        idle.close()
        assert apps == []

        connection = self._connect(factory, listener)
        apps[0].open()
        connection.close()
        assert listener.closed.wait(TIMEOUT)
        connection.close()

        assert [e for e in listener.events if e[0] == "close"] == [("close", 1000, "")]

    def test_reconnect_ignores_stale_transport(self, factory, listener, apps):
        """关闭后可以重新连接，旧传输的事件被忽略"""
        connection = self._connect(factory, listener)
        apps[0].open()
        apps[0].drop(1000, "")
        assert listener.closed.wait(TIMEOUT)

        connection.connect()
        assert len(apps) == 2
        apps[0].receive("STALE")
        apps[1].open()
        apps[1].receive("FRESH")

        assert ("message", "STALE") not in listener.events
        assert ("message", "FRESH") in listener.events
        connection.close()


class TestEndpoints:
    """BrokerConnection / DeviceConnection 测试"""

    def test_broker_sends_bearer_token(self, factory, listener, apps):
        """握手携带 Bearer 令牌"""
        from core.connection import BrokerConnection
        connection = BrokerConnection("wss://amp.test/adapters", "secret", listener, app_factory=factory)
        connection.connect()

        assert apps[0].header == {"Authorization": "Bearer secret"}
        assert connection.name == "broker"
        assert "secret" not in repr(connection)
        connection.close()

    def test_broker_sends_binary_frames(self, factory, listener, apps):
        """AMP 报文统一使用二进制帧"""
        from core.connection import BrokerConnection
        connection = BrokerConnection("wss://amp.test/adapters", "secret", listener, app_factory=factory)
        connection.connect()
        apps[0].open()

        connection.send('{"kind": "ready"}')

        assert apps[0].sent == [(b'{"kind": "ready"}', websocket.ABNF.OPCODE_BINARY)]
        connection.close()

    def test_device_sends_text_frames(self, factory, listener, apps):
        """设备消息使用文本帧"""
        from core.connection import DeviceConnection
        connection = DeviceConnection("ws://127.0.0.1:3001", listener, app_factory=factory)
        connection.connect()
        apps[0].open()

        connection.send_text("LOCK:1234")

        assert apps[0].header is None
        assert apps[0].sent == [("LOCK:1234", websocket.ABNF.OPCODE_TEXT)]
        connection.close()
