# -*- coding: utf-8 -*-
"""SmartDoor 被测系统 Handler"""

from typing import Callable, List, Optional

from loguru import logger

from core.connection import DeviceConnection, Payload
from core.envelope import Configuration, Label, config_item, configuration, now_ns, parameter, response, stimulus
from core.exceptions import HandlerError
from core.handler import Handler
from utils.text import one_line
from .converters import SmartDoorConverter

SMARTDOOR_URL = "ws://127.0.0.1:3001"
CHANNEL = "door"

STIMULI = ["open", "close"]
STIMULI_PASSCODE = ["lock", "unlock"]
RESPONSES = [
    "opened", "closed", "locked", "unlocked",
    "invalid_command", "invalid_passcode", "incorrect_passcode", "shut_off",
]

RESET_COMMAND = "RESET"
RESET_PERFORMED = "RESET_PERFORMED"  # 设备对 RESET 的应答，不是真正的响应

ConnectionFactory = Callable[..., DeviceConnection]


class SmartDoorHandler(Handler):
    """
    SmartDoor Handler

    通过 WebSocket 文本帧与独立运行的 SmartDoor 设备通信，
    同时作为设备连接的监听者。
    """

    def __init__(self, connection_factory: Optional[ConnectionFactory] = None):
        self._connection_factory = connection_factory or DeviceConnection
        self._connection: Optional[DeviceConnection] = None
        self._labels = self._build_labels()
        self.converter = SmartDoorConverter(self._labels, channel=CHANNEL)
        super().__init__()

    @property
    def name(self) -> str:
        return "smartdoor"

    def default_configuration(self) -> Configuration:
        return configuration(
            config_item("url", SMARTDOOR_URL, "WebSocket URL for standalone SmartDoor SUT"),
        )

    @staticmethod
    def _build_labels() -> List[Label]:
        labels = [stimulus(name, channel=CHANNEL) for name in STIMULI]
        labels += [
            stimulus(name, [parameter("passcode", "integer")], channel=CHANNEL)
            for name in STIMULI_PASSCODE
        ]
        labels += [response(name, channel=CHANNEL) for name in RESPONSES]
        # 额外的激励：重置设备
        labels.append(stimulus("reset", channel=CHANNEL))
        return labels

    def supported_labels(self) -> List[Label]:
        return list(self._labels)

    # === 生命周期 ===

    def start(self) -> None:
        if self._connection is not None:
            return

        url = self.configuration.get("url", SMARTDOOR_URL)
        logger.info(f"[SmartDoor] 启动，连接设备: {url}")
        self._connection = self._connection_factory(url, self)
        self._connection.connect()
        # 连接打开后由 on_open 通知 AMP 就绪

    def stop(self) -> None:
        if self._connection is None:
            return

        logger.info("[SmartDoor] 停止测试，关闭设备连接")
        connection, self._connection = self._connection, None
        connection.close()

    def reset(self) -> None:
        logger.info("[SmartDoor] 重置设备")
        if self._connection is not None and self._connection.is_open:
            # 复用现有连接
            self._send_reset()
            self._require_core().send_ready()
        else:
            self.stop()
            self.start()

    def stimulate(self, label: Label) -> Optional[str]:
        message = self.converter.label_to_message(label)
        logger.info(f"[SmartDoor] 执行激励: {label.name} -> {message}")
        self._send(message)
        return message

    # === 设备连接事件（设备读线程） ===

    def on_open(self) -> None:
        logger.info("[SmartDoor] 已连接设备")
        self._send_reset()
        self._require_core().send_ready()

    def on_close(self, code: int, reason: str) -> None:
        logger.info(f"[SmartDoor] 设备连接已关闭 (code: {code}, reason: {reason})")

    def on_message(self, payload: Payload) -> None:
        message = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else payload
        logger.info(f"[SmartDoor] 收到设备消息: {one_line(message)}")
        if not message or message == RESET_PERFORMED:
            return

        label = self.converter.message_to_label(message)
        self._require_core().send_response(label, message, now_ns())

    def on_error(self, info: str) -> None:
        message = f"Exception occurred: {info}"
        logger.warning(f"[SmartDoor] {message}")
        self._require_core().send_error(message)

    # === 内部方法 ===

    def _send_reset(self) -> None:
        logger.info(f"[SmartDoor] 发送 '{RESET_COMMAND}' 到设备")
        self._send(RESET_COMMAND)

    def _send(self, message: str) -> None:
        if self._connection is None:
            raise HandlerError("SmartDoor SUT is not connected.")
        self._connection.send_text(message)
