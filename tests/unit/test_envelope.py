# -*- coding: utf-8 -*-
"""
报文模型与编解码单元测试
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

# 添加src到路径
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

import pytest


class TestEnvelopeModel:
    """Envelope 模型测试"""

    def test_payload_must_match_kind(self):
        """kind 与负载不一致时校验失败"""
        from pydantic import ValidationError
        from core.envelope import Envelope, EnvelopeKind, ErrorMessage

        with pytest.raises(ValidationError):
            Envelope(kind=EnvelopeKind.LABEL)
        with pytest.raises(ValidationError):
            Envelope(kind=EnvelopeKind.READY, error=ErrorMessage(message="x"))

    def test_reset_and_ready_have_no_payload(self):
        """reset / ready 不带负载"""
        from core.envelope import Envelope, EnvelopeKind

        assert Envelope.of_reset().kind == EnvelopeKind.RESET
        assert Envelope.of_ready().label is None

    def test_label_envelope_keeps_correlation_and_timestamp(self):
        """标签报文编解码后保留 correlation_id 和时间戳"""
        from core.envelope import Envelope, decode, encode, parameter, stimulus

        label = stimulus("lock", [parameter("passcode", "integer", 1234)], channel="door")
        label = label.model_copy(update={"correlation_id": "c1", "timestamp": 1_700_000_000_000_000_000})

        decoded = decode(encode(Envelope.of_label(label)))

        assert decoded.label.correlation_id == "c1"
        assert decoded.label.timestamp == 1_700_000_000_000_000_000
        assert decoded.label.parameter("passcode").value.value == 1234
        assert decoded.label.parameter("missing") is None

    def test_encoded_form_omits_empty_fields(self):
        """编码结果不包含空字段"""
        import json
        from core.envelope import Envelope, encode

        data = json.loads(encode(Envelope.of_error("boom")))
        assert data == {"kind": "error", "error": {"message": "boom"}}

    def test_negative_timestamp_rejected(self):
        """时间戳不能为负"""
        from pydantic import ValidationError
        from core.envelope import Label, LabelType

        with pytest.raises(ValidationError):
            Label(type=LabelType.RESPONSE, name="opened", timestamp=-1)


class TestDecode:
    """decode 测试"""

    def test_empty_payload(self):
        """空报文"""
        from core.envelope import decode
        from core.exceptions import EnvelopeDecodeError

        with pytest.raises(EnvelopeDecodeError):
            decode(b"")

    def test_invalid_json(self):
        """非 JSON 报文"""
        from core.envelope import decode
        from core.exceptions import EnvelopeDecodeError

        with pytest.raises(EnvelopeDecodeError) as exc_info:
            decode(b"garbage")
        assert exc_info.value.message.startswith("Invalid message received")
        assert exc_info.value.details["payload_size"] == 7

    def test_unknown_kind(self):
        """未知的报文类型"""
        from core.envelope import decode
        from core.exceptions import EnvelopeDecodeError

        with pytest.raises(EnvelopeDecodeError):
            decode(b'{"kind": "teleport"}')

    def test_text_payload_accepted(self):
        """文本帧同样可以解码"""
        from core.envelope import EnvelopeKind, decode

        assert decode('{"kind": "ready"}').kind == EnvelopeKind.READY


class TestParameterValues:
    """参数与配置项"""

    def test_type_inference(self):
        """按 Python 类型推断取值类型"""
        from core.envelope import ValueType, parameter_value

        assert parameter_value(1).type == ValueType.INTEGER
        assert parameter_value("a").type == ValueType.STRING
        assert parameter_value(True).type == ValueType.BOOLEAN
        assert parameter_value(1.5).type == ValueType.DECIMAL

    def test_unsupported_type(self):
        """不支持的类型"""
        from core.envelope import parameter, parameter_value

        with pytest.raises(ValueError, match="not yet implemented"):
            parameter_value([1, 2])
        with pytest.raises(ValueError, match="not yet implemented"):
            parameter("x", "binary")

    def test_declared_parameter_uses_default_value(self):
        """声明参数使用类型默认值"""
        from core.envelope import parameter

        assert parameter("passcode", "integer").value.value == 0
        assert parameter("code", "string").value.value == ""

    def test_single_value_only(self):
        """取值只能设置一种类型"""
        from pydantic import ValidationError
        from core.envelope import ParameterValue

        with pytest.raises(ValidationError):
            ParameterValue(integer=1, string="1")

    def test_configuration_lookup(self):
        """按键读取配置值"""
        from core.envelope import config_item, configuration

        cfg = configuration(config_item("url", "ws://127.0.0.1:3001", "device url"))

        assert cfg.get("url") == "ws://127.0.0.1:3001"
        assert cfg.get("missing", "fallback") == "fallback"
        assert cfg.item("url").description == "device url"


class TestTimestamps:
    """时间戳转换"""

    def test_conversions(self):
        from core.envelope import to_nanoseconds

        assert to_nanoseconds(5) == 5
        assert to_nanoseconds(1.5) == 1_500_000_000
        assert to_nanoseconds(datetime(1970, 1, 1, 0, 0, 1, 250, tzinfo=timezone.utc)) == 1_000_250_000
        assert to_nanoseconds(None) > 0

    def test_bool_rejected(self):
        from core.envelope import to_nanoseconds

        with pytest.raises(TypeError):
            to_nanoseconds(True)
