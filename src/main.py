# -*- coding: utf-8 -*-
"""
插件适配器 - 连接 AMP 与被测系统
主入口

运行方式:
    python src/main.py <name> <url> <token>
    python src/main.py --config adapter.json
    PA_NAME=door PA_URL=wss://amp.example.com/adapters PA_TOKEN=... python src/main.py
"""

from __future__ import annotations
import sys
import signal
import argparse
import threading
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger


# 设置Python路径
def setup_path():
    """设置Python路径"""
    script_path = Path(__file__).resolve()
    src_dir = script_path.parent
    project_root = src_dir.parent

    if str(src_dir) not in sys.path:
        sys.path.insert(0, str(src_dir))

    return project_root

PROJECT_ROOT = setup_path()

from core import AdapterCore, __version__  # noqa: E402
from core.connection import BrokerConnection  # noqa: E402
from core.exceptions import AdapterError  # noqa: E402
from services.handlers import get_handler_registry  # noqa: E402
from services.logger import configure_logger  # noqa: E402
from services.unified_config import AdapterConfig, load_config, validate_config_on_startup  # noqa: E402

USAGE = "usage: adapter <name> <url> <token>"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="adapter",
        description=f"插件适配器 v{__version__} - 连接 AMP 与被测系统",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  python src/main.py door wss://amp.example.com/adapters TOKEN
  python src/main.py --config adapter.json --log-level DEBUG
        """
    )

    # 三个位置参数要么全部给出，要么全部省略（从配置/环境变量读取）
    parser.add_argument("target", nargs="*", metavar="name url token",
                        help="适配器名称、AMP 地址、AMP 令牌")

    parser.add_argument("--handler", help="被测系统 Handler (默认: smartdoor)")
    parser.add_argument("--config", help="JSON 配置文件路径")
    parser.add_argument("--log-level", dest="log_level", help="日志级别 (默认: INFO)")
    parser.add_argument("--reconnect-delay", dest="reconnect_delay", type=float,
                        help="连接关闭后重连前的等待秒数 (默认: 0)")
    return parser


def parse_overrides(argv=None):
    """解析命令行参数

    Returns:
        (配置文件路径, 覆盖项)；位置参数个数不对时返回 None
    """
    args = build_parser().parse_args(argv)
    if len(args.target) not in (0, 3):
        return None

    overrides = {
        "handler": args.handler,
        "log_level": args.log_level,
        "reconnect_delay": args.reconnect_delay,
    }
    if args.target:
        overrides["name"], overrides["url"], overrides["token"] = args.target
    return args.config, overrides


def create_adapter(config: AdapterConfig) -> AdapterCore:
    """按配置组装 Handler、AMP 连接和协议引擎"""
    handler = get_handler_registry().create(config.handler)
    broker = BrokerConnection(
        config.url,
        config.token,
        ping_interval=config.ping_interval,
        ping_timeout=config.ping_timeout,
    )
    return AdapterCore(config.name, broker, handler, reconnect_delay=config.reconnect_delay)


def main(argv=None):
    """主函数"""
    load_dotenv()

    parsed = parse_overrides(argv)
    if parsed is None:
        print(USAGE, file=sys.stderr)
        return 1
    config_file, overrides = parsed

    try:
        config = load_config(config_file, overrides)
    except AdapterError as e:
        print(f"[错误] {e.message}", file=sys.stderr)
        return 1

    configure_logger(config.log_level, config.logs_dir or None)
    if not validate_config_on_startup(config):
        return 1

    adapter = create_adapter(config)
    stop_event = threading.Event()

    def _on_signal(signum, frame):
        logger.info(f"收到信号 {signum}，准备退出")
        stop_event.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    logger.info(f"插件适配器 v{__version__} 启动: {config.name} (handler: {config.handler})")
    adapter.start()
    while not stop_event.wait(1.0):
        pass

    adapter.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
