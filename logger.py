import sys
from typing import Optional
from loguru import logger as _logger

_CONFIGURED = False

# stdoutはMCPのstdioトランスポートが使うため、ログは必ずstderrへ出す
LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line} - {message}"
)


def configure_logger(level: Optional[str] = None) -> None:
    """Loguruのロガーを設定する

    levelを省略した呼び出しは、設定済みであれば何もしない。

    Args:
        level: ログレベル（省略時はINFO）
    """
    global _CONFIGURED
    if _CONFIGURED and level is None:
        return

    _logger.remove()
    _logger.add(sys.stderr, level=level or "INFO", format=LOG_FORMAT, colorize=False)
    _CONFIGURED = True


def get_logger():
    """設定済みのロガーを返す（未設定なら既定値で設定する）"""
    configure_logger()
    return _logger
