"""
로깅 설정
"""

import logging
import sys


class ColoredFormatter(logging.Formatter):
    """컬러 로그 포매터"""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'RESET': '\033[0m'      # Reset
    }

    def format(self, record):
        log_color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset_color = self.COLORS['RESET']
        formatted = super().format(record)
        return f"{log_color}{formatted}{reset_color}"


def setup_logging(level: str = "INFO", enable_colors: bool = True, log_file: str | None = None) -> None:
    """로깅 설정"""
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # 기존 핸들러 제거
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    fmt = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    if enable_colors:
        formatter = ColoredFormatter(fmt, datefmt='%Y-%m-%d %H:%M:%S')
    else:
        formatter = logging.Formatter(fmt, datefmt='%Y-%m-%d %H:%M:%S')

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
        except OSError as e:
            root_logger.warning("File logging disabled: %s", e)
        else:
            file_handler.setLevel(log_level)
            file_handler.setFormatter(logging.Formatter(
                fmt + ' - %(pathname)s:%(lineno)d',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            root_logger.addHandler(file_handler)

    # 특정 로거 레벨 설정
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("launcher").setLevel(log_level)

    logging.getLogger(__name__).info("Logging initialized (level=%s)", level.upper())
