# _logging_config.py
"""
Logging Configuration
케이지 도구 전체에서 사용하는 'cagetool' 로거를 설정합니다.
"""
import logging
import sys
from typing import Optional

LOGGER_NAME = "cagetool"


def get_logger(module_name: str) -> logging.Logger:
    """모듈 이름(_mvc 등)을 'cagetool.mvc' 형태의 하위 로거로 변환합니다."""
    return logging.getLogger(f"{LOGGER_NAME}.{module_name.lstrip('_')}")


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    'cagetool' 네임스페이스의 로거를 설정합니다.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: 로그를 저장할 파일 경로 (선택)
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # 재설정 시 핸들러 중복 방지
    if logger.hasHandlers():
        logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info("Logging initialized.")
