"""
重试机制实现
支持指数退避、抖动、Retry-After、429/5xx错误识别，以及中止信号
"""

import asyncio
import re
import time
import random
from typing import TypeVar, Callable, Optional, Awaitable
import logging

from .errors import AbortError, get_error_status
from ..types.core_types import AbortSignal

logger = logging.getLogger(__name__)

T = TypeVar('T')

_STATUS_5XX = re.compile(r'\b5\d{2}\b')
_STATUS_429 = re.compile(r'\b429\b')


class RetryOptions:
    """重试配置选项"""
    def __init__(
        self,
        max_attempts: int = 5,
        initial_delay_ms: int = 5000,  # 5秒
        max_delay_ms: int = 30000,     # 30秒
        should_retry: Optional[Callable[[Exception], bool]] = None
    ):
        self.max_attempts = max_attempts
        self.initial_delay_ms = initial_delay_ms
        self.max_delay_ms = max_delay_ms
        self.should_retry = should_retry or default_should_retry


def default_should_retry(error: Exception) -> bool:
    """默认重试策略：429和5xx错误"""
    if isinstance(error, AbortError):
        return False

    status = get_error_status(error)
    if status is not None:
        return status == 429 or 500 <= status < 600

    error_message = str(error)
    if _STATUS_429.search(error_message):
        return True
    if _STATUS_5XX.search(error_message):
        return True
    return False


def is_rate_limit_error(error: Exception) -> bool:
    status = get_error_status(error)
    if status is not None:
        return status == 429
    return bool(_STATUS_429.search(str(error)))


def get_retry_after_delay_ms(error: Exception) -> Optional[int]:
    """从错误中提取Retry-After延迟时间（毫秒）"""
    retry_after = None

    response = getattr(error, 'response', None)
    if response is not None and getattr(response, 'headers', None) is not None:
        retry_after = response.headers.get('Retry-After')
    elif getattr(error, 'headers', None) is not None:
        retry_after = error.headers.get('Retry-After')

    if not retry_after:
        return None

    # 秒数
    try:
        return int(retry_after) * 1000
    except ValueError:
        pass

    # HTTP日期
    try:
        from email.utils import parsedate_to_datetime
        retry_date = parsedate_to_datetime(retry_after)
        return max(0, int((retry_date.timestamp() - time.time()) * 1000))
    except (TypeError, ValueError):
        return None


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    options: Optional[RetryOptions] = None,
    signal: Optional[AbortSignal] = None
) -> T:
    """
    使用指数退避和抖动的重试机制

    参数:
        func: 要执行的异步函数（每次尝试都会重新调用）
        options: 重试配置选项
        signal: 中止信号，触发后不再重试

    返回:
        函数执行结果

    抛出:
        不可重试的异常、最后一次尝试的异常，或 AbortError
    """
    options = options or RetryOptions()

    current_delay_ms = options.initial_delay_ms
    consecutive_429_count = 0

    for attempt in range(options.max_attempts):
        if signal is not None and signal.aborted:
            raise AbortError()

        try:
            result = await func()

            if consecutive_429_count > 0:
                logger.info("Successfully recovered from 429 errors")

            return result

        except AbortError:
            raise

        except Exception as error:
            # 已取消的请求直接抛出原始错误
            if signal is not None and signal.aborted:
                raise

            if not options.should_retry(error):
                raise

            if attempt == options.max_attempts - 1:
                logger.error(f"All {options.max_attempts} attempts failed: {error}")
                raise

            if is_rate_limit_error(error):
                consecutive_429_count += 1
                logger.warning(f"429 error (attempt {attempt + 1}/{options.max_attempts})")
            else:
                logger.warning(f"Error on attempt {attempt + 1}/{options.max_attempts}: {error}")

            retry_after_delay = get_retry_after_delay_ms(error)
            if retry_after_delay is not None:
                delay_ms = retry_after_delay
                logger.info(f"Using Retry-After delay: {delay_ms}ms")
            else:
                # 指数退避 + ±30%抖动
                jitter = current_delay_ms * 0.3 * (random.random() * 2 - 1)
                delay_ms = max(0, current_delay_ms + jitter)
                logger.info(f"Using exponential backoff delay: {delay_ms:.0f}ms")
                current_delay_ms = min(options.max_delay_ms, current_delay_ms * 2)

            await asyncio.sleep(delay_ms / 1000)

    # max_attempts <= 0
    raise ValueError("max_attempts must be at least 1")
