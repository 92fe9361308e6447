"""
错误报告 - 把致命错误连同请求上下文写入临时目录的JSON文件
便于用户在出错后把完整上下文附到问题反馈里
"""

import json
import logging
import tempfile
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


def _to_jsonable(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    return value


def report_error(
    error: BaseException,
    base_message: str,
    context: Any = None,
    report_type: str = "general",
    report_dir: Optional[Path] = None
) -> Optional[Path]:
    """
    写入错误报告并返回报告路径；写入失败时只记录日志，返回None
    """
    timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S-%f")
    directory = Path(report_dir) if report_dir else Path(tempfile.gettempdir())
    report_path = directory / f"rheocode-client-error-{report_type}-{timestamp}.json"

    report = {
        "error": {
            "type": type(error).__name__,
            "message": str(error),
            "stack": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
        },
    }
    if context is not None:
        report["context"] = _to_jsonable(context)

    try:
        report_path.write_text(json.dumps(report, indent=2, ensure_ascii=False, default=str), encoding="utf-8")
    except (OSError, TypeError, ValueError) as write_error:
        logger.error(f"{base_message} Additionally, failed to write error report: {write_error}")
        logger.error(f"Original error: {error}")
        return None

    logger.error(f"{base_message} Full report available at: {report_path}")
    return report_path
