"""
Next speaker 判断
模型回复结束且没有工具调用时，判断应该由模型继续还是等待用户
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from .chat import AgentChat, is_function_response
from .prompts import PromptManager
from ..types.core_types import AbortSignal, Content, Part

if TYPE_CHECKING:
    from .client import AgentClient

logger = logging.getLogger(__name__)

NEXT_SPEAKER_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "reasoning": {
            "type": "string",
            "description": "Brief explanation justifying the 'next_speaker' choice based *strictly* on the applicable rule and the content/structure of the preceding turn.",
        },
        "next_speaker": {
            "type": "string",
            "enum": ["user", "model"],
            "description": "Who should speak next based *only* on the preceding turn and the decision rules",
        },
    },
    "required": ["reasoning", "next_speaker"],
}


async def check_next_speaker(
    chat: AgentChat,
    client: "AgentClient",
    signal: Optional[AbortSignal] = None
) -> Optional[Dict[str, str]]:
    """
    返回 {"reasoning": ..., "next_speaker": "user" | "model"}，无法判断时返回 None

    不需要调用模型的情况：
    - 历史为空
    - 最后一条是工具返回结果：模型需要处理结果
    - 最后一条是空的模型回合：模型需要重新回答
    - 精选历史最后一条不是模型回合
    """
    curated_history = chat.get_history(curated=True)
    if not curated_history:
        return None

    comprehensive_history = chat.get_history()
    if not comprehensive_history:
        return None

    last_comprehensive = comprehensive_history[-1]
    if is_function_response(last_comprehensive):
        return {
            "reasoning": "The last message was a function response, so the model should speak next.",
            "next_speaker": "model",
        }

    if last_comprehensive.role == "model" and not last_comprehensive.parts:
        return {
            "reasoning": "The last message was a filler model message with no content (nothing for user to act on), model should speak next.",
            "next_speaker": "model",
        }

    if curated_history[-1].role != "model":
        return None

    contents = curated_history + [
        Content(role="user", parts=[Part(text=PromptManager().get_next_speaker_prompt())])
    ]

    try:
        parsed = await client.generate_json(contents, NEXT_SPEAKER_SCHEMA, signal)
    except Exception as error:
        logger.warning(f"Failed to talk to the model to decide the next speaker: {error}")
        return None

    if (
        isinstance(parsed, dict)
        and parsed.get("next_speaker") in ("user", "model")
    ):
        return {"reasoning": str(parsed.get("reasoning", "")), "next_speaker": parsed["next_speaker"]}
    return None
