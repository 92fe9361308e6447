"""
网页内容获取工具
从 prompt 中提取 URL（最多 20 个），获取内容并把 HTML 转换为文本
"""

import asyncio
import re
from typing import Dict, Any, Optional, List
from urllib.parse import urlparse

import aiohttp
from bs4 import BeautifulSoup

from ..types.tool_types import ToolResult
from ..types.core_types import AbortSignal
from .base import Tool
from ..config.base import AgentConfig
from ..utils.errors import ApiCallError
from ..utils.retry_with_backoff import retry_with_backoff, RetryOptions


URL_PATTERN = re.compile(r'https?://[^\s<>"\')\]]+')


class WebFetchTool(Tool):
    """
    网页内容获取工具
    - 支持多个 URL
    - 请求失败时做一次轻量重试（429/5xx）
    - 单个 URL 失败不影响其他 URL
    """

    URL_FETCH_TIMEOUT = 10  # 秒
    MAX_CONTENT_LENGTH = 100000
    MAX_URLS = 20

    def __init__(self, config: AgentConfig):
        super().__init__(
            name="web_fetch",
            display_name="WebFetch",
            description="Fetches content from URL(s) embedded in a prompt and returns the page text. Include up to 20 URLs (starting with http:// or https://) and instructions for processing their content.",
            parameter_schema={
                "type": "object",
                "properties": {
                    "prompt": {
                        "type": "string",
                        "description": "A prompt containing the URL(s) to fetch and instructions for processing the content"
                    }
                },
                "required": ["prompt"]
            },
            is_output_markdown=True,
            can_update_output=True
        )
        self.config = config
        self.user_agent = config.get("user_agent", "RheoCode/1.0.0")

    def validate_tool_params(self, params: Dict[str, Any]) -> Optional[str]:
        error = super().validate_tool_params(params)
        if error:
            return error
        if not self._extract_urls(params["prompt"]):
            return "The 'prompt' must contain at least one valid URL (starting with http:// or https://)."
        return None

    def get_description(self, params: Dict[str, Any]) -> str:
        prompt = params.get("prompt", "")
        preview = prompt[:100] + "..." if len(prompt) > 100 else prompt
        return f"Processing URLs and instructions from prompt: \"{preview}\""

    async def execute(
        self,
        params: Dict[str, Any],
        signal: AbortSignal,
        update_output: Optional[Any] = None
    ) -> ToolResult:
        """执行网页内容获取"""
        error = self.validate_tool_params(params)
        if error:
            return ToolResult(error=error, llm_content=f"Error: {error}")

        urls = self._extract_urls(params["prompt"])[:self.MAX_URLS]
        results = []

        for i, url in enumerate(urls):
            if signal is not None and signal.aborted:
                break
            if update_output:
                update_output(f"Fetching {i + 1}/{len(urls)}: {url}")
            try:
                content = await self._fetch_url(url, signal)
                results.append({"url": url, "content": content, "success": True})
            except (aiohttp.ClientError, ApiCallError, asyncio.TimeoutError) as e:
                results.append({"url": url, "error": str(e) or type(e).__name__, "success": False})

        success_count = len([r for r in results if r["success"]])
        if success_count == 0:
            errors = "; ".join(f"{r['url']}: {r['error']}" for r in results) or "cancelled"
            return ToolResult(error=f"Failed to fetch any content: {errors}")

        return ToolResult(
            summary=f"Fetched {success_count} of {len(urls)} URL(s)",
            llm_content=self._format_results_for_llm(results, params["prompt"]),
            return_display=self._format_results_for_display(results)
        )

    def _extract_urls(self, text: str) -> List[str]:
        """提取 URL，保持出现顺序并去重"""
        urls = []
        for url in URL_PATTERN.findall(text or ""):
            url = url.rstrip(".,;:")
            if urlparse(url).hostname and url not in urls:
                urls.append(url)
        return urls

    async def _fetch_url(self, url: str, signal: Optional[AbortSignal] = None) -> str:
        """获取单个 URL 的内容，支持轻量重试"""
        retry_options = RetryOptions(max_attempts=2, initial_delay_ms=1000, max_delay_ms=3000)

        async def fetch_with_session():
            timeout = aiohttp.ClientTimeout(total=self.URL_FETCH_TIMEOUT)
            headers = {"User-Agent": self.user_agent}
            async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        raise ApiCallError(f"HTTP {response.status} for {url}", status=response.status)
                    content = await response.text(errors="replace")
                    if "html" in (response.content_type or ""):
                        content = self._html_to_text(content)
                    return content[:self.MAX_CONTENT_LENGTH]

        return await retry_with_backoff(fetch_with_session, retry_options, signal)

    def _html_to_text(self, html: str) -> str:
        soup = BeautifulSoup(html, "html.parser")
        for tag in soup(["script", "style", "noscript"]):
            tag.decompose()
        lines = (line.strip() for line in soup.get_text(separator="\n").splitlines())
        return "\n".join(line for line in lines if line)

    def _format_results_for_llm(self, results: List[Dict], prompt: str) -> str:
        sections = [f"User request: {prompt}", ""]
        for result in results:
            if result["success"]:
                sections.append(f"--- Content from {result['url']} ---\n{result['content']}")
            else:
                sections.append(f"--- Failed to fetch {result['url']}: {result['error']} ---")
        return "\n\n".join(sections)

    def _format_results_for_display(self, results: List[Dict]) -> str:
        lines = []
        for result in results:
            if result["success"]:
                lines.append(f"✓ {result['url']} ({len(result['content'])} chars)")
            else:
                lines.append(f"✗ {result['url']}: {result['error']}")
        return "\n".join(lines)
