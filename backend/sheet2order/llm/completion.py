"""
生成模型客户端 - Google Gen AI SDK 流式调用

职责：
1. 提示词 + 可选内联图片 → 请求 text/plain 输出
2. 消费流式分片直到结束并拼接；无文本的分片跳过
3. 网络/服务失败或空响应 → CompletionError（不重试）

依赖：
- google-genai: generate_content_stream
"""

from __future__ import annotations

import logging

from google import genai
from google.genai import types

from ..config import LLMConfig, get_config
from ..interfaces import CompletionError, ICompletionClient
from ..models import PageImage

logger = logging.getLogger(__name__)


class GeminiCompletionClient(ICompletionClient):
    """Gemini 流式客户端"""

    def __init__(self, config: LLMConfig | None = None):
        self.config = config or get_config().llm
        self._client: genai.Client | None = None

    @property
    def client(self) -> genai.Client:
        # 首次调用时再建连接，便于无密钥环境下构造
        if self._client is None:
            self._client = genai.Client(
                api_key=self.config.api_key,
                http_options=types.HttpOptions(timeout=self.config.timeout_sec * 1000),
            )
        return self._client

    def complete(self, prompt: str, image: PageImage | None = None) -> str:
        parts = [types.Part.from_text(text=prompt)]
        if image is not None:
            parts.append(types.Part.from_bytes(data=image.data, mime_type=image.mime_type))

        logger.info(
            f"调用生成模型: {self.config.model}, 提示词 {len(prompt)} 字符"
            + (f", 附图 {len(image.data)} 字节" if image is not None else "")
        )

        chunks: list[str] = []
        try:
            stream = self.client.models.generate_content_stream(
                model=self.config.model,
                contents=[types.Content(role="user", parts=parts)],
                config=types.GenerateContentConfig(response_mime_type="text/plain"),
            )
            for chunk in stream:
                text = chunk.text
                if text:
                    chunks.append(text)
        except Exception as e:
            raise CompletionError(f"生成模型调用失败: {e}") from e

        output = "".join(chunks)
        if not output.strip():
            raise CompletionError("生成模型返回空响应")

        logger.info(f"生成模型返回 {len(output)} 字符（{len(chunks)} 个分片）")
        return output
