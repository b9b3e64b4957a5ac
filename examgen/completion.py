from __future__ import annotations

from typing import Optional

from openai import AsyncOpenAI


class CompletionService:
    def __init__(self, api_key: str, model: str = "gpt-4o-mini", base_url: str = "", max_tokens: int = 8192) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self._client: Optional[AsyncOpenAI] = None
        if api_key:
            self._client = AsyncOpenAI(api_key=api_key, base_url=base_url or None)

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    async def complete(
        self,
        system: str,
        user: str,
        *,
        temperature: float = 0.5,
        image_url: Optional[str] = None,
    ) -> str:
        """Send one system + user turn; ``image_url`` is attached to the user turn as an image part."""
        if self._client is None:
            raise RuntimeError("Completion client is not configured")

        if image_url:
            user_content: object = [
                {"type": "text", "text": user},
                {"type": "image_url", "image_url": {"url": image_url}},
            ]
        else:
            user_content = user

        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user_content},
            ],
            temperature=temperature,
            max_tokens=self.max_tokens,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
