from __future__ import annotations

from typing import Any

from openai import OpenAI

from stockadvisor.config import ExplainPolicy
from stockadvisor.providers.base import ExplanationPolisher, PolishError
from stockadvisor.skills.explain import enforce_word_limit

SYSTEM_PROMPT = "You refine short financial summaries. Keep them under 150 words, factual, and neutral."


class LocalPolisher(ExplanationPolisher):
    """No rewrite; the local draft is the final explanation."""

    source = "local"
    networked = False

    def polish(self, prompt: str) -> str | None:
        return None


class OpenAIPolisher(ExplanationPolisher):
    source = "external"
    networked = True

    def __init__(self, api_key: str, policy: ExplainPolicy | None = None, client: Any | None = None) -> None:
        self.policy = policy or ExplainPolicy()
        self.client = client or OpenAI(api_key=api_key)

    def polish(self, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.policy.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=self.policy.temperature,
            max_tokens=self.policy.max_tokens,
        )
        content = ""
        if response.choices:
            content = (response.choices[0].message.content or "").strip()
        if not content:
            raise PolishError("OpenAI returned no content")
        return enforce_word_limit(content, self.policy.word_limit)
