"""
transformer.py — One-shot call to the Anthropic API.

The request is the action's instruction, a blank line, then the captured
text verbatim. One attempt per run; the caller reports any failure.

Requirements:
    pip install anthropic
    export ANTHROPIC_API_KEY=sk-ant-...
"""

import os

import anthropic

from .db_logger import null_log
from .errors import EmptyResponse, ModelCallFailed

# ── Configuration ─────────────────────────────────────────────────────────────

MODEL      = "claude-sonnet-4-5"
MAX_TOKENS = 2048


def build_prompt(config, text: str) -> str:
    return f"{config.prompt}\n\n{text}"


def _response_text(response) -> str:
    parts = [
        block.text for block in (response.content or [])
        if getattr(block, "type", "text") == "text"
    ]
    return "".join(parts)


class Transformer:
    def __init__(self, client=None, model: str = MODEL,
                 max_tokens: int = MAX_TOKENS, log=null_log):
        self._client    = client
        self.model      = model
        self.max_tokens = max_tokens
        self.log        = log

    @property
    def client(self):
        if self._client is None:
            api_key = os.environ.get("ANTHROPIC_API_KEY", "")
            if not api_key:
                raise ModelCallFailed(
                    "ANTHROPIC_API_KEY environment variable not set. "
                    "Export it before launching stealthai."
                )
            self._client = anthropic.Anthropic(api_key=api_key)
        return self._client

    def transform(self, config, text: str) -> str:
        prompt = build_prompt(config, text)
        self.log(f"Calling {self.model} ({len(prompt)} chars)", "info")
        try:
            response = self.client.messages.create(
                model      = self.model,
                max_tokens = self.max_tokens,
                messages   = [{"role": "user", "content": prompt}],
            )
        except anthropic.AnthropicError as exc:
            raise ModelCallFailed(f"Anthropic API error: {exc}") from exc

        result = _response_text(response).strip()
        if not result:
            raise EmptyResponse("Empty AI response")
        self.log(f'AI result: "{result[:50]}..." ({len(result)} chars)', "ok")
        return result
