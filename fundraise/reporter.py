"""Narrative pipeline report generated by an LLM.

The report is advisory only: it reads the same snapshot and stats the
dashboard shows and never feeds back into them. A failed call surfaces as
``LLMCallError`` to the caller; the stats stay valid either way.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import date
from typing import Any

from fundraise.schemas import Investor, PipelineStats
from fundraise.seed import REFERENCE_DATE
from fundraise.store import dump_investors

log = logging.getLogger(__name__)

EMPTY_REPORT = "분석 결과를 생성할 수 없습니다."


class LLMCallError(Exception):
    """LLM call failed or returned no usable output."""
    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = """\
You are a fundraising assistant for a Korean startup called Glorang (글로랑). \
You write short, professional, action-oriented pipeline updates for the CEO.\
"""

REPORT_TEMPLATE = """\
Current Date: {today}

Analyze the following pipeline data and targets:

Targets:
- 1st Target: {target_primary:g}억 KRW
- Final Target: {target_final:g}억 KRW

Current Stats:
- Verbal Commits: {total_verbal:g}억
- High Interest: {total_high_interest:g}억
- Weighted Expected Value: {weighted_total:.1f}억

Pipeline Details (JSON):
{pipeline}

Please provide a concise strategic update in Korean adhering to this format:
1. **Pipeline Summary**: Brief status of confirmed vs target.
2. **Key Blockers**: Specifically mention the Fintech Thesis dependency if unresolved.
3. **Recommended Actions**: Specific next steps for the CEO and Kyung-hoon.

Keep it professional, concise, and action-oriented.
"""


def build_report_prompt(records: list[Investor], stats: PipelineStats, today: date | None = None) -> str:
    return REPORT_TEMPLATE.format(
        today=(today or REFERENCE_DATE).isoformat(),
        target_primary=stats.target_primary,
        target_final=stats.target_final,
        total_verbal=stats.total_verbal,
        total_high_interest=stats.total_high_interest,
        weighted_total=stats.weighted_total,
        pipeline=json.dumps(dump_investors(records), indent=2, ensure_ascii=False),
    )


# ---------------------------------------------------------------------------
# LLM Client
# ---------------------------------------------------------------------------


class LLMClient:
    """Unified async LLM client supporting Anthropic and OpenAI."""

    def __init__(
        self,
        provider: str | None = None,
        model: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        temperature: float = 0.7,
    ):
        self.provider = provider or os.environ.get("LLM_PROVIDER", "anthropic")
        self.model = model or os.environ.get("LLM_MODEL", "")
        self.temperature = temperature
        self._api_key = api_key
        self._base_url = base_url
        self._client: Any = None
        self._init_client()

    def _init_client(self) -> None:
        if self.provider == "anthropic":
            import anthropic
            self.model = self.model or "claude-haiku-4-5-20251001"
            self._client = anthropic.AsyncAnthropic(
                api_key=self._api_key or os.environ.get("ANTHROPIC_API_KEY")
            )
        elif self.provider in ("openai", "openai_compatible"):
            import openai
            self.model = self.model or "gpt-4o-mini"
            kwargs: dict[str, Any] = {}
            key = self._api_key or os.environ.get("OPENAI_API_KEY")
            if key:
                kwargs["api_key"] = key
            url = self._base_url or os.environ.get("OPENAI_BASE_URL")
            if url:
                kwargs["base_url"] = url
            self._client = openai.AsyncOpenAI(**kwargs)
        else:
            raise ValueError(f"Unknown LLM provider: {self.provider!r}")

    async def complete(self, system: str, user: str) -> str:
        """Send system+user message to the LLM, return the reply text."""
        try:
            if self.provider == "anthropic":
                response = await self._client.messages.create(
                    model=self.model,
                    max_tokens=2048,
                    temperature=self.temperature,
                    system=system,
                    messages=[{"role": "user", "content": user}],
                )
                return "".join(
                    block.text for block in response.content if getattr(block, "type", "text") == "text"
                ).strip()
            response = await self._client.chat.completions.create(
                model=self.model,
                max_tokens=2048,
                temperature=self.temperature,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
            )
            return (response.choices[0].message.content or "").strip()
        except Exception as exc:
            raise LLMCallError(f"LLM API call failed: {exc}", retryable=True) from exc


async def generate_report(
    records: list[Investor],
    stats: PipelineStats,
    client: LLMClient | None = None,
    today: date | None = None,
) -> str:
    """Ask the LLM for a strategic pipeline update (Markdown, Korean)."""
    if client is None:
        try:
            client = LLMClient()
        except Exception as exc:
            raise LLMCallError(f"LLM client unavailable: {exc}", retryable=False) from exc
    prompt = build_report_prompt(records, stats, today)
    text = await client.complete(SYSTEM_PROMPT, prompt)
    if not text:
        log.warning("LLM returned an empty report (model=%s)", client.model)
        return EMPTY_REPORT
    return text
