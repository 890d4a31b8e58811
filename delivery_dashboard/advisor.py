"""
Advisory layer backed by a text-completion model.

Three entry points, all coroutines that never raise provider failures:

    get_corrective_actions(alert, provider)        -> list[str]
    get_conversational_insight(prompt, data, ...)  -> str
    generate_executive_brief(data, alerts, week)   -> str

Each one converts ProviderError or an unusable reply into fixed fallback
content from config, so the aggregation/alerting pipeline never waits on or
breaks because of the model.

Providers implement TextProvider.generate(prompt). GeminiProvider talks to
the Google Gen AI API; StaticProvider returns a canned reply for tests and
offline demos.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from google import genai

from .config import (
    BRIEF_ERROR_MESSAGE,
    FALLBACK_RECOMMENDATIONS,
    INSIGHT_ERROR_MESSAGE,
    KPI_REGISTRY,
    NO_DATA_MESSAGE,
    get_api_key,
    get_model_name,
)
from .errors import ProviderError
from .models import Alert, KpiDataPoint
from .transforms import kpi_points_to_frame

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

class TextProvider(ABC):
    """Abstract text-completion provider."""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Return the model's text reply.

        Raises:
            ProviderError: on any transport, auth or empty-response failure.
        """


class GeminiProvider(TextProvider):
    """Google Gen AI (Gemini) provider using the SDK's async client.

    The client is created on first use, so constructing the provider never
    fails; a missing API key surfaces as ProviderError at request time.
    """

    def __init__(self, model: str | None = None, api_key: str | None = None) -> None:
        self._model = model or get_model_name()
        self._api_key = api_key
        self._client: genai.Client | None = None

    def _get_client(self) -> genai.Client:
        if self._client is None:
            key = self._api_key or get_api_key()
            if not key:
                raise ProviderError("API key not configured. Set GEMINI_API_KEY.")
            self._client = genai.Client(api_key=key)
        return self._client

    async def generate(self, prompt: str) -> str:
        client = self._get_client()
        try:
            response = await client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
            )
        except Exception as exc:  # SDK raises transport, API and auth errors alike
            raise ProviderError(f"Gemini request failed: {exc}") from exc

        text = (response.text or "").strip()
        if not text:
            raise ProviderError("Gemini returned an empty response")
        return text


class StaticProvider(TextProvider):
    """Deterministic provider returning a fixed reply.

    Every prompt it receives is kept in `prompts` for inspection.
    """

    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


# ---------------------------------------------------------------------------
# Loading-state guard
# ---------------------------------------------------------------------------

class RequestGuard:
    """Allows at most one outstanding request per key.

    Requests under different keys are independent.
    """

    def __init__(self) -> None:
        self._pending: set[str] = set()

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    def acquire(self, key: str) -> bool:
        if key in self._pending:
            return False
        self._pending.add(key)
        return True

    def release(self, key: str) -> None:
        self._pending.discard(key)


async def run_guarded(
    guard: RequestGuard,
    key: str,
    func: Callable[..., Awaitable[Any]],
    *args: Any,
) -> Any:
    """Await func(*args) unless a request under `key` is already pending.

    Returns None (without calling func) for a duplicate request.
    """
    if not guard.acquire(key):
        logger.info("Request '%s' already in progress; ignoring duplicate", key)
        return None
    try:
        return await func(*args)
    finally:
        guard.release(key)


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

def _format_value(kpi, value: float) -> str:
    unit = KPI_REGISTRY[kpi]["unit"]
    if unit == "%":
        return f"{value}%"
    if unit == "score":
        return f"{value} / 5"
    return f"{value} {unit}"


def build_corrective_actions_prompt(alert: Alert) -> str:
    direction = KPI_REGISTRY[alert.kpi]["direction"]
    movement = "dropped to" if direction == "higher_is_better" else "risen to"
    side = "below" if direction == "higher_is_better" else "above"
    return f"""
You are an expert in logistics and supply chain management acting as an AI agent.
The {alert.kpi.value} KPI for the "{alert.region.value}" region has {movement} {_format_value(alert.kpi, alert.value)}, which is {side} the target of {_format_value(alert.kpi, alert.target)}.
This occurred in week {alert.week}.

Based on this deviation, provide a concise list of 2-3 specific, actionable, and distinct recommendations to investigate and resolve this issue.
Examples of actions include 'Initiate a review of last-mile delivery routes for this region', 'Escalate to the regional logistics manager for immediate investigation', or 'Analyze carrier performance data for potential delays'.

Format the output as a valid JSON array of strings. For example:
["Action 1", "Action 2", "Action 3"]
""".strip()


def build_insight_prompt(question: str, data: list[KpiDataPoint]) -> str:
    table = kpi_points_to_frame(data).to_csv(index=False)
    return f"""
You are a delivery operations analyst. Answer the user's question using only the weekly KPI data below.
Each row is one region, ISO week and KPI with its computed value and target.
Be concise, cite regions, weeks and values, and use Markdown lists where helpful.

KPI data (CSV):
{table}
Question: {question}
""".strip()


def build_brief_prompt(
    data: list[KpiDataPoint],
    alerts: list[Alert],
    week: int,
) -> str:
    current = [p for p in data if p.week == week]
    previous = [p for p in data if p.week == week - 1]
    week_alerts = [a for a in alerts if a.week == week]

    alert_lines = "\n".join(
        f"- {a.region.value}: {a.kpi.value} at {_format_value(a.kpi, a.value)} "
        f"(target {_format_value(a.kpi, a.target)})"
        for a in week_alerts
    ) or "- None"

    return f"""
You are writing the weekly delivery performance brief for senior operations stakeholders.
Report on Week {week} only; use Week {week - 1} solely for trend comparison.

Week {week} KPI data (CSV):
{kpi_points_to_frame(current).to_csv(index=False)}
Week {week - 1} KPI data (CSV):
{kpi_points_to_frame(previous).to_csv(index=False) if previous else "No data for the previous week."}
Open alerts for Week {week}:
{alert_lines}

Write the brief in Markdown with exactly these sections:
## Week {week} Executive Brief
### Headline
### Regional Performance
### Trends vs Week {week - 1}
### Open Risks
### Recommended Focus for Next Week
Keep it under 300 words.
""".strip()


# ---------------------------------------------------------------------------
# Boundary functions
# ---------------------------------------------------------------------------

def parse_action_list(raw: str) -> list[str]:
    """Extract 2-3 action strings from a model reply.

    Markdown code fences are removed before JSON parsing. At most three
    non-empty strings are kept.

    Raises:
        ValueError: not a JSON array of strings, or fewer than two actions.
    """
    cleaned = _CODE_FENCE.sub("", raw.strip())
    actions = json.loads(cleaned)
    if not isinstance(actions, list) or not all(isinstance(a, str) for a in actions):
        raise ValueError("expected a JSON array of strings")
    actions = [a.strip() for a in actions if a.strip()][:3]
    if len(actions) < 2:
        raise ValueError(f"expected 2-3 actions, got {len(actions)}")
    return actions


async def get_corrective_actions(alert: Alert, provider: TextProvider) -> list[str]:
    """Ask the provider for 2-3 remediation actions for an alert.

    Falls back to FALLBACK_RECOMMENDATIONS on any failure.
    """
    try:
        raw = await provider.generate(build_corrective_actions_prompt(alert))
        return parse_action_list(raw)
    except (ProviderError, ValueError) as exc:
        logger.warning("Corrective actions unavailable for %s: %s", alert.identity, exc)
        return list(FALLBACK_RECOMMENDATIONS)


async def request_corrective_actions(
    alert: Alert,
    provider: TextProvider,
    guard: RequestGuard,
) -> list[str] | None:
    """get_corrective_actions, or None if one is already pending for this alert."""
    return await run_guarded(guard, alert.identity, get_corrective_actions, alert, provider)


async def get_conversational_insight(
    prompt: str,
    data: list[KpiDataPoint],
    provider: TextProvider,
) -> str:
    """Answer a free-text question about the loaded KPI data."""
    if not data:
        return NO_DATA_MESSAGE
    try:
        return await provider.generate(build_insight_prompt(prompt, data))
    except ProviderError as exc:
        logger.warning("Conversational insight failed: %s", exc)
        return INSIGHT_ERROR_MESSAGE


async def generate_executive_brief(
    data: list[KpiDataPoint],
    alerts: list[Alert],
    week: int,
    provider: TextProvider,
) -> str:
    """Markdown brief for one week, with the previous week as trend context."""
    if not data:
        return NO_DATA_MESSAGE
    if not any(p.week == week for p in data):
        return f"No data available for Week {week}."
    try:
        return await provider.generate(build_brief_prompt(data, alerts, week))
    except ProviderError as exc:
        logger.warning("Executive brief for week %d failed: %s", week, exc)
        return BRIEF_ERROR_MESSAGE
