"""Turn a consensus schedule into report text."""

import math
from dataclasses import dataclass
from datetime import date
from typing import Optional

import structlog

from cli.retry import llm_retry
from forecast.clock import format_clock
from forecast.conditions import species_notes
from forecast.models import Conditions, ConsensusSchedule
from llm import LLMError, LLMProvider, LLMRateLimitError, create_llm_provider
from observability import metrics

from .errors import GenerationFailure

logger = structlog.get_logger().bind(source="report_writer")

SPECIES = ("bass", "walleye", "musky", "perch", "crappie", "bluegill")

SYSTEM_PROMPT = (
    "You are writing a daily fishing report for {location}. Search for the most "
    "current fishing information and create a comprehensive report covering all "
    "major fish species. Include specific locations, depths, techniques, and current "
    "conditions. Write as one flowing professional report."
)


@dataclass
class ReportContent:
    title: str
    body: str
    cost_units: int = 0
    source: str = "template"


def report_title(day: date) -> str:
    """``Daily Fishing Report - Saturday, October 17, 2026``."""
    return f"Daily Fishing Report - {day:%A}, {day:%B} {day.day}, {day.year}"


def estimate_tokens(*texts: str) -> int:
    """Roughly four characters per token."""
    return math.ceil(sum(len(t) for t in texts) / 4)


def _window_line(entry) -> str:
    sources = ", ".join(entry.sources)
    return (
        f"- **{entry.kind}** {format_clock(entry.merged_start)}-{format_clock(entry.merged_end)}"
        f" ({entry.quality}; {sources})"
    )


def _conditions_lines(conditions: Conditions) -> list[str]:
    lines = []
    if conditions.air_temp_f is not None:
        lines.append(f"- Air: {conditions.air_temp_f:g}°F")
    if conditions.water_temp_f is not None:
        note = " (estimated from air)" if conditions.water_temp_estimated else ""
        lines.append(f"- Water: {conditions.water_temp_f:g}°F{note}")
    for name, temp in conditions.water_locations.items():
        lines.append(f"  - {name}: {temp:g}°F")
    if conditions.wind_mph is not None:
        direction = f" {conditions.wind_direction}" if conditions.wind_direction else ""
        lines.append(f"- Wind: {conditions.wind_mph:g} mph{direction}")
    if conditions.pressure_inhg is not None:
        lines.append(f"- Pressure: {conditions.pressure_inhg:.2f} inHg")
    lines.extend(f"- {note}" for note in species_notes(conditions))
    return lines


def render_schedule(schedule: ConsensusSchedule) -> str:
    """Markdown summary of the feeding windows and source agreement."""
    location = schedule.location.name or (
        f"{schedule.location.latitude:.4f}, {schedule.location.longitude:.4f}"
    )
    lines = [
        f"**Location:** {location}",
        f"**Confidence:** {schedule.confidence_tier} "
        f"({schedule.sources_used} of {schedule.sources_attempted} sources)",
    ]
    if schedule.moon_phase or schedule.day_rating is not None:
        moon = schedule.moon_phase or "unknown"
        rating = f"{schedule.day_rating:g}" if schedule.day_rating is not None else "n/a"
        lines.append(f"**Moon:** {moon}, day rating {rating}")
    lines.append("")
    lines.append("## Feeding Windows")
    lines.append("")
    lines.extend(_window_line(e) for e in schedule.entries)

    conditions = schedule.conditions
    if conditions is not None and conditions.available:
        lines.append("")
        lines.append("## Conditions")
        lines.append("")
        lines.extend(_conditions_lines(conditions))

    if schedule.is_fallback:
        lines.append("")
        lines.append(
            "_No prediction source answered. These are typical dawn and dusk windows._"
        )
    elif schedule.degraded:
        lines.append("")
        lines.append("_Fewer sources than usual answered; treat these times as rough._")
    if schedule.errors:
        unavailable = ", ".join(e["source_id"] for e in schedule.errors)
        lines.append("")
        lines.append(f"Unavailable sources: {unavailable}")
    return "\n".join(lines)


class ReportWriter:
    """Build report content from a schedule.

    ``template`` renders deterministic Markdown and costs nothing. LLM
    providers narrate a species-by-species report around the same windows.
    """

    def __init__(
        self,
        provider: str = "template",
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        max_tokens: int = 1200,
        llm: Optional[LLMProvider] = None,
    ):
        self.provider = provider
        self.model = model
        self.api_key = api_key
        self.max_tokens = max_tokens
        self.llm = llm

    @property
    def source_name(self) -> str:
        if self.llm is not None:
            return self.llm.provider_name
        return self.provider

    def _get_llm(self) -> LLMProvider:
        """Build the provider on first use so a missing key only fails generation."""
        if self.llm is None:
            try:
                self.llm = create_llm_provider(
                    provider=self.provider, api_key=self.api_key, model=self.model
                )
            except LLMError as e:
                logger.warning("writer.llm_unavailable", provider=self.provider, error=str(e))
                raise GenerationFailure(f"LLM provider unavailable: {e}") from e
        return self.llm

    def write(self, schedule: ConsensusSchedule) -> ReportContent:
        title = report_title(schedule.date)
        summary = render_schedule(schedule)
        if self.llm is None and self.provider == "template":
            return ReportContent(title=title, body=summary, cost_units=0, source="template")

        self._get_llm()

        prompt = self._build_prompt(schedule, summary)
        system = SYSTEM_PROMPT.format(location=schedule.location.name or "the configured lake")
        try:
            narrative = self._call_llm(system, prompt)
        except LLMError as e:
            logger.error("writer.llm_failed", provider=self.source_name, error=str(e))
            raise GenerationFailure(f"{self.source_name} error: {e}") from e

        body = f"{summary}\n\n## Report\n\n{narrative.strip()}"
        return ReportContent(
            title=title,
            body=body,
            cost_units=estimate_tokens(prompt, narrative),
            source=self.source_name,
        )

    @llm_retry(exceptions=(LLMRateLimitError,))
    def _call_llm(self, system: str, prompt: str) -> str:
        logger.debug("writer.llm_call", provider=self.source_name, max_tokens=self.max_tokens)
        with metrics.timer("llm_call"):
            return self.llm.generate(
                messages=[{"role": "user", "content": prompt}],
                system=system,
                max_tokens=self.max_tokens,
            )

    @staticmethod
    def _build_prompt(schedule: ConsensusSchedule, summary: str) -> str:
        place = schedule.location.name or "the lake"
        species = ", ".join(SPECIES[:-1]) + f", and {SPECIES[-1]}"
        return (
            f"What are the current fishing conditions on {place} on "
            f"{schedule.date:%A, %B} {schedule.date.day}? Include recent reports for "
            f"{species}. Mention specific locations, depths, techniques, and hot baits "
            f"currently working. Reference these solunar feeding windows:\n\n{summary}"
        )
