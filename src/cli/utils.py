"""Shared CLI utilities."""

from typing import Optional

import structlog
from rich.console import Console

console = Console()
logger = structlog.get_logger()


def get_components(config: Optional[dict] = None) -> dict:
    """Wire the report pipeline from config.

    Args:
        config: Config dict; loaded from the standard locations when omitted.
    """
    from cli.config import get_paths, load_config
    from forecast.conditions import (
        DEFAULT_WATER_TEMP_OFFSET_F,
        WATER_TEMPERATURE_URL,
        ConditionsProvider,
    )
    from forecast.consensus import ConsensusAggregator
    from forecast.fanout import SourceGatherer
    from forecast.health import SourceHealthTracker
    from forecast.models import Location
    from forecast.sources import create_adapters
    from reports.clock import Clock
    from reports.coordinator import GenerationCoordinator
    from reports.scheduler import ReportScheduler
    from reports.store import ReportStore
    from reports.writer import ReportWriter

    config = config if config is not None else load_config()
    paths = get_paths(config)

    loc_cfg = config["location"]
    location = Location(
        latitude=loc_cfg["latitude"],
        longitude=loc_cfg["longitude"],
        name=loc_cfg.get("name", ""),
        timezone=loc_cfg.get("timezone", "America/New_York"),
    )
    sched_cfg = config["scheduler"]
    reports_cfg = config["reports"]
    content_cfg = config["content"]
    conditions_cfg = config.get("conditions") or {}

    clock = Clock(sched_cfg.get("timezone", location.timezone))
    store = ReportStore(
        paths["reports_db"], freshness_hours=reports_cfg["freshness_hours"], clock=clock
    )
    health = SourceHealthTracker(paths["reports_db"])
    adapters = create_adapters(config["sources"])
    gatherer = SourceGatherer(
        adapters,
        deadline_seconds=reports_cfg["generation_deadline_seconds"],
        max_workers=reports_cfg["max_workers"],
        health=health,
    )
    aggregator = ConsensusAggregator(config["consensus"]["cluster_threshold_minutes"])
    writer = ReportWriter(
        provider=content_cfg["provider"],
        model=content_cfg.get("model"),
        api_key=content_cfg.get("api_key"),
        max_tokens=content_cfg["max_tokens"],
    )
    conditions = None
    if conditions_cfg.get("enabled", True):
        conditions = ConditionsProvider(
            weather_api_key=conditions_cfg.get("weather_api_key"),
            water_url=conditions_cfg.get("water_url", WATER_TEMPERATURE_URL),
            timeout=conditions_cfg.get("timeout_seconds", 8.0),
            water_temp_offset_f=conditions_cfg.get(
                "water_temp_offset_f", DEFAULT_WATER_TEMP_OFFSET_F
            ),
        )
    coordinator = GenerationCoordinator(
        store,
        gatherer,
        aggregator,
        writer,
        location,
        clock=clock,
        min_sources=config["sources"]["min_sources"],
        wait_policy=reports_cfg["wait_policy"],
        conditions=conditions,
    )
    scheduler = ReportScheduler(
        coordinator,
        cron=sched_cfg["cron"],
        timezone=sched_cfg["timezone"],
        sweep_cron=sched_cfg["sweep_cron"],
        retain_days=reports_cfg["retain_days"],
        health=health,
    )
    logger.debug("components_ready", adapters=[a.source_id for a in adapters])

    return {
        "config": config,
        "paths": paths,
        "location": location,
        "clock": clock,
        "store": store,
        "health": health,
        "adapters": adapters,
        "gatherer": gatherer,
        "aggregator": aggregator,
        "writer": writer,
        "conditions": conditions,
        "coordinator": coordinator,
        "scheduler": scheduler,
    }
