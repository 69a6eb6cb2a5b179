"""Source adapters and their registration order."""

from forecast.adapter import SourceAdapter

from .astronomical import AstronomicalAdapter
from .fishing_reminder import FishingReminderAdapter
from .in_fisherman import InFishermanAdapter
from .solunar_org import SolunarOrgAdapter

# Registration order; consensus clustering follows it
ADAPTER_CLASSES = {
    "solunar_org": SolunarOrgAdapter,
    "fishing_reminder": FishingReminderAdapter,
    "in_fisherman": InFishermanAdapter,
    "astronomical": AstronomicalAdapter,
}


def create_adapters(sources_config: dict) -> list[SourceAdapter]:
    """Instantiate enabled adapters from the ``sources`` config section."""
    adapters: list[SourceAdapter] = []
    for name, cls in ADAPTER_CLASSES.items():
        cfg = sources_config.get(name) or {}
        if not cfg.get("enabled", True):
            continue
        kwargs = {}
        if cfg.get("weight") is not None:
            kwargs["weight"] = cfg["weight"]
        if cfg.get("confidence"):
            kwargs["confidence"] = cfg["confidence"]
        if cfg.get("timeout_seconds") is not None:
            kwargs["timeout"] = cfg["timeout_seconds"]
        if name in ("solunar_org", "fishing_reminder") and cfg.get("base_url"):
            kwargs["base_url"] = cfg["base_url"]
        if name == "in_fisherman" and cfg.get("base_url"):
            kwargs["page_url"] = cfg["base_url"]
        if name == "fishing_reminder" and cfg.get("city"):
            kwargs["city"] = cfg["city"]
        adapters.append(cls(**kwargs))
    return adapters


__all__ = [
    "ADAPTER_CLASSES",
    "AstronomicalAdapter",
    "FishingReminderAdapter",
    "InFishermanAdapter",
    "SolunarOrgAdapter",
    "create_adapters",
]
