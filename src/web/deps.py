"""Dependency injection for FastAPI routes."""

from functools import lru_cache

import structlog

from cli.config import load_config_model
from cli.utils import get_components

logger = structlog.get_logger()


@lru_cache
def get_config():
    """Load shared config from the standard locations."""
    return load_config_model()


@lru_cache
def get_app_components() -> dict:
    """One pipeline per process so single-flight spans every request."""
    return get_components(get_config().to_dict())


def get_coordinator():
    return get_app_components()["coordinator"]


def get_scheduler():
    return get_app_components()["scheduler"]
