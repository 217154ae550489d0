"""Dependency helpers exposing startup-built state to request handlers."""

from fastapi import Request

from .config import Settings
from .metrics import MetricsTracker
from .storage import Storage


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_metrics(request: Request) -> MetricsTracker:
    return request.app.state.metrics
