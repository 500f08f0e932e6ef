"""Stores for data owned by collaborators (events, results, predictions)."""

from app.services.storage.events import EventStore
from app.services.storage.predictions import PredictionStore
from app.services.storage.results import ResultStore

__all__ = ["EventStore", "PredictionStore", "ResultStore"]
