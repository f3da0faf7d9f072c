from .db import initialize_database
from .predictions import (
    InMemoryPredictionRepository,
    PredictionRepository,
    SqlitePredictionRepository,
    prune_expired_predictions,
)

__all__ = [
    "InMemoryPredictionRepository",
    "PredictionRepository",
    "SqlitePredictionRepository",
    "initialize_database",
    "prune_expired_predictions",
]
