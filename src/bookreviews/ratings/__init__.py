"""Rating aggregates derived from book reviews."""

from .aggregator import RatingAggregator, mean_rating
from .schemas import RatingDrift, RatingSnapshot

__all__ = [
    "RatingAggregator",
    "RatingDrift",
    "RatingSnapshot",
    "mean_rating",
]
