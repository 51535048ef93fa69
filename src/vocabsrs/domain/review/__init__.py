# Domain Review Package
from .models import Card, FamiliarityLevel, ModeTally, ReviewState, ReviewStats
from .ports import CardRepository, Clock, utc_now

__all__ = [
    "Card",
    "FamiliarityLevel",
    "ModeTally",
    "ReviewState",
    "ReviewStats",
    "CardRepository",
    "Clock",
    "utc_now",
]
