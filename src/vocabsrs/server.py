import logging
import time
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from vocabsrs.application.config import resolve_config
from vocabsrs.application.factory import get_card_repository, get_engine
from vocabsrs.application.familiarity import classify
from vocabsrs.application.review_service import ReviewService
from vocabsrs.consts import VERSION
from vocabsrs.domain.errors import CardNotFoundError, VocabSrsError

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("vocabsrs.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"vocabsrs server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("vocabsrs server shutting down...")


app = FastAPI(
    title="vocabsrs Server",
    description="Review scheduling API for vocabulary cards.",
    version=VERSION,
    lifespan=lifespan,
)


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class LevelResponse(BaseModel):
    label: str
    tier: int
    css_class: str


class StatsResponse(BaseModel):
    card_id: str
    state: str | None
    success_streak: int
    interval_days: int
    next_review_date: datetime | None
    mastered_at: datetime | None
    demotions: list[datetime]
    total_attempts: float
    correct_attempts: float
    consecutive_correct: int
    last_reviewed_at: datetime | None
    last_wrong_at: datetime | None
    mode_stats: dict[str, dict[str, int]]
    level: LevelResponse


class ReviewRequest(BaseModel):
    outcome: bool
    mode_key: str | None = None
    # None lets the scheduler decide from next_review_date.
    is_due: bool | None = None


class ReviewResponse(StatsResponse):
    was_due: bool


class DashboardResponse(BaseModel):
    total: int
    due_total: int
    due_new: int
    due_learning: int
    due_mastered: int
    learning_load: int
    mastered_total: int
    demotions_30d: int


start_time = time.time()


def get_review_service() -> ReviewService:
    config = resolve_config()
    return ReviewService(get_card_repository(config), get_engine(config))


def _stats_payload(card_id: str, stats) -> dict:
    level = classify(stats)
    return {
        "card_id": card_id,
        "state": stats.state.value if stats.state is not None else None,
        "success_streak": stats.success_streak,
        "interval_days": stats.interval_days,
        "next_review_date": stats.next_review_date,
        "mastered_at": stats.mastered_at,
        "demotions": list(stats.demotions),
        "total_attempts": stats.total_attempts,
        "correct_attempts": stats.correct_attempts,
        "consecutive_correct": stats.consecutive_correct,
        "last_reviewed_at": stats.last_reviewed_at,
        "last_wrong_at": stats.last_wrong_at,
        "mode_stats": {key: asdict(tally) for key, tally in stats.mode_stats.items()},
        "level": LevelResponse(label=level.label, tier=level.tier, css_class=level.css_class),
    }


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.get("/cards/{card_id}", response_model=StatsResponse)
async def get_card_stats(card_id: str):
    """Current review stats and familiarity level of a card."""
    service = get_review_service()
    try:
        stats = await service.load(card_id)
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except VocabSrsError as e:
        logger.error(f"Loading {card_id} failed: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e
    return StatsResponse(**_stats_payload(card_id, stats))


@app.post("/cards/{card_id}/review", response_model=ReviewResponse)
async def review_card(card_id: str, req: ReviewRequest):
    """
    Grade one review of a card and persist the new stats.
    """
    logger.info(f"Review requested via API: card={card_id} {req}")

    service = get_review_service()
    try:
        result = await service.grade(
            card_id, req.outcome, mode_key=req.mode_key, is_due=req.is_due
        )
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except VocabSrsError as e:
        logger.error(f"Review failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e

    return ReviewResponse(was_due=result.was_due, **_stats_payload(card_id, result.stats))


@app.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(starred: bool = False):
    service = get_review_service()
    try:
        summary = await service.dashboard(starred_only=starred)
    except VocabSrsError as e:
        logger.error(f"Dashboard failed: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e
    return DashboardResponse(**asdict(summary))
