import json
from datetime import datetime, timezone

import pytest

from vocabsrs.domain.errors import CardNotFoundError, StoreCorruptedError
from vocabsrs.domain.review.models import Card, ReviewState, ReviewStats
from vocabsrs.infrastructure.adapters.json_store import JsonCardRepository

T0 = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "data" / "cards.json"


@pytest.fixture
def repo(store_path):
    return JsonCardRepository(store_path)


@pytest.mark.asyncio
async def test_missing_file_is_empty_store(repo, store_path):
    assert await repo.list_cards() == []
    assert not store_path.exists()


@pytest.mark.asyncio
async def test_add_and_load_defaults(repo, store_path):
    card_id = await repo.add_card(Card(id="", word=" apple ", meaning="苹果"))

    assert card_id
    stats = await repo.load(card_id)
    assert stats == ReviewStats()

    card = await repo.get_card(card_id)
    assert card.word == "apple"
    assert card.created_at is not None

    doc = json.loads(store_path.read_text(encoding="utf-8"))
    assert doc["version"] == 1
    assert doc["cards"][card_id]["review_stats"]["state"] == "NEW"


@pytest.mark.asyncio
async def test_add_duplicate_id_rejected(repo):
    await repo.add_card(Card(id="c1", word="a", meaning="b"))
    with pytest.raises(ValueError):
        await repo.add_card(Card(id="c1", word="x", meaning="y"))


@pytest.mark.asyncio
async def test_save_round_trips_stats(repo):
    await repo.add_card(Card(id="c1", word="river", meaning="河"))
    stats = ReviewStats(
        state=ReviewState.MASTERED,
        success_streak=4,
        interval_days=14,
        next_review_date=T0,
        mastered_at=T0,
        demotions=(T0,),
        total_attempts=4.5,
        correct_attempts=4.0,
    )

    await repo.save("c1", stats)

    assert await repo.load("c1") == stats


@pytest.mark.asyncio
async def test_saving_same_snapshot_twice_is_noop(repo, store_path):
    await repo.add_card(Card(id="c1", word="river", meaning="河"))
    stats = ReviewStats(state=ReviewState.LEARNING, interval_days=1, next_review_date=T0)

    await repo.save("c1", stats)
    first = store_path.read_text(encoding="utf-8")
    await repo.save("c1", stats)

    assert store_path.read_text(encoding="utf-8") == first


@pytest.mark.asyncio
async def test_unknown_card(repo):
    with pytest.raises(CardNotFoundError):
        await repo.load("nope")
    with pytest.raises(CardNotFoundError):
        await repo.save("nope", ReviewStats())


@pytest.mark.asyncio
async def test_legacy_record_without_stats(store_path, repo):
    store_path.parent.mkdir(parents=True)
    store_path.write_text(
        json.dumps({"version": 1, "cards": {"old": {"word_en": "cloud", "meaning_zh": "云"}}}),
        encoding="utf-8",
    )
    assert await repo.load("old") == ReviewStats()


@pytest.mark.asyncio
async def test_corrupted_store(store_path, repo):
    store_path.parent.mkdir(parents=True)
    store_path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StoreCorruptedError):
        await repo.list_cards()


@pytest.mark.asyncio
async def test_store_without_cards_mapping(store_path, repo):
    store_path.parent.mkdir(parents=True)
    store_path.write_text("[]", encoding="utf-8")
    with pytest.raises(StoreCorruptedError):
        await repo.list_cards()
