"""
Tests for Draft Persistence and Publish Normalization

Tests covering:
1. Draft upsert, listing, and deletion
2. File persistence and reload
3. Autosave sink backed by the repository
4. Listing normalization for publish
5. Configuration and formatting helpers
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from core.wizard.autosave import AutoSaveController
from core.wizard.errors import DraftNotFoundError, PublishFailedError
from core.wizard.publish import (
    InMemoryPublisher,
    check_listing,
    compute_auction_range,
    normalize_for_publish,
)
from core.wizard.repository import (
    UNTITLED_DRAFT_NAME,
    DevelopmentRepository,
    DraftRepository,
    DraftSaver,
    get_draft_repository,
    reset_repositories,
)
from core.wizard.sanitize import sanitize
from utils.config import Config
from utils.formatting import format_currency, format_percent


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def persist_path(tmp_path):
    return str(tmp_path / "drafts.json")


@pytest.fixture
def repository(persist_path):
    reset_repositories()
    return DraftRepository(persist_path=persist_path)


# =============================================================================
# Draft Repository
# =============================================================================


class TestDraftRepository:
    """Tests for draft CRUD operations."""

    def test_save_creates_canonical_record(self, repository):
        record = repository.save({"currentPhase": 999, "developmentData": {"name": "Tower"}}, developer_id=7)

        assert record.draft_id == 1
        assert record.developer_id == 7
        assert record.draft_name == "Tower"
        assert record.current_step == 7
        assert record.progress == 100
        assert record.draft_data == sanitize(record.draft_data).to_dict()

    def test_unnamed_draft(self, repository):
        assert repository.save({}).draft_name == UNTITLED_DRAFT_NAME

    def test_progress_tracks_phase(self, repository):
        assert repository.save({"currentPhase": 1}).progress == 14
        assert repository.save({"currentPhase": 4}).progress == 57

    def test_upsert_preserves_created_at_and_refreshes_last_modified(self, repository):
        record = repository.save({"developmentData": {"name": "Tower"}})
        created_at = record.created_at
        record.last_modified = datetime.now(timezone.utc) - timedelta(hours=1)
        stale = record.last_modified

        updated = repository.save({"currentPhase": 3, "developmentData": {"name": "Tower II"}}, draft_id=record.draft_id)

        assert updated.draft_id == record.draft_id
        assert updated.created_at == created_at
        assert updated.last_modified > stale
        assert updated.draft_name == "Tower II"
        assert updated.current_step == 3
        assert repository.count() == 1

    def test_update_unknown_draft_raises(self, repository):
        with pytest.raises(DraftNotFoundError):
            repository.save({}, draft_id=42)

    def test_list_drafts_most_recent_first(self, repository):
        first = repository.save({"developmentData": {"name": "First"}}, developer_id=1)
        second = repository.save({"developmentData": {"name": "Second"}}, developer_id=2)
        first.last_modified = second.last_modified + timedelta(seconds=5)

        assert [r.draft_name for r in repository.list_drafts()] == ["First", "Second"]
        assert [r.draft_name for r in repository.list_drafts(developer_id=2)] == ["Second"]

    def test_delete(self, repository):
        record = repository.save({})

        assert repository.delete(record.draft_id) is True
        assert repository.delete(record.draft_id) is False
        assert repository.get(record.draft_id) is None

    def test_require(self, repository):
        with pytest.raises(DraftNotFoundError):
            repository.require(5)

    def test_persistence_round_trip(self, repository, persist_path):
        record = repository.save({"developmentData": {"name": "Tower"}}, developer_id=7, brand_profile_id=3)
        repository.save({})

        reloaded = DraftRepository(persist_path=persist_path)

        assert reloaded.count() == 2
        assert reloaded.get(record.draft_id).to_dict() == record.to_dict()
        assert reloaded.save({}).draft_id == 3

    def test_corrupt_file_starts_fresh(self, persist_path, caplog):
        with open(persist_path, "w") as handle:
            handle.write("{broken")

        repository = DraftRepository(persist_path=persist_path)

        assert repository.count() == 0
        assert "Could not load draft repository data" in caplog.text

    def test_summary(self, repository, complete_payload):
        summary = repository.save(complete_payload).to_summary()

        assert summary["draftName"] == "Harbour View"
        assert summary["progressLabel"] == "100%"
        assert summary["currentStepLabel"] == "Finalisation"
        assert summary["priceFromLabel"] == "R 1 500 000"
        assert summary["unitTypeCount"] == 1

    def test_singleton(self, persist_path):
        reset_repositories()
        repo = get_draft_repository(persist_path)

        assert get_draft_repository() is repo
        reset_repositories()


# =============================================================================
# Draft Saver
# =============================================================================


class TestDraftSaver:
    """Tests for the repository-backed autosave sink."""

    def test_first_save_creates_then_updates(self, repository):
        saver = DraftSaver(repository, developer_id=7)

        async def scenario():
            controller = AutoSaveController(on_save=saver)
            await controller.save_now({"developmentData": {"name": "One"}})
            await controller.save_now({"developmentData": {"name": "Two"}})

        asyncio.run(scenario())

        assert saver.draft_id == 1
        assert repository.count() == 1
        assert repository.get(1).draft_name == "Two"
        assert repository.get(1).developer_id == 7


# =============================================================================
# Publish Normalization
# =============================================================================


class TestNormalizeForPublish:
    """Tests for listing normalization."""

    def test_sale_listing(self, complete_payload):
        complete_payload["unitTypes"].append(
            {"id": "u2", "name": "3 Bed", "priceFrom": 2100000, "priceTo": 2600000, "totalUnits": 4}
        )
        listing = normalize_for_publish(complete_payload)

        assert listing["name"] == "Harbour View"
        assert listing["priceFrom"] == 1500000
        assert listing["priceTo"] == 2600000
        assert listing["monthlyRentFrom"] is None
        assert listing["totalUnits"] == 14
        assert listing["availableUnits"] == 12
        assert listing["images"] == ["https://cdn.example.com/p1.jpg", "https://cdn.example.com/p2.jpg"]
        assert listing["configuration"] == {
            "residentialType": "apartment",
            "communityTypes": ["security-estate"],
            "securityFeatures": [],
        }

    def test_empty_strings_become_none(self, complete_payload):
        complete_payload["developmentData"]["description"] = "   "
        listing = normalize_for_publish(complete_payload)

        assert listing["description"] is None
        assert listing["postalCode"] is None
        assert listing["parentDevelopmentId"] is None

    def test_rental_listing(self, complete_payload):
        complete_payload["transactionType"] = "for_rent"
        complete_payload["unitTypes"] = [
            {"name": "A", "monthlyRentFrom": 9000, "monthlyRentTo": 11000},
            {"name": "B", "monthlyRentFrom": 15000},
        ]
        listing = normalize_for_publish(complete_payload)

        assert listing["priceFrom"] is None
        assert listing["monthlyRentFrom"] == 9000
        assert listing["monthlyRentTo"] == 15000

    def test_inactive_units_are_excluded(self, complete_payload):
        complete_payload["unitTypes"].append({"name": "Old", "priceFrom": 100, "isActive": False})
        listing = normalize_for_publish(complete_payload)

        assert listing["priceFrom"] == 1500000
        assert len(listing["unitTypes"]) == 1

    def test_auction_range(self):
        draft = sanitize({
            "unitTypes": [
                {"startingBid": 400000, "reservePrice": 450000,
                 "auctionStartDate": "2025-03-05T10:00:00", "auctionEndDate": "2025-03-20T10:00:00"},
                {"startingBid": 300000,
                 "auctionStartDate": "2025-03-01T10:00:00", "auctionEndDate": "2025-03-10T10:00:00"},
            ],
        })

        assert compute_auction_range(draft.unit_types) == {
            "auctionStartDate": "2025-03-01T10:00:00",
            "auctionEndDate": "2025-03-20T10:00:00",
            "startingBidFrom": 300000,
            "reservePriceFrom": 450000,
        }

    def test_check_listing(self):
        problems = check_listing({
            "name": "X",
            "city": "Durban",
            "province": "KZN",
            "priceFrom": 10,
            "priceTo": 5,
            "startingBidFrom": 100,
            "reservePriceFrom": 50,
        })

        assert "priceFrom cannot exceed priceTo" in problems
        assert "Reserve price cannot be less than the starting bid" in problems

    def test_publisher_rejects_inconsistent_listing(self):
        publisher = InMemoryPublisher(DevelopmentRepository())

        with pytest.raises(PublishFailedError) as exc_info:
            asyncio.run(publisher.publish({}))

        assert exc_info.value.retryable is False

    def test_publisher_stores_development(self, complete_payload):
        developments = DevelopmentRepository()
        record = asyncio.run(InMemoryPublisher(developments).publish(complete_payload, draft_id=4))

        assert record.development_id == 1
        assert record.draft_id == 4
        assert developments.get(1).listing["name"] == "Harbour View"
        assert record.to_dict()["listing"]["isPublished"] is True


# =============================================================================
# Configuration & Formatting
# =============================================================================


class TestConfig:
    """Tests for environment configuration."""

    def test_defaults(self, monkeypatch):
        for name in ("AUTOSAVE_DEBOUNCE_MS", "AUTOSAVE_STORAGE_KEY", "AUTOSAVE_ENABLED", "ENABLED_DEVELOPMENT_TYPES"):
            monkeypatch.delenv(name, raising=False)
        config = Config.load()

        assert config.autosave_options() == {
            "debounce_ms": 2000,
            "storage_key": "development-wizard-storage",
            "enabled": True,
        }
        assert config.enabled_development_types == ["residential", "commercial", "mixed", "land"]

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("AUTOSAVE_DEBOUNCE_MS", "500")
        monkeypatch.setenv("AUTOSAVE_ENABLED", "false")
        monkeypatch.setenv("ENABLED_DEVELOPMENT_TYPES", " Residential , land ,")
        monkeypatch.setenv("DATA_DIR", str(tmp_path))
        config = Config.load()

        assert config.autosave_debounce_ms == 500
        assert config.autosave_enabled is False
        assert config.enabled_development_types == ["residential", "land"]
        assert config.drafts_path == str(tmp_path / "drafts.json")
        assert config.to_dict()["autosave_debounce_ms"] == 500


class TestFormatting:
    """Tests for display formatting."""

    def test_rand_amounts(self):
        assert format_currency(1250000) == "R 1 250 000"

    def test_other_currencies(self):
        assert format_currency(1500, "USD") == "$1,500"

    def test_percent(self):
        assert format_percent(57, decimals=0) == "57%"
