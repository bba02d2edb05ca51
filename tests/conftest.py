"""Shared test fixtures for pytest.

ENVIRONMENT is set before anything imports settings so no .env file is read,
and real model requests are blocked for the whole session.
"""

import copy
import os
from collections.abc import Callable, Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient
from pydantic_ai import models


os.environ.setdefault("ENVIRONMENT", "test")

models.ALLOW_MODEL_REQUESTS = False

from api.v1.listings import get_quality_gate  # noqa: E402
from main import app  # noqa: E402
from services.quality_gate.controller import QualityGate  # noqa: E402
from services.quality_gate.diagnostics import RecordingDiagnosticsSink  # noqa: E402
from services.quality_gate.models import GenerationRequest  # noqa: E402


class ScriptedGenerator:
    """Generator double that replays responses in order.

    An item that is an exception instance is raised instead of returned.
    """

    def __init__(self, responses: list[str | Exception]) -> None:
        self._responses = list(responses)
        self.calls: list[GenerationRequest] = []

    async def generate(self, request: GenerationRequest) -> str:
        self.calls.append(request)
        if not self._responses:
            raise AssertionError("ScriptedGenerator ran out of responses")
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


INSTAGRAM_HASHTAGS = " ".join(
    f"#{tag}"
    for tag in (
        "walnut",
        "cuttingboard",
        "woodworking",
        "handmade",
        "engraved",
        "weddinggift",
        "kitchendecor",
        "charcuterie",
        "shopsmall",
        "makersgonnamake",
        "woodshop",
        "giftforcouples",
        "housewarming",
        "anniversarygift",
        "personalizedgift",
        "homecook",
        "woodgrain",
        "smallbusiness",
        "foodsafe",
        "craftsmanship",
    )
)

GENERAL_LISTING: dict[str, Any] = {
    "newTitle": "Handmade Walnut Cutting Board, Engraved Kitchen Gift for Couples",
    "newDescription": (
        "Overview:\n"
        "A solid walnut cutting board cut from a single plank and finished with "
        "food-safe mineral oil.\n\n"
        "Details:\n"
        "- Size 16 x 10 inches, 0.75 inch thick\n"
        "- Engraving of up to two names and a date\n\n"
        "Why you'll love it:\n"
        "The dense grain is gentle on knife edges and the board gets darker and "
        "richer with use.\n\n"
        "Shipping:\n"
        "Ships within 3 business days in recycled packaging."
    ),
    "hashtags": [
        "walnut cutting board",
        "engraved cutting board",
        "personalized board",
        "kitchen gift",
        "wedding gift",
        "couples gift",
        "housewarming gift",
        "charcuterie board",
        "wood anniversary",
        "custom engraving",
        "serving board",
        "chef gift",
        "rustic kitchen",
    ],
    "seoStrategy": "Material and product first, occasion keywords in tags.",
    "socialMedia": {
        "pinterestTitle": "Engraved Walnut Cutting Board for Couples",
        "pinterestDescription": (
            "A solid walnut board engraved with your names, finished with "
            "food-safe oil and ready to gift."
        ),
        "pinterestAltText": "Walnut cutting board with engraved names on a counter",
        "pinterestHashtags": "#walnut #cuttingboard #weddinggift",
        "instagramCaption": (
            "Fresh off the bench: a walnut board engraved for a couple getting "
            "married this spring."
        ),
        "instagramHashtags": INSTAGRAM_HASHTAGS,
    },
}

MARKETPLACE_LISTING: dict[str, Any] = {
    "productIdentified": "Insulated water bottle",
    "confidence": 0.92,
    "title": (
        "Insulated Stainless Steel Water Bottle 32 oz with Straw Lid, Leak Proof "
        "Double Wall Vacuum Flask for Sports and Travel"
    ),
    "bulletPoints": [
        (f"Bullet {i} detail text. " * 8).strip() for i in range(1, 6)
    ],
    "productDescription": (
        "The bottle keeps drinks cold for a full day and hot through the "
        "morning commute. " * 22
    ).strip(),
    "backendKeywords": (
        "water bottle insulated flask gym bottle hiking flask travel mug "
        "straw lid bottle sports bottle leak proof bottle"
    ),
    "aPlusSuggestions": "Lifestyle banner, comparison chart, material close-up",
    "suggestedCategory": "Sports & Outdoors > Water Bottles",
    "estimatedPrice": "$24.99",
    "seoScore": 88,
}

DIGITAL_LISTING: dict[str, Any] = {
    **copy.deepcopy(GENERAL_LISTING),
    "newTitle": "Printable Weekly Meal Planner, Digital Download Grocery List",
    "newDescription": (
        "A one-page weekly meal planner with a matching grocery list. Instant "
        "download after purchase: you receive a PDF in US Letter and A4 plus a "
        "PNG for tablets. Print at home or at a copy shop, as many times as you "
        "need for your own household."
    ),
    "fileFormats": ["PDF", "PNG"],
    "instantDownload": True,
    "licenseInfo": "Personal use only, no resale",
}


@pytest.fixture
def general_listing() -> dict[str, Any]:
    return copy.deepcopy(GENERAL_LISTING)


@pytest.fixture
def marketplace_listing() -> dict[str, Any]:
    return copy.deepcopy(MARKETPLACE_LISTING)


@pytest.fixture
def digital_listing() -> dict[str, Any]:
    return copy.deepcopy(DIGITAL_LISTING)


@pytest.fixture
def scripted_generator() -> Callable[..., ScriptedGenerator]:
    def _make(*responses: str | Exception) -> ScriptedGenerator:
        return ScriptedGenerator(list(responses))

    return _make


@pytest.fixture
def recording_sink() -> RecordingDiagnosticsSink:
    return RecordingDiagnosticsSink()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """
    Create a test client for the FastAPI application.
    """
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def override_gate() -> Generator[
    Callable[[ScriptedGenerator], RecordingDiagnosticsSink], None, None
]:
    """Route the listings endpoints through a scripted generator."""

    def _override(generator: ScriptedGenerator) -> RecordingDiagnosticsSink:
        sink = RecordingDiagnosticsSink()
        app.dependency_overrides[get_quality_gate] = lambda: QualityGate(
            generator, sink, default_max_retries=2
        )
        return sink

    yield _override
    app.dependency_overrides.pop(get_quality_gate, None)
