"""Shared test fixtures and configuration."""

import os

import pytest

# Never use a real key during tests
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "10000")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_artwork():
    """Sample Met API /objects/{id} response (trimmed)."""
    return {
        "objectID": 436532,
        "isHighlight": True,
        "accessionNumber": "1993.132",
        "primaryImage": "https://images.metmuseum.org/CRDImages/ep/original/DT1502_cropped2.jpg",
        "primaryImageSmall": "https://images.metmuseum.org/CRDImages/ep/web-large/DT1502_cropped2.jpg",
        "department": "European Paintings",
        "objectName": "Painting",
        "title": "Self-Portrait with a Straw Hat (obverse: The Potato Peeler)",
        "artistDisplayName": "Vincent van Gogh",
        "objectDate": "1887",
        "medium": "Oil on canvas",
    }


@pytest.fixture
def starry_night():
    return {
        "objectID": 1,
        "title": "The Starry Night",
        "artistDisplayName": "Vincent van Gogh",
        "objectDate": "1889",
    }


@pytest.fixture
def sample_search_response():
    """Sample Met API /search response."""
    return {"total": 3, "objectIDs": [436532, 436535, 437980]}
