"""
Shared fixtures for development wizard tests.
"""

from __future__ import annotations

import copy

import pytest


COMPLETE_DRAFT = {
    "currentPhase": 7,
    "developmentType": "residential",
    "transactionType": "for_sale",
    "classification": {
        "type": "residential",
        "subType": "apartment",
        "ownership": "sectional-title",
    },
    "residentialConfig": {
        "residentialType": "apartment",
        "communityTypes": ["security-estate"],
    },
    "developmentData": {
        "name": "Harbour View",
        "description": "Sea-facing apartments above the marina with direct promenade access and secure parking",
        "nature": "new",
        "location": {
            "address": "12 Beach Road",
            "suburb": "Mouille Point",
            "city": "Cape Town",
            "province": "Western Cape",
        },
        "amenities": ["Pool", "Gym"],
        "highlights": ["Sea views", "Walk to the marina", "24-hour security"],
        "media": {
            "photos": [
                {"id": "p1", "url": "https://cdn.example.com/p1.jpg"},
                {"id": "p2", "url": "https://cdn.example.com/p2.jpg"},
            ],
        },
    },
    "unitTypes": [
        {
            "id": "u1",
            "name": "2 Bed Apartment",
            "bedrooms": 2,
            "bathrooms": 2,
            "priceFrom": 1500000,
            "priceTo": 1800000,
            "totalUnits": 10,
            "availableUnits": 8,
        },
    ],
    "finalisation": {
        "salesTeamIds": ["agent-1"],
        "marketingCompany": "Coastal Marketing",
    },
}


@pytest.fixture
def complete_payload():
    """A draft payload that passes every phase and the publish gate."""
    return copy.deepcopy(COMPLETE_DRAFT)
