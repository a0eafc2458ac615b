from __future__ import annotations

import pytest


@pytest.fixture
def household_payload() -> dict[str, object]:
    return {
        "category": "1959",
        "title": "  ",
        "location": "No. 12, Lane 5, Songren Road",
        "coordinates": {"lat": 25.0330, "lng": 121.5654},
        "description": "Dog kept on a short chain without water",
        "reported_at": "2025-03-01T16:00:00+08:00",
        "external_case_id": "1959-20250301-0007",
        "contact_phone": "0912345678",
        "form": {
            "form_type": "household_visit",
            "owner_name": "Chen",
            "water": "none",
            "microchip_status": "scanned",
            "microchip_number": "900 123 456",
        },
    }
