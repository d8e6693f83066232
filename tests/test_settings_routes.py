"""Cancellation policy, booking settings and schedule configuration."""
from __future__ import annotations

import pytest


def test_cancellation_policy_absent(client, provider_id):
    response = client.get(f"/providers/{provider_id}/cancellation-policy")

    assert response.status_code == 200
    assert response.get_json() == {"cancellation_policy": None}


def test_cancellation_policy_partial_update_uses_defaults(client, provider_id):
    response = client.put(
        f"/providers/{provider_id}/cancellation-policy",
        json={"is_enabled": True, "no_show_multiplier": 2},
    )

    assert response.status_code == 200
    assert response.get_json()["cancellation_policy"] == {
        "provider_id": provider_id,
        "is_enabled": True,
        "period_days": 30,
        "max_cancellations": 3,
        "no_show_multiplier": 2.0,
        "block_duration_days": 7,
    }

    response = client.put(
        f"/providers/{provider_id}/cancellation-policy", json={"max_cancellations": 5}
    )
    policy = response.get_json()["cancellation_policy"]
    assert policy["max_cancellations"] == 5
    assert policy["no_show_multiplier"] == 2.0


@pytest.mark.parametrize("payload", [
    {"max_cancellations": 0},
    {"period_days": "30"},
    {"no_show_multiplier": -1},
    {"is_enabled": "yes"},
])
def test_cancellation_policy_invalid(client, provider_id, payload):
    response = client.put(f"/providers/{provider_id}/cancellation-policy", json=payload)

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_payload"


def test_booking_settings_defaults_then_update(client, provider_id):
    response = client.get(f"/providers/{provider_id}/booking-settings")
    data = response.get_json()

    assert data["is_default"] is True
    assert data["booking_settings"]["max_booking_days_ahead"] == 30
    assert data["booking_settings"]["min_booking_notice_hours"] == 0

    response = client.put(
        f"/providers/{provider_id}/booking-settings",
        json={"auto_confirm": True, "cancellation_notice_hours": 12},
    )
    data = response.get_json()

    assert response.status_code == 200
    assert data["is_default"] is False
    assert data["booking_settings"]["auto_confirm"] is True
    assert data["booking_settings"]["cancellation_notice_hours"] == 12
    assert data["booking_settings"]["allow_client_cancellation"] is True


def test_schedule_config(client, provider_id):
    url = f"/providers/{provider_id}/schedule-config"

    response = client.put(url, json={
        "timezone": "Europe/Warsaw", "slot_interval_minutes": 15, "restrict_to_business_hours": True,
    })

    assert response.status_code == 200
    assert client.get(url).get_json()["provider"] == {
        "id": provider_id,
        "name": "Studio Lumi",
        "timezone": "Europe/Warsaw",
        "slot_interval_minutes": 15,
        "restrict_to_business_hours": True,
    }


@pytest.mark.parametrize("payload", [
    {"timezone": "Mars/Olympus"},
    {"slot_interval_minutes": 7},
    {"slot_interval_minutes": True},
])
def test_schedule_config_invalid(client, provider_id, payload):
    response = client.put(f"/providers/{provider_id}/schedule-config", json=payload)
    assert response.status_code == 400
