from __future__ import annotations

from datetime import date

from beautybook.models import WorkingDay


def test_working_day_lifecycle(client, provider_id):
    url = f"/providers/{provider_id}/working-days/2030-06-05"

    response = client.put(url, json={
        "start_time": "10:00",
        "end_time": "16:00",
        "slot_interval_minutes": 15,
        "breaks": [{"start_time": "12:00", "end_time": "12:30"}],
    })
    assert response.status_code == 200

    day = client.get(url).get_json()["working_day"]
    assert day["start_time"] == "10:00"
    assert day["slot_interval_minutes"] == 15
    assert day["breaks"] == [{"start_time": "12:00", "end_time": "12:30"}]

    # replacing drops the old breaks
    client.put(url, json={"start_time": "09:00", "end_time": "17:00"})
    assert client.get(url).get_json()["working_day"]["breaks"] == []

    assert client.delete(url).status_code == 200
    assert client.get(url).status_code == 404


def test_working_day_break_outside_hours(client, provider_id):
    response = client.put(f"/providers/{provider_id}/working-days/2030-06-05", json={
        "start_time": "10:00",
        "end_time": "16:00",
        "breaks": [{"start_time": "15:30", "end_time": "16:30"}],
    })

    assert response.status_code == 400
    assert response.get_json()["message"] == "breaks must fall inside working hours"


def test_generate_weekly_skips_existing(client, provider_id):
    client.put(f"/providers/{provider_id}/working-days/2030-06-05",
               json={"start_time": "12:00", "end_time": "14:00"})

    response = client.post(f"/providers/{provider_id}/working-days/generate", json={
        "type": "weekly",
        "start_date": "2030-06-01",
        "end_date": "2030-06-14",
        "weekdays": [0, 3],
        "working_hours": {"start": "09:00", "end": "17:00",
                          "breaks": [{"start_time": "13:00", "end_time": "14:00"}]},
    })
    data = response.get_json()

    assert response.status_code == 201
    assert [day["date"] for day in data["created"]] == ["2030-06-02", "2030-06-09", "2030-06-12"]
    assert WorkingDay.query.count() == 4
    kept = WorkingDay.query.filter_by(date=date(2030, 6, 5)).one()
    assert kept.to_dict()["start_time"] == "12:00"


def test_generate_rotation_overwrite(client, provider_id):
    client.put(f"/providers/{provider_id}/working-days/2030-06-01",
               json={"start_time": "12:00", "end_time": "14:00"})

    response = client.post(f"/providers/{provider_id}/working-days/generate", json={
        "type": "rotation",
        "start_date": "2030-06-01",
        "end_date": "2030-06-06",
        "days_on": 2,
        "days_off": 1,
        "working_hours": {"start": "08:00", "end": "16:00"},
        "overwrite": True,
    })

    assert response.status_code == 201
    assert len(response.get_json()["created"]) == 4
    replaced = WorkingDay.query.filter_by(date=date(2030, 6, 1)).one()
    assert replaced.to_dict()["start_time"] == "08:00"


def test_generate_unknown_type(client, provider_id):
    response = client.post(f"/providers/{provider_id}/working-days/generate", json={
        "type": "monthly",
        "working_hours": {"start": "09:00", "end": "17:00"},
    })

    assert response.status_code == 400
    assert response.get_json()["message"] == "type must be one of rotation, weekly, bulk"
