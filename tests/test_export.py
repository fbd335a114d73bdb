import csv
import io
import xml.etree.ElementTree as ET

import pytest

from conftest import bearer, register


async def seed(client, headers):
    for payload in (
        {"location": "Paris", "startDate": "2024-06-01", "endDate": "2024-06-03"},
        {"location": "London", "startDate": "2024-06-02", "endDate": "2024-06-02"},
    ):
        r = await client.post("/api/weather-records", json=payload, headers=headers)
        assert r.status_code == 201, r.text


@pytest.mark.asyncio
async def test_json_export_is_repeatable(client, alice_headers):
    await seed(client, alice_headers)

    first = await client.get("/api/export/json", headers=alice_headers)
    second = await client.get("/api/export/json", headers=alice_headers)

    assert first.status_code == 200
    assert first.headers["content-type"].startswith("application/json")
    assert first.headers["content-disposition"] == "attachment; filename=weather_data.json"
    assert first.content == second.content

    rows = first.json()
    assert [r["location"] for r in rows] == ["London", "Paris"]
    assert len(rows[1]["weather_data"]["weather_data"]) == 24


@pytest.mark.asyncio
async def test_csv_export_columns(client, alice_headers):
    await seed(client, alice_headers)

    r = await client.get("/api/export/CSV", headers=alice_headers)

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert r.headers["content-disposition"] == "attachment; filename=weather_data.csv"

    rows = list(csv.reader(io.StringIO(r.text)))
    assert rows[0] == ["ID", "Location", "Start Date", "End Date", "Created At", "Weather Data Count"]
    assert [row[1] for row in rows[1:]] == ["London", "Paris"]
    assert rows[2][2:4] == ["2024-06-01", "2024-06-03"]
    assert rows[2][5] == "24"
    assert rows[1][5] == "8"


@pytest.mark.asyncio
async def test_xml_export_elements(client, alice_headers):
    await seed(client, alice_headers)

    r = await client.get("/api/export/xml", headers=alice_headers)

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/xml")
    root = ET.fromstring(r.content)
    assert root.tag == "weatherData"
    records = root.findall("record")
    assert [rec.findtext("location") for rec in records] == ["London", "Paris"]
    assert records[1].findtext("startDate") == "2024-06-01"
    assert records[1].findtext("endDate") == "2024-06-03"
    assert records[1].findtext("weatherDataCount") == "24"
    assert records[1].get("id")


@pytest.mark.asyncio
async def test_export_only_includes_own_records(client, alice_headers):
    await seed(client, alice_headers)
    bob = await register(client, username="bob", email="b@x.com")

    r = await client.get("/api/export/json", headers=bearer(bob["token"]))

    assert r.json() == []


@pytest.mark.asyncio
async def test_unsupported_format_is_400(client, alice_headers):
    r = await client.get("/api/export/pdf", headers=alice_headers)

    assert r.status_code == 400
    assert r.json()["detail"] == "Unsupported export format"
