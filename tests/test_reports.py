import uuid
from datetime import datetime, timedelta, timezone

import pytest

from ecoearn_admin.models import Report

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def reports(seed):
    rows = [
        Report(
            user_name="Maria Santos" if i % 3 == 0 else f"Resident {i}",
            description=f"Overflowing bin #{i}",
            location="Block 4" if i % 2 else None,
            timestamp=T0 + timedelta(hours=i),
        )
        for i in range(10)
    ]
    seed(*rows)
    return rows


def test_first_page_holds_eight_newest(client, reports):
    body = client.get("/reports").json()
    assert body["total"] == 10
    assert body["pages"] == 2
    assert body["page"] == 1
    assert [r["description"] for r in body["items"]] == [f"Overflowing bin #{i}" for i in range(9, 1, -1)]


def test_second_page(client, reports):
    body = client.get("/reports", params={"page": 2}).json()
    assert [r["description"] for r in body["items"]] == ["Overflowing bin #1", "Overflowing bin #0"]


def test_oldest_first(client, reports):
    items = client.get("/reports", params={"order": "oldest"}).json()["items"]
    assert items[0]["description"] == "Overflowing bin #0"


def test_search_by_reporter_name(client, reports):
    body = client.get("/reports", params={"search": "maria"}).json()
    assert body["total"] == 4
    assert body["pages"] == 1
    assert {r["user_name"] for r in body["items"]} == {"Maria Santos"}


def test_empty_listing(client):
    assert client.get("/reports").json() == {"items": [], "total": 0, "page": 1, "pages": 0}


def test_report_detail(client, reports):
    target = client.get("/reports").json()["items"][0]
    r = client.get(f"/reports/{target['id']}")
    assert r.status_code == 200
    assert r.json()["description"] == target["description"]


def test_unknown_report(client, reports):
    r = client.get(f"/reports/{uuid.uuid4()}")
    assert r.status_code == 404
    assert r.json()["detail"] == "Report not found"
    assert client.get("/reports/not-a-uuid").status_code == 422


def test_bad_query_values(client):
    assert client.get("/reports", params={"page": 0}).status_code == 422
    assert client.get("/reports", params={"order": "random"}).status_code == 422


def test_search_treats_wildcards_literally(client, seed):
    seed(
        Report(user_name="100% Recycler", description="a"),
        Report(user_name="Recycler 1000", description="b"),
        Report(user_name="jo_lee", description="c"),
        Report(user_name="jo lee", description="d"),
    )
    names = [r["user_name"] for r in client.get("/reports", params={"search": "100%"}).json()["items"]]
    assert names == ["100% Recycler"]
    names = [r["user_name"] for r in client.get("/reports", params={"search": "jo_"}).json()["items"]]
    assert names == ["jo_lee"]
