"""
Tests for availability entries, the per-date status and availability requests.
"""

import pytest

DATE = "14-06-2025"


@pytest.fixture
def band(admin_client, make_user, core_member):
    """Three core members (Rikke logs in as herself) plus one replacement."""
    lorentz = make_user("lorentz", member_name="Lorentz", instrument="Vocals")
    kim = make_user("kim", member_name="Kim", instrument="Drums")
    sub = make_user("dep", member_name="Dep", is_core=False, instrument="Drums")
    return {
        "rikke": core_member["memberId"],
        "lorentz": lorentz["memberId"],
        "kim": kim["memberId"],
        "sub": sub["memberId"],
    }


def submit(client, member_id, status, date_string=DATE, comment=None):
    payload = {"dateString": date_string, "memberId": member_id, "status": status}
    if comment is not None:
        payload["comment"] = comment
    return client.post("/api/availability", json=payload)


def status_of(client, date_string=DATE):
    return client.get(f"/api/availability/status?date={date_string}").get_json()


class TestUpsert:

    def test_create_then_overwrite(self, core_client, band):
        first = submit(core_client, band["rikke"], "maybe", comment="Maybe late")
        assert first.status_code == 201
        second = submit(core_client, band["rikke"], "available")
        assert second.status_code == 200
        assert second.get_json()["id"] == first.get_json()["id"]

        entries = core_client.get(
            f"/api/availability?startDate={DATE}&endDate={DATE}&memberId={band['rikke']}").get_json()
        assert len(entries) == 1
        assert entries[0]["status"] == "available"
        assert entries[0]["comment"] == ""

    def test_only_own_member_unless_admin(self, core_client, admin_client, band):
        assert submit(core_client, band["kim"], "available").status_code == 403
        assert submit(admin_client, band["kim"], "available").status_code == 201

    def test_validation(self, admin_client, band):
        assert submit(admin_client, band["kim"], "sometimes").status_code == 400
        assert submit(admin_client, band["kim"], "available", date_string="2025-06-14").status_code == 400
        assert submit(admin_client, "member_missing", "available").status_code == 400
        assert admin_client.post("/api/availability", json={"memberId": band["kim"]}).status_code == 400

    @pytest.mark.parametrize("date_string", [14062025, ["14-06-2025"], {"d": 1}])
    def test_non_string_date_is_rejected(self, admin_client, band, date_string):
        assert submit(admin_client, band["kim"], "available", date_string=date_string).status_code == 400

    @pytest.mark.parametrize("member_id", [1, ["x"], {"id": "x"}])
    def test_non_string_member_is_rejected(self, admin_client, member_id):
        assert submit(admin_client, member_id, "available").status_code == 400

    def test_delete(self, core_client, admin_client, band):
        mine = submit(core_client, band["rikke"], "available").get_json()
        other = submit(admin_client, band["kim"], "available").get_json()
        assert core_client.delete(f"/api/availability/{other['id']}").status_code == 403
        assert core_client.delete(f"/api/availability/{mine['id']}").status_code == 200
        assert core_client.delete(f"/api/availability/{mine['id']}").status_code == 404


class TestRange:

    def test_range_filters_by_real_dates(self, admin_client, band):
        # lexicographic comparison of DD-MM-YYYY would get these wrong
        submit(admin_client, band["kim"], "available", date_string="31-05-2025")
        submit(admin_client, band["kim"], "available", date_string="01-06-2025")
        submit(admin_client, band["kim"], "available", date_string="02-07-2025")

        entries = admin_client.get("/api/availability?startDate=01-06-2025&endDate=30-06-2025").get_json()
        assert [e["dateString"] for e in entries] == ["01-06-2025"]

    def test_bad_range(self, admin_client):
        assert admin_client.get("/api/availability").status_code == 400
        assert admin_client.get("/api/availability?startDate=2025-06-01&endDate=2025-06-30").status_code == 400
        assert admin_client.get("/api/availability?startDate=30-06-2025&endDate=01-06-2025").status_code == 400
        assert admin_client.get("/api/availability?startDate=01-01-2025&endDate=01-01-2027").status_code == 400


class TestDateStatus:

    def test_polling_scenario(self, core_client, admin_client, band):
        submit(core_client, band["rikke"], "available")
        submit(admin_client, band["lorentz"], "available")
        # replacement answers do not count towards the core roster
        submit(admin_client, band["sub"], "available")

        body = status_of(core_client)
        assert body["status"] == "unknown"
        assert body["responded"] == 2
        assert body["required"] == 3
        assert band["sub"] not in body["coreMembers"]

        submit(admin_client, band["kim"], "maybe")
        assert status_of(core_client)["status"] == "partial"

        submit(admin_client, band["kim"], "unavailable")
        assert status_of(core_client)["status"] == "conflict"

        submit(admin_client, band["kim"], "available")
        assert status_of(core_client)["status"] == "full"

    def test_early_unavailable_stays_unknown(self, core_client, band):
        submit(core_client, band["rikke"], "unavailable")
        assert status_of(core_client)["status"] == "unknown"

    def test_no_core_members_is_full(self, admin_client):
        assert status_of(admin_client)["status"] == "full"

    def test_bad_date(self, admin_client):
        assert admin_client.get("/api/availability/status?date=2025-06-14").status_code == 400

    def test_calendar(self, core_client, admin_client, band):
        for key in ("rikke", "lorentz", "kim"):
            submit(admin_client, band[key], "available", date_string="01-06-2025")
        body = core_client.get("/api/availability/calendar?startDate=31-05-2025&endDate=02-06-2025").get_json()

        assert body["startDate"] == "31-05-2025"
        assert body["endDate"] == "02-06-2025"
        assert {k: v["status"] for k, v in body["dates"].items()} == {
            "31-05-2025": "unknown",
            "01-06-2025": "full",
            "02-06-2025": "unknown",
        }


class TestRequests:

    def test_request_lifecycle(self, core_client, band):
        resp = core_client.post("/api/availability/requests", json={
            "dates": [DATE, "15-06-2025", DATE],
            "message": "Wedding gig?",
            "requestedBy": "Rikke",
        })
        assert resp.status_code == 201
        req = resp.get_json()
        assert req["dates"] == [DATE, "15-06-2025"]
        assert req["status"] == "pending"

        body = core_client.put(f"/api/availability/requests/{req['id']}",
                               json={"memberId": band["rikke"], "response": "maybe"}).get_json()
        assert body["responses"][0]["memberName"] == "Rikke"

        body = core_client.put(f"/api/availability/requests/{req['id']}",
                               json={"memberId": band["rikke"], "response": "available"}).get_json()
        assert [r["response"] for r in body["responses"]] == ["available"]

        body = core_client.put(f"/api/availability/requests/{req['id']}", json={"status": "completed"}).get_json()
        assert body["status"] == "completed"

        assert core_client.delete(f"/api/availability/requests/{req['id']}").status_code == 200
        assert core_client.get("/api/availability/requests").get_json() == []

    def test_request_validation(self, core_client, band):
        assert core_client.post("/api/availability/requests",
                                json={"dates": [], "requestedBy": "Rikke"}).status_code == 400
        assert core_client.post("/api/availability/requests",
                                json={"dates": ["2025-06-14"], "requestedBy": "Rikke"}).status_code == 400
        req = core_client.post("/api/availability/requests",
                               json={"dates": [DATE], "requestedBy": "Rikke"}).get_json()
        resp = core_client.put(f"/api/availability/requests/{req['id']}",
                               json={"memberId": band["kim"], "response": "available"})
        assert resp.status_code == 403

    def test_replacement_cannot_create_requests(self, replacement_client):
        resp = replacement_client.post("/api/availability/requests",
                                       json={"dates": [DATE], "requestedBy": "Sub"})
        assert resp.status_code == 403

    @pytest.mark.parametrize("dates", [[1], [None], [["14-06-2025"]]])
    def test_non_string_request_dates(self, core_client, dates):
        resp = core_client.post("/api/availability/requests", json={"dates": dates, "requestedBy": "Rikke"})
        assert resp.status_code == 400

    def test_replacement_can_respond_but_not_close(self, core_client, replacement_client, replacement_member):
        req = core_client.post("/api/availability/requests",
                               json={"dates": [DATE], "requestedBy": "Rikke"}).get_json()
        url = f"/api/availability/requests/{req['id']}"

        answered = replacement_client.put(url, json={"memberId": replacement_member["memberId"],
                                                     "response": "available"})
        assert answered.status_code == 200

        assert replacement_client.put(url, json={"status": "completed"}).status_code == 403
        assert replacement_client.put(url, json={"status": "cancelled", "memberId": replacement_member["memberId"],
                                                 "response": "maybe"}).status_code == 403

        body = core_client.get("/api/availability/requests").get_json()[0]
        assert body["status"] == "pending"
        assert [r["response"] for r in body["responses"]] == ["available"]
