"""
Tests for saved sets: assembly on write, hydration on read.
"""


class TestCreateSet:

    def test_duplicates_and_unknown_ids_are_dropped(self, core_client, songs):
        a, b, c = songs
        resp = core_client.post("/api/sets", json={
            "name": "Friday",
            "songs": [{"id": a}, {"id": b}, {"id": a}, {"id": "song_missing"}, c],
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["dropped"] == 2
        assert body["songIds"] == [a, b, c]
        assert [s["position"] for s in body["songs"]] == [1, 2, 3]
        assert body["createdBy"] == "rikke"

    def test_metrics(self, core_client, songs):
        body = core_client.post("/api/sets", json={"name": "Friday", "songs": songs}).get_json()
        metrics = body["metrics"]
        assert metrics["songCount"] == 3
        assert metrics["totalDuration"] == 10.5
        assert metrics["englishPercentage"] == 67
        assert metrics["energyDistribution"] == {"High": 2, "Low": 1}
        assert metrics["singerBalance"] == {"Rikke": 1, "Lorentz": 1, "Both": 1}
        assert metrics["instrumentChanges"] == {"bassGuitar": 1, "guitar": 2}

    def test_catalog_wins_and_annotations_survive(self, core_client, songs):
        stale = {"id": songs[0], "title": "Old title", "reasoning": "Strong opener", "position": 9}
        body = core_client.post("/api/sets", json={"name": "Friday", "songs": [stale]}).get_json()
        song = body["songs"][0]
        assert song["title"] == "Opener"
        assert song["reasoning"] == "Strong opener"
        assert song["position"] == 1

        again = core_client.get(f"/api/sets/{body['id']}").get_json()
        assert again["songs"][0]["reasoning"] == "Strong opener"

    def test_requires_name_and_list(self, core_client, songs):
        assert core_client.post("/api/sets", json={"songs": songs}).status_code == 400
        assert core_client.post("/api/sets", json={"name": "x", "songs": "abc"}).status_code == 400

    def test_replacement_cannot_create(self, replacement_client, songs):
        assert replacement_client.post("/api/sets", json={"name": "x", "songs": songs}).status_code == 403


class TestReadAndUpdate:

    def test_catalog_edits_show_up_in_sets(self, core_client, songs):
        set_id = core_client.post("/api/sets", json={"name": "Friday", "songs": songs}).get_json()["id"]
        core_client.put(f"/api/songs/{songs[0]}", json={"title": "Renamed opener"})

        body = core_client.get(f"/api/sets/{set_id}").get_json()
        assert body["songs"][0]["title"] == "Renamed opener"

    def test_deleted_song_disappears_on_read(self, core_client, songs):
        set_id = core_client.post("/api/sets", json={"name": "Friday", "songs": songs}).get_json()["id"]
        core_client.delete(f"/api/songs/{songs[1]}")

        body = core_client.get(f"/api/sets/{set_id}").get_json()
        assert [s["id"] for s in body["songs"]] == [songs[0], songs[2]]
        assert [s["position"] for s in body["songs"]] == [1, 2]

    def test_update_reorders(self, core_client, songs):
        set_id = core_client.post("/api/sets", json={"name": "Friday", "songs": songs}).get_json()["id"]
        body = core_client.put(f"/api/sets/{set_id}",
                               json={"name": "Saturday", "songs": list(reversed(songs))}).get_json()
        assert body["name"] == "Saturday"
        assert body["songIds"] == list(reversed(songs))
        assert body["dropped"] == 0

    def test_list_and_delete(self, core_client, songs):
        set_id = core_client.post("/api/sets", json={"name": "Friday", "songs": songs}).get_json()["id"]
        assert [s["id"] for s in core_client.get("/api/sets").get_json()] == [set_id]
        assert core_client.delete(f"/api/sets/{set_id}").status_code == 200
        assert core_client.get(f"/api/sets/{set_id}").status_code == 404


class TestValidateAndExport:

    def test_validate_does_not_save(self, core_client, songs):
        body = core_client.post("/api/sets/validate", json={"songs": [songs[0], songs[0], "nope"]}).get_json()
        assert body["songIds"] == [songs[0]]
        assert body["dropped"] == 2
        assert body["metrics"]["songCount"] == 1
        assert core_client.get("/api/sets").get_json() == []

    def test_pdf_export(self, core_client, songs):
        set_id = core_client.post("/api/sets", json={"name": "Friday", "songs": songs}).get_json()["id"]
        resp = core_client.get(f"/api/sets/{set_id}/export.pdf")
        assert resp.status_code == 200
        assert resp.mimetype == "application/pdf"
        assert resp.data.startswith(b"%PDF")
