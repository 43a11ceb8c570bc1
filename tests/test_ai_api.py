"""
Tests for the AI setlist endpoint; the model call is stubbed out.
"""

import pytest

import routes.ai
from ai_setlist import AISetlistError


@pytest.fixture
def suggestion(songs):
    return {
        "name": "Party Night",
        "songs": [
            {"id": songs[0], "position": 1, "reasoning": "Opens strong"},
            {"id": songs[2], "position": 2, "reasoning": "Keeps it up"},
            {"id": songs[0], "position": 3, "reasoning": "Repeat"},
            {"id": "song_invented", "position": 4},
        ],
        "reasoning": "High energy start",
        "alternativeSongs": [
            {"id": songs[1], "reasoning": "If the crowd wants a ballad"},
            {"id": songs[2], "reasoning": "Already chosen"},
        ],
    }


@pytest.fixture
def stub_ai(monkeypatch, suggestion):
    calls = []

    def fake_request(prompt, *, api_key, model, timeout):
        calls.append({"prompt": prompt, "model": model})
        return suggestion

    monkeypatch.setattr(routes.ai, "request_setlist", fake_request)
    return calls


class TestGenerate:

    def test_suggestion_is_assembled(self, core_client, stub_ai, songs):
        resp = core_client.post("/api/ai-setlist", json={"duration": 30, "vibe": "Party"})
        assert resp.status_code == 200
        body = resp.get_json()

        setlist = body["setlist"]
        assert setlist["name"] == "Party Night"
        assert setlist["createdBy"] == "AI Assistant"
        assert [s["id"] for s in setlist["songs"]] == [songs[0], songs[2]]
        assert [s["position"] for s in setlist["songs"]] == [1, 2]
        assert setlist["songs"][0]["title"] == "Opener"
        assert setlist["songs"][0]["reasoning"] == "Opens strong"
        assert [s["id"] for s in setlist["alternativeSongs"]] == [songs[1]]

        assert body["metadata"]["dropped"] == 2
        assert body["metadata"]["songCount"] == 2
        assert body["metadata"]["totalDuration"] == 6.5
        assert "savedSetId" not in body

        assert "- Target Duration: 30 minutes" in stub_ai[0]["prompt"]
        assert "- Vibe: Party" in stub_ai[0]["prompt"]

    def test_excluded_songs_are_not_offered(self, core_client, stub_ai, songs):
        core_client.post("/api/ai-setlist", json={"excludeSongs": [songs[1]]})
        prompt = stub_ai[0]["prompt"]
        assert f'"id": "{songs[0]}"' in prompt
        assert f'"id": "{songs[1]}"' not in prompt.split("REQUIREMENTS:")[0]

    def test_save_creates_set(self, core_client, stub_ai, songs):
        body = core_client.post("/api/ai-setlist", json={"save": True}).get_json()
        saved = core_client.get(f"/api/sets/{body['savedSetId']}").get_json()
        assert saved["name"] == "Party Night"
        assert saved["songIds"] == [songs[0], songs[2]]
        assert saved["songs"][1]["reasoning"] == "Keeps it up"


class TestFailures:

    def test_missing_key_is_503(self, core_client, songs):
        resp = core_client.post("/api/ai-setlist", json={})
        assert resp.status_code == 503
        assert resp.get_json()["error"] == "Failed to generate setlist"

    def test_upstream_error(self, core_client, songs, monkeypatch):
        def fail(prompt, **kwargs):
            raise AISetlistError("AI service error (500): boom")

        monkeypatch.setattr(routes.ai, "request_setlist", fail)
        resp = core_client.post("/api/ai-setlist", json={})
        assert resp.status_code == 502
        assert "boom" in resp.get_json()["details"]

    def test_empty_catalog(self, core_client):
        resp = core_client.post("/api/ai-setlist", json={})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "No songs found in database"

    def test_replacement_forbidden(self, replacement_client, songs):
        assert replacement_client.post("/api/ai-setlist", json={}).status_code == 403

    @pytest.mark.parametrize("field, value", [
        ("excludeSongs", 5),
        ("includeSongs", "song_1"),
        ("excludeSongs", {"id": "x"}),
    ])
    def test_song_lists_must_be_lists(self, core_client, stub_ai, field, value):
        resp = core_client.post("/api/ai-setlist", json={field: value})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == f"{field} must be a list"
        assert stub_ai == []
