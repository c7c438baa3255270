"""Result entry, scheduling and standings over HTTP."""
import pytest
from fastapi.testclient import TestClient


def _create(client, n=4, approve=True, **config):
    payload = {
        "name": "Result Cup",
        "teams": [{"name": f"Team {i}"} for i in range(1, n + 1)],
        "shuffle": False,
        "bracket_config": config,
        "submit_for_approval": approve,
    }
    tid = client.post("/api/tournaments", json=payload).json()["id"]
    if approve:
        client.post(f"/api/tournaments/{tid}/status", json={"status": "approved"})
    return tid


def _patch(client, tid, match_id, **body):
    return client.patch(f"/api/tournaments/{tid}/matches/{match_id}", json=body)


class TestResultEntry:
    def test_result_advances_winner_and_starts_tournament(self, client: TestClient):
        tid = _create(client)
        response = _patch(client, tid, "match-1", score1=2, score2=1)
        assert response.status_code == 200
        data = response.json()
        assert data["match"]["winner_id"] == "team-1"
        assert data["match"]["state"] == "COMPLETED"
        assert data["match"]["completed_at"].endswith("Z")
        assert [m["id"] for m in data["advanced"]] == ["match-3"]
        assert data["advanced"][0]["team1"]["id"] == "team-1"
        assert data["warnings"] == []
        assert data["tournament_status"] == "ongoing"
        assert client.get(f"/api/tournaments/{tid}").json()["status"] == "ongoing"

    def test_display_score_strings(self, client: TestClient):
        tid = _create(client)
        assert _patch(client, tid, "match-1", score="0-2").json()["match"]["winner_id"] == "team-2"
        assert _patch(client, tid, "match-2", score={"display": "2-0"}).status_code == 200
        final = _patch(client, tid, "match-3", score="3-2").json()
        assert final["match"]["winner_id"] == "team-2"
        assert final["advanced"] == []
        assert final["tournament_status"] == "completed"

    def test_second_result_rejected(self, client: TestClient):
        tid = _create(client)
        _patch(client, tid, "match-1", score1=2, score2=0)
        response = _patch(client, tid, "match-1", score1=0, score2=2)
        assert response.status_code == 409
        assert response.json()["detail"].startswith("MATCH_NOT_PLAYABLE")

    def test_invalid_score(self, client: TestClient):
        tid = _create(client)
        response = _patch(client, tid, "match-1", score="3-0")
        assert response.status_code == 422
        assert response.json()["detail"] == "INVALID_SCORE: A Bo3 must end in 2-0 or 2-1."
        assert client.get(f"/api/tournaments/{tid}/matches/match-1").json()["winner_id"] is None

    @pytest.mark.parametrize("score", ["abc", "2-1-1", {"display": "two"}])
    def test_unparsable_score(self, client: TestClient, score):
        tid = _create(client)
        assert _patch(client, tid, "match-1", score=score).status_code == 422

    def test_waiting_match_not_playable(self, client: TestClient):
        tid = _create(client)
        assert _patch(client, tid, "match-3", score1=3, score2=0).status_code == 409

    def test_results_require_approval(self, client: TestClient):
        tid = _create(client, approve=False)
        response = _patch(client, tid, "match-1", score1=2, score2=0)
        assert response.status_code == 409
        assert response.json()["detail"].startswith("TOURNAMENT_NOT_ACCEPTING_RESULTS")

    def test_unknown_match_and_tournament(self, client: TestClient):
        tid = _create(client)
        assert _patch(client, tid, "match-99", score1=2, score2=0).status_code == 404
        assert client.get(f"/api/tournaments/{tid}/matches/match-99").status_code == 404
        assert _patch(client, 9999, "match-1", score1=2, score2=0).status_code == 404

    def test_double_elimination_loser_drops(self, client: TestClient):
        tid = _create(client, format="Double Elimination")
        data = _patch(client, tid, "match-1", score1=0, score2=2).json()
        advanced = {m["name"]: m for m in data["advanced"]}
        assert advanced["Upper Bracket Final"]["team1"]["id"] == "team-2"
        assert advanced["Elimination Match"]["team1"]["id"] == "team-1"


class TestScheduling:
    def test_start_time_only(self, client: TestClient):
        tid = _create(client, approve=False)
        response = _patch(client, tid, "match-2", start_time="2026-03-02T17:30:00")
        assert response.status_code == 200
        match = response.json()["match"]
        assert match["start_time"] == "2026-03-02T17:30:00Z"
        assert match["state"] == "TIME_SET"
        assert response.json()["tournament_status"] == "draft"

    def test_start_time_offset_converted_to_utc(self, client: TestClient):
        tid = _create(client)
        response = _patch(client, tid, "match-1", start_time="2026-03-02T19:30:00+02:00")
        assert response.json()["match"]["start_time"] == "2026-03-02T17:30:00Z"
        assert client.get(f"/api/tournaments/{tid}/matches/match-1").json()["start_time"] == "2026-03-02T17:30:00Z"

    def test_zero_zero_with_time_is_schedule_only(self, client: TestClient):
        tid = _create(client)
        response = _patch(client, tid, "match-1", score1=0, score2=0, start_time="2026-03-02T18:00:00")
        assert response.json()["match"]["winner_id"] is None
        assert response.json()["tournament_status"] == "approved"

    def test_nothing_to_update(self, client: TestClient):
        tid = _create(client)
        response = _patch(client, tid, "match-1")
        assert response.status_code == 422
        assert response.json()["detail"].startswith("NOTHING_TO_UPDATE")


class TestGroupStage:
    def test_standings_and_playoff_seeding(self, client: TestClient):
        tid = _create(client, n=8, has_group_stage=True)
        group = client.get(f"/api/tournaments/{tid}/matches", params={"stage": "group"}).json()
        assert len(group) == 12

        # Lower-numbered team wins every group match 1-0
        for m in group:
            assert _patch(client, tid, m["id"], score1=1, score2=0).status_code == 200

        standings = client.get(f"/api/tournaments/{tid}/standings").json()
        assert [g["group"] for g in standings] == ["A", "B"]
        assert [r["team"]["id"] for r in standings[0]["rows"]] == ["team-1", "team-2", "team-3", "team-4"]
        assert standings[0]["rows"][0]["wins"] == 3
        assert standings[0]["rows"][0]["point_differential"] == 3

        playoff = client.get(f"/api/tournaments/{tid}/matches", params={"stage": "playoff"}).json()
        round_one = [m for m in playoff if m["round"] == 1]
        assert [(m["team1"]["id"], m["team2"]["id"]) for m in round_one] == [
            ("team-1", "team-6"),
            ("team-5", "team-2"),
        ]
        assert all(not m["team1"]["placeholder"] for m in round_one)

    def test_standings_without_group_stage(self, client: TestClient):
        tid = _create(client)
        assert client.get(f"/api/tournaments/{tid}/standings").status_code == 404


def test_health(client: TestClient):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
