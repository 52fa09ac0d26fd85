# backend/tests/test_api.py
import pytest


def create_user(client, name, role="participant", **kw):
    r = client.post("/users", json={"name": name, "email": f"{name}@example.org", "role": role, **kw})
    assert r.status_code == 201, r.text
    return r.json()


def create_mission(client, org_id, **kw):
    body = {"organization_id": org_id, "title": "Community garden", "duration": 60, "max_participants": 2}
    body.update(kw)
    r = client.post("/missions", json=body)
    assert r.status_code == 201, r.text
    return r.json()


def apply(client, mission_id, user_id):
    r = client.post(f"/missions/{mission_id}/applications", json={"applicant_id": user_id, "message": "hi"})
    assert r.status_code == 201, r.text
    return r.json()


def review(client, mission_id, application_id, status):
    return client.put(f"/missions/{mission_id}/applications/{application_id}", json={"status": status})


@pytest.fixture
def org(client):
    return create_user(client, "greenorg", role="organization")


class TestUsers:
    def test_create_user_opens_wallet(self, client, ledger):
        user = create_user(client, "alice")
        assert user["wallet_address"] == "rFake1"
        assert "wallet_secret" not in user
        assert user["points"] == 0
        assert user["level"]["name"] == "New Citizen"
        assert user["next_level"]["name"] == "Good Citizen"
        assert user["points_to_next"] == 10
        assert user["achievements"] == []

    def test_create_user_without_wallet(self, client, ledger):
        user = create_user(client, "bob", create_wallet=False)
        assert user["wallet_address"] is None
        assert ledger.accounts == 0

    def test_duplicate_email(self, client):
        create_user(client, "carol")
        r = client.post("/users", json={"name": "Carol", "email": "CAROL@example.org"})
        assert r.status_code == 409
        assert r.json() == {"detail": "Email already registered"}

    def test_invalid_email(self, client):
        r = client.post("/users", json={"name": "x", "email": "nope"})
        assert r.status_code == 422

    def test_unknown_user(self, client):
        r = client.get("/users/999")
        assert r.status_code == 404
        assert r.json() == {"detail": "User not found"}

    def test_balance(self, client, ledger):
        user = create_user(client, "dave")
        ledger.balances["rFake1"] = 7
        r = client.get(f"/users/{user['id']}/balance")
        assert r.status_code == 200
        assert float(r.json()["balance_xrp"]) == 7

    def test_balance_without_wallet(self, client):
        user = create_user(client, "erin", create_wallet=False)
        r = client.get(f"/users/{user['id']}/balance")
        assert r.status_code == 404
        assert r.json() == {"detail": "User has no ledger account"}


class TestMissions:
    def test_create_mission_derives_points(self, client, org):
        mission = create_mission(client, org["id"], duration=150, reward_xrp="2")
        assert mission["points"] == 3
        assert mission["reward_xrp"] == 2
        assert mission["status"] == "published"
        assert mission["remaining_spots"] == 2

    def test_volunteer_reward_forced_to_zero(self, client, org):
        mission = create_mission(client, org["id"], reward_xrp="10", is_volunteer=True)
        assert mission["reward_xrp"] == 0

    def test_reward_is_clamped(self, client, org):
        assert create_mission(client, org["id"], reward_xrp="500")["reward_xrp"] == 100
        assert create_mission(client, org["id"], reward_xrp="-3")["reward_xrp"] == 0

    def test_participant_cannot_create(self, client):
        user = create_user(client, "frank")
        r = client.post("/missions", json={"organization_id": user["id"], "title": "x"})
        assert r.status_code == 400

    def test_list_filters(self, client, org):
        create_mission(client, org["id"])
        assert len(client.get("/missions", params={"status": "published"}).json()) == 1
        assert client.get("/missions", params={"status": "completed"}).json() == []
        assert client.get("/missions", params={"organization_id": 999}).json() == []

    def test_unknown_mission(self, client):
        assert client.get("/missions/999").status_code == 404

    def test_patch(self, client, org):
        mission = create_mission(client, org["id"], reward_xrp="3")
        r = client.patch(f"/missions/{mission['id']}", json={"duration": 120, "title": "Garden day"})
        assert r.status_code == 200
        assert r.json()["points"] == 2
        assert r.json()["title"] == "Garden day"

        r = client.patch(f"/missions/{mission['id']}", json={"is_volunteer": True})
        assert r.json()["reward_xrp"] == 0

    def test_patch_capacity_below_accepted(self, client, org):
        mission = create_mission(client, org["id"])
        for name in ("g1", "g2"):
            a = apply(client, mission["id"], create_user(client, name)["id"])
            assert review(client, mission["id"], a["id"], "accepted").status_code == 200
        r = client.patch(f"/missions/{mission['id']}", json={"max_participants": 1})
        assert r.status_code == 409

    def test_delete(self, client, org):
        mission = create_mission(client, org["id"])
        apply(client, mission["id"], create_user(client, "h1")["id"])
        assert client.delete(f"/missions/{mission['id']}").status_code == 204
        assert client.get(f"/missions/{mission['id']}").status_code == 404

    def test_delete_with_accepted_participants(self, client, org):
        mission = create_mission(client, org["id"])
        a = apply(client, mission["id"], create_user(client, "i1")["id"])
        review(client, mission["id"], a["id"], "accepted")
        assert client.delete(f"/missions/{mission['id']}").status_code == 400


class TestApplications:
    def test_apply_and_duplicate(self, client, org):
        mission = create_mission(client, org["id"])
        user = create_user(client, "jane")
        application = apply(client, mission["id"], user["id"])
        assert application["status"] == "pending"

        r = client.post(f"/missions/{mission['id']}/applications", json={"applicant_id": user["id"]})
        assert r.status_code == 409

        listed = client.get(f"/users/{user['id']}/applications").json()
        assert [a["id"] for a in listed] == [application["id"]]

    def test_capacity(self, client, org):
        mission = create_mission(client, org["id"], max_participants=1)
        first = apply(client, mission["id"], create_user(client, "k1")["id"])
        second = apply(client, mission["id"], create_user(client, "k2")["id"])

        r = review(client, mission["id"], first["id"], "accepted")
        assert r.status_code == 200
        assert r.json()["mission"]["remaining_spots"] == 0

        r = review(client, mission["id"], second["id"], "accepted")
        assert r.status_code == 409
        assert r.json()["detail"] == "Maximum number of participants reached"

        # rejecting the accepted one frees the seat
        r = review(client, mission["id"], first["id"], "rejected")
        assert r.json()["mission"]["accepted_count"] == 0
        assert review(client, mission["id"], second["id"], "accepted").status_code == 200

    def test_status_filter(self, client, org):
        mission = create_mission(client, org["id"])
        a = apply(client, mission["id"], create_user(client, "l1")["id"])
        apply(client, mission["id"], create_user(client, "l2")["id"])
        review(client, mission["id"], a["id"], "accepted")

        r = client.get(f"/missions/{mission['id']}/applications", params={"status": "accepted"})
        assert [x["id"] for x in r.json()] == [a["id"]]

    def test_cannot_set_completed_directly(self, client, org):
        mission = create_mission(client, org["id"])
        a = apply(client, mission["id"], create_user(client, "m1")["id"])
        assert review(client, mission["id"], a["id"], "completed").status_code == 422


class TestCompletion:
    def test_complete_flow(self, client, ledger, org):
        mission = create_mission(client, org["id"], reward_xrp="1.5")
        user = create_user(client, "nina")
        a = apply(client, mission["id"], user["id"])
        review(client, mission["id"], a["id"], "accepted")

        r = client.post(f"/missions/{mission['id']}/complete", json={"participant_ids": [user["id"]]})
        assert r.status_code == 200, r.text
        body = r.json()
        assert body["mission"]["status"] == "completed"
        [result] = body["participants"]
        assert result["participant_id"] == user["id"]
        assert result["earned_points"] == 1
        assert result["nft"]["success"] is True
        assert result["xrp"]["success"] is True
        assert result["xrp"]["amount"] == 1.5

        profile = client.get(f"/users/{user['id']}").json()
        assert profile["points"] == 1
        assert profile["completed_missions"] == 1
        assert [a["key"] for a in profile["achievements"]] == ["first_mission"]
        assert result["new_achievements"] == ["First Mission"]

        txs = client.get("/transactions", params={"mission_id": mission["id"]}).json()
        assert sorted(t["type"] for t in txs) == ["mission-nft-mint", "reward-payment"]
        assert client.get(f"/users/{user['id']}/transactions").json()

    def test_ledger_failure_still_200(self, client, ledger, org):
        ledger.fail_transfer = True
        mission = create_mission(client, org["id"], reward_xrp="1")
        user = create_user(client, "omar")
        a = apply(client, mission["id"], user["id"])
        review(client, mission["id"], a["id"], "accepted")

        r = client.post(f"/missions/{mission['id']}/complete", json={"participant_ids": [user["id"]]})
        assert r.status_code == 200
        assert r.json()["participants"][0]["xrp"]["success"] is False

        failed = client.get("/transactions", params={"status": "failed"}).json()
        assert [t["type"] for t in failed] == ["reward-payment"]

    def test_completed_mission_is_frozen(self, client, org):
        mission = create_mission(client, org["id"])
        user = create_user(client, "pia")
        a = apply(client, mission["id"], user["id"])
        review(client, mission["id"], a["id"], "accepted")
        client.post(f"/missions/{mission['id']}/complete", json={"participant_ids": [user["id"]]})

        again = client.post(f"/missions/{mission['id']}/complete", json={"participant_ids": [user["id"]]})
        assert again.status_code == 409
        assert review(client, mission["id"], a["id"], "rejected").status_code == 409
        late = create_user(client, "quinn")
        r = client.post(f"/missions/{mission['id']}/applications", json={"applicant_id": late["id"]})
        assert r.status_code == 409
        assert client.patch(f"/missions/{mission['id']}", json={"title": "x"}).status_code == 409
        assert client.delete(f"/missions/{mission['id']}").status_code == 400

    def test_complete_unknown_mission(self, client):
        r = client.post("/missions/999/complete", json={"participant_ids": []})
        assert r.status_code == 404


class TestLeaderboard:
    def test_leaderboard_and_stats(self, client, org):
        mission = create_mission(client, org["id"], duration=600, max_participants=3)
        users = [create_user(client, n) for n in ("r1", "r2")]
        a = apply(client, mission["id"], users[1]["id"])
        review(client, mission["id"], a["id"], "accepted")
        client.post(f"/missions/{mission['id']}/complete", json={"participant_ids": [users[1]["id"]]})

        board = client.get("/leaderboard").json()
        assert [e["id"] for e in board] == [users[1]["id"], users[0]["id"]]
        assert board[0]["rank"] == 1
        assert board[0]["points"] == 10
        assert board[0]["level"] == "Good Citizen"

        stats = client.get("/leaderboard/stats").json()
        assert stats["total_participants"] == 2
        assert stats["total_organizations"] == 1
        assert stats["completed_missions"] == 1
        assert stats["total_points_distributed"] == 10

    def test_citizen_levels(self, client):
        levels = client.get("/leaderboard/citizen-levels").json()
        assert levels[0]["min_points"] == 0
        assert levels[-1]["max_points"] is None
        assert [lv["name"] for lv in levels][:2] == ["New Citizen", "Good Citizen"]


def test_health(client):
    assert client.get("/health").json() == {"ok": True}
