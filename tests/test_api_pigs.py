"""API-level tests for submitting, listing, fetching and liking drawings."""

from sqlalchemy import text

from conftest import PNG_DATA_URI, TEN_MINUTES_MS


def submit(client, name="Bacon", image=PNG_DATA_URI, ip="8.8.8.8"):
    return client.post(
        "/api/pigs",
        json={"name": name, "image": image},
        headers={"X-Forwarded-For": ip},
    )


class TestSubmitPig:
    def test_round_trip(self, client):
        response = submit(client, name="Bacon")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"]

        fetched = client.get(f"/api/pigs/{data['id']}")
        assert fetched.status_code == 200
        pig = fetched.json()["pig"]
        assert pig["name"] == "Bacon"
        assert pig["likes"] == 0
        assert pig["location"] == "Mountain View"
        assert "ip" not in pig

    def test_missing_fields(self, client):
        response = client.post("/api/pigs", json={"name": "Bacon"})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Missing required parameters"}

    def test_name_too_long(self, client):
        response = submit(client, name="x" * 21)
        assert response.status_code == 400
        assert "20" in response.json()["error"]

    def test_invalid_image(self, client):
        response = submit(client, image="iVBORw0KGgo=")
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid image format"

    def test_wrong_field_types_are_bad_input(self, client):
        response = client.post("/api/pigs", json={"name": 12, "image": PNG_DATA_URI})
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_malformed_json_is_bad_input(self, client):
        response = client.post(
            "/api/pigs", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400

    def test_rate_limit_per_address(self, client, clock):
        for _ in range(3):
            assert submit(client, ip="8.8.8.8").status_code == 200

        limited = submit(client, ip="8.8.8.8")
        assert limited.status_code == 429
        assert limited.json()["success"] is False
        assert submit(client, ip="1.1.1.1").status_code == 200

        clock.advance(TEN_MINUTES_MS)
        assert submit(client, ip="8.8.8.8").status_code == 200

    def test_local_submitter(self, client):
        pig_id = submit(client, ip="192.168.0.4").json()["id"]
        assert client.get(f"/api/pigs/{pig_id}").json()["pig"]["location"] == "Local"


class TestListPigs:
    def test_default_listing(self, client, clock):
        for name in ("one", "two", "three"):
            submit(client, name=name, ip=f"8.8.4.{len(name)}")
            clock.advance(1000)

        data = client.get("/api/pigs").json()

        assert data["success"] is True
        assert data["total"] == 3
        assert data["page"] == 0
        assert data["search"] is None
        assert [p["name"] for p in data["pigs"]] == ["three", "two", "one"]
        assert all("ip" not in p for p in data["pigs"])
        assert all(p["comment_count"] == 0 for p in data["pigs"])

    def test_search_filters_total(self, client):
        submit(client, name="Bacon", ip="8.8.4.1")
        submit(client, name="Ham", ip="8.8.4.2")
        submit(client, name="Bacon Bits", ip="8.8.4.3")

        data = client.get("/api/pigs", params={"search": " Bacon "}).json()

        assert data["total"] == 2
        assert data["search"] == "Bacon"
        assert all("Bacon" in p["name"] for p in data["pigs"])

    def test_sort_by_likes(self, client):
        ids = [submit(client, name=f"p{i}", ip=f"8.8.4.{i}").json()["id"] for i in range(3)]
        for _ in range(2):
            client.post(f"/api/pigs/{ids[0]}/like")
        client.post(f"/api/pigs/{ids[2]}/like")

        pigs = client.get("/api/pigs", params={"sort": "likes"}).json()["pigs"]

        assert [p["likes"] for p in pigs] == [2, 1, 0]
        assert pigs[0]["id"] == ids[0]

    def test_sort_by_comments(self, client):
        ids = [submit(client, name=f"p{i}", ip=f"8.8.4.{i}").json()["id"] for i in range(3)]
        client.post(f"/api/pigs/{ids[1]}/comments", json={"content": "nice"}, headers={"X-Forwarded-For": "9.9.9.1"})
        client.post(f"/api/pigs/{ids[1]}/comments", json={"content": "very"}, headers={"X-Forwarded-For": "9.9.9.2"})
        client.post(f"/api/pigs/{ids[0]}/comments", json={"content": "ok"}, headers={"X-Forwarded-For": "9.9.9.3"})

        pigs = client.get("/api/pigs", params={"sort": "comments"}).json()["pigs"]

        assert [p["comment_count"] for p in pigs] == [2, 1, 0]
        assert [p["id"] for p in pigs] == [ids[1], ids[0], ids[2]]

    def test_lenient_pagination_params(self, client):
        for i in range(3):
            submit(client, name=f"p{i}", ip=f"8.8.4.{i}")

        data = client.get("/api/pigs", params={"page": "abc", "limit": "2"}).json()
        assert data["page"] == 0
        assert len(data["pigs"]) == 2

        data = client.get("/api/pigs", params={"page": "1", "limit": "2"}).json()
        assert data["page"] == 1
        assert len(data["pigs"]) == 1

    def test_oversized_page_is_empty(self, client):
        submit(client)

        response = client.get("/api/pigs", params={"page": "99999999999999999999"})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["pigs"] == []


class TestGetPig:
    def test_not_found(self, client):
        response = client.get("/api/pigs/999")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Pig not found"}

    def test_non_numeric_id_is_not_found(self, client):
        assert client.get("/api/pigs/bacon").status_code == 404

    def test_oversized_id_is_not_found(self, client):
        assert client.get("/api/pigs/99999999999999999999").status_code == 404


class TestLikePig:
    def test_like_counts_calls(self, client):
        pig_id = submit(client).json()["id"]
        results = [client.post(f"/api/pigs/{pig_id}/like").json()["likes"] for _ in range(5)]
        assert results == [1, 2, 3, 4, 5]
        assert client.get(f"/api/pigs/{pig_id}").json()["pig"]["likes"] == 5

    def test_like_missing(self, client):
        assert client.post("/api/pigs/77/like").status_code == 404

    def test_like_bad_id(self, client):
        for bad in ("0", "abc", "-1"):
            response = client.post(f"/api/pigs/{bad}/like")
            assert response.status_code == 400
            assert response.json()["error"] == "Invalid ID"

    def test_like_oversized_id(self, client):
        response = client.post("/api/pigs/99999999999999999999/like")
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid ID"


class TestStats:
    def test_empty_stats(self, client):
        data = client.get("/api/stats").json()
        assert data == {"success": True, "stats": {"total": 0, "totalLikes": 0, "countries": 0}}

    def test_stats(self, client):
        first = submit(client, ip="8.8.8.8").json()["id"]
        submit(client, ip="1.1.1.1")
        submit(client, ip="8.8.8.8")
        client.post(f"/api/pigs/{first}/like")
        client.post(f"/api/pigs/{first}/like")

        stats = client.get("/api/stats").json()["stats"]

        assert stats == {"total": 3, "totalLikes": 2, "countries": 2}


class TestServerErrors:
    def test_database_fault_is_generic_500(self, client, engine):
        with engine.begin() as conn:
            conn.execute(text("DROP TABLE pigs"))

        response = client.get("/api/stats")

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert "pigs" not in body["error"]
        assert "SELECT" not in body["error"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
