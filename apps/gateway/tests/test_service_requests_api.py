"""服务请求 HTTP 接口测试"""

from httpx import AsyncClient


async def _create_request(client: AsyncClient, marketplace, provider_id: str = "prov-p1"):
    resp = await client.post(
        "/api/service-requests",
        json={"provider_id": provider_id, "message": "Available on Saturday?"},
        headers=marketplace.auth("C"),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestServiceRequestsApi:
    async def test_create_and_list_both_sides(self, client: AsyncClient, marketplace):
        created = await _create_request(client, marketplace)
        assert created["status"] == "pending"
        assert created["client_id"] == "user-c"

        mine = await client.get("/api/service-requests/client", headers=marketplace.auth("C"))
        assert [r["request_id"] for r in mine.json()["requests"]] == [created["request_id"]]

        inbox = await client.get(
            "/api/service-requests/provider", headers=marketplace.auth("P1")
        )
        assert [r["request_id"] for r in inbox.json()["requests"]] == [created["request_id"]]

        other = await client.get(
            "/api/service-requests/provider", headers=marketplace.auth("P2")
        )
        assert other.json()["requests"] == []

    async def test_unknown_provider(self, client: AsyncClient, marketplace):
        resp = await client.post(
            "/api/service-requests",
            json={"provider_id": "prov-missing"},
            headers=marketplace.auth("C"),
        )
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "PROVIDER_NOT_FOUND"

    async def test_provider_inbox_requires_profile(self, client: AsyncClient, marketplace):
        resp = await client.get("/api/service-requests/provider", headers=marketplace.auth("C"))
        assert resp.status_code == 404

    async def test_status_flow(self, client: AsyncClient, marketplace):
        created = await _create_request(client, marketplace)
        url = f"/api/service-requests/{created['request_id']}"

        resp = await client.put(url, json={"status": "accepted"}, headers=marketplace.auth("P1"))
        assert resp.status_code == 200
        assert resp.json()["status"] == "accepted"

        resp = await client.put(url, json={"status": "rejected"}, headers=marketplace.auth("P1"))
        assert resp.status_code == 409

        resp = await client.put(
            url, json={"status": "in-progress"}, headers=marketplace.auth("C")
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "in-progress"

    async def test_only_parties_may_update(self, client: AsyncClient, marketplace):
        created = await _create_request(client, marketplace)
        resp = await client.put(
            f"/api/service-requests/{created['request_id']}",
            json={"status": "rejected"},
            headers=marketplace.auth("P2"),
        )
        assert resp.status_code == 403

    async def test_update_missing_request(self, client: AsyncClient, marketplace):
        resp = await client.put(
            "/api/service-requests/missing",
            json={"status": "accepted"},
            headers=marketplace.auth("P1"),
        )
        assert resp.status_code == 404
