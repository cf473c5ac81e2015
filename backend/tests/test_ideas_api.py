"""
IdeaHub Backend — Idea Endpoint Tests
======================================

What:  CRUD dispatch behind the gateway, over HTTP.

What we test:
    ✅ Create with defaults, sanitization, whitelisting and forced owner
    ✅ Validation failures are 400 with every violated rule
    ✅ List filters, search, ordering, clamped limit and meta
    ✅ Get / update / archive, owner isolation, malformed ids
    ✅ Missing-id and unsupported-verb responses
"""

import uuid

import pytest

from conftest import OTHER_KEY, OTHER_OWNER, OWNER, READ_KEY, WRITE_KEY, headers
from ideahub.services.validation import STATUS_INVALID, TITLE_REQUIRED

W = headers(WRITE_KEY)


async def create(client, **body):
    response = await client.post("/ideas", headers=W, json=body)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestCreate:

    @pytest.mark.asyncio
    async def test_minimal_create_applies_defaults(self, client):
        response = await client.post("/ideas", headers=W, json={"title": "T"})
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["title"] == "T"
        assert data["status"] == "idea"
        assert data["color"] == "#6B7280"
        assert data["tags"] == []
        assert data["description"] is None
        assert data["user_id"] == OWNER
        uuid.UUID(data["id"])

    @pytest.mark.asyncio
    async def test_invalid_status_rejected(self, client, idea_store):
        response = await client.post("/ideas", headers=W, json={"title": "Test", "status": "bogus"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert body["details"] == [STATUS_INVALID]
        assert idea_store.mutations == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("title", ["", "   "])
    async def test_blank_title_never_reaches_store(self, client, idea_store, title):
        response = await client.post("/ideas", headers=W, json={"title": title})
        assert response.status_code == 400
        assert TITLE_REQUIRED in response.json()["details"]
        assert idea_store.mutations == 0

    @pytest.mark.asyncio
    async def test_title_that_sanitizes_to_nothing(self, client, idea_store):
        response = await client.post("/ideas", headers=W, json={"title": "<script>x</script>"})
        assert response.status_code == 400
        assert response.json()["details"] == [TITLE_REQUIRED]
        assert idea_store.mutations == 0

    @pytest.mark.asyncio
    async def test_content_is_sanitized(self, client):
        data = await create(
            client,
            title="  <b>Plan</b><script>steal()</script> ",
            description="Click [here](javascript:alert(1)) <iframe src='x'>frame</iframe>",
        )
        assert data["title"] == "<b>Plan</b>"
        assert data["description"] == "Click [here](alert(1)) frame"

    @pytest.mark.asyncio
    async def test_owner_and_id_from_body_ignored(self, client):
        forged_id = str(uuid.uuid4())
        data = await create(client, title="T", user_id=OTHER_OWNER, id=forged_id, created_at="1999-01-01")
        assert data["user_id"] == OWNER
        assert data["id"] != forged_id

    @pytest.mark.asyncio
    async def test_all_fields_stored(self, client):
        data = await create(
            client,
            title="Rocket",
            description="To the moon",
            status="research",
            tags=["space", "diy"],
            color="#112233",
            image_url="https://example.com/rocket.png",
        )
        assert data["status"] == "research"
        assert data["tags"] == ["space", "diy"]
        assert data["color"] == "#112233"
        assert data["image_url"] == "https://example.com/rocket.png"

    @pytest.mark.asyncio
    async def test_invalid_json_body(self, client):
        response = await client.post(
            "/ideas", headers={**W, "content-type": "application/json"}, content=b"{not json"
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON body"}

    @pytest.mark.asyncio
    async def test_non_object_body(self, client):
        response = await client.post("/ideas", headers=W, json=["title", "T"])
        assert response.status_code == 400
        assert response.json()["details"] == ["Request body must be a JSON object"]

    @pytest.mark.asyncio
    async def test_too_large_description(self, client):
        response = await client.post(
            "/ideas", headers=W, json={"title": "T", "description": "a" * (10 * 1024 * 1024 + 1)}
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Content too large (max 10MB)"}


class TestList:

    @pytest.mark.asyncio
    async def test_most_recently_updated_first(self, client):
        first = await create(client, title="first")
        second = await create(client, title="second")
        await client.put(f"/ideas/{first['id']}", headers=W, json={"tags": ["bumped"]})

        response = await client.get("/ideas", headers=W)
        titles = [item["title"] for item in response.json()["data"]]
        assert titles == ["first", "second"]
        assert second["id"] in [item["id"] for item in response.json()["data"]]

    @pytest.mark.asyncio
    async def test_meta_reports_clamped_limit(self, client):
        await create(client, title="only")
        response = await client.get("/ideas?limit=500", headers=W)
        assert response.status_code == 200
        assert response.json()["meta"] == {"limit": 100, "offset": 0, "count": 1}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query,expected", [
        ("", {"limit": 50, "offset": 0}),
        ("?limit=0", {"limit": 1, "offset": 0}),
        ("?limit=-5&offset=-3", {"limit": 1, "offset": 0}),
        ("?limit=10&offset=20", {"limit": 10, "offset": 20}),
        ("?offset=100000000000000000000", {"limit": 50, "offset": 2**63 - 1}),
    ])
    async def test_limit_and_offset_clamping(self, client, query, expected):
        response = await client.get(f"/ideas{query}", headers=W)
        meta = response.json()["meta"]
        assert {"limit": meta["limit"], "offset": meta["offset"]} == expected

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["?limit=ten", "?offset=1.5"])
    async def test_non_integer_paging(self, client, query):
        response = await client.get(f"/ideas{query}", headers=W)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_pagination_slices(self, client):
        for n in range(5):
            await create(client, title=f"idea {n}")
        response = await client.get("/ideas?limit=2&offset=1", headers=W)
        titles = [item["title"] for item in response.json()["data"]]
        assert titles == ["idea 3", "idea 2"]
        assert response.json()["meta"]["count"] == 2

    @pytest.mark.asyncio
    async def test_status_filter(self, client):
        await create(client, title="a", status="launched")
        await create(client, title="b")
        response = await client.get("/ideas?status=launched", headers=W)
        assert [item["title"] for item in response.json()["data"]] == ["a"]

    @pytest.mark.asyncio
    async def test_invalid_status_filter(self, client):
        response = await client.get("/ideas?status=done", headers=W)
        assert response.status_code == 400
        assert response.json()["details"] == [STATUS_INVALID]

    @pytest.mark.asyncio
    async def test_search_title_or_description(self, client):
        await create(client, title="Solar Kettle")
        await create(client, title="Bike", description="a SOLAR powered bike")
        await create(client, title="Garden")
        response = await client.get("/ideas?search=solar", headers=W)
        titles = sorted(item["title"] for item in response.json()["data"])
        assert titles == ["Bike", "Solar Kettle"]

    @pytest.mark.asyncio
    async def test_only_own_ideas_listed(self, client):
        await create(client, title="mine")
        response = await client.get("/ideas", headers=headers(OTHER_KEY))
        assert response.json()["data"] == []


class TestGetUpdateArchive:

    @pytest.mark.asyncio
    async def test_get_by_id(self, client):
        idea = await create(client, title="T")
        response = await client.get(f"/ideas/{idea['id']}", headers=headers(READ_KEY))
        assert response.status_code == 200
        assert response.json()["data"] == idea

    @pytest.mark.asyncio
    async def test_other_owner_cannot_read(self, client):
        idea = await create(client, title="private")
        response = await client.get(f"/ideas/{idea['id']}", headers=headers(OTHER_KEY))
        assert response.status_code == 404
        assert response.json() == {"error": "Idea not found"}

    @pytest.mark.asyncio
    async def test_malformed_id_is_not_found(self, client):
        response = await client.get("/ideas/not-a-uuid", headers=W)
        assert response.status_code == 404
        assert response.json() == {"error": "Idea not found"}

    @pytest.mark.asyncio
    async def test_partial_update(self, client):
        idea = await create(client, title="Old", description="keep me", tags=["x"])
        response = await client.put(f"/ideas/{idea['id']}", headers=W, json={"status": "progress"})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "progress"
        assert data["title"] == "Old"
        assert data["description"] == "keep me"
        assert data["tags"] == ["x"]
        assert data["updated_at"] > idea["updated_at"]
        assert data["created_at"] == idea["created_at"]

    @pytest.mark.asyncio
    async def test_update_sanitizes_and_validates(self, client):
        idea = await create(client, title="T")
        bad = await client.put(f"/ideas/{idea['id']}", headers=W, json={"color": "blue", "title": ""})
        assert bad.status_code == 400
        assert len(bad.json()["details"]) == 2

        good = await client.put(
            f"/ideas/{idea['id']}", headers=W, json={"description": "<form>hi</form>", "user_id": "x"}
        )
        assert good.json()["data"]["description"] == "hi"
        assert good.json()["data"]["user_id"] == OWNER

    @pytest.mark.asyncio
    async def test_update_null_clears_description(self, client):
        idea = await create(client, title="T", description="gone soon")
        response = await client.put(f"/ideas/{idea['id']}", headers=W, json={"description": None})
        assert response.json()["data"]["description"] is None

    @pytest.mark.asyncio
    async def test_update_other_owner(self, client):
        idea = await create(client, title="T")
        response = await client.put(f"/ideas/{idea['id']}", headers=headers(OTHER_KEY), json={"title": "mine now"})
        assert response.status_code == 404
        assert response.json() == {"error": "Failed to update idea or idea not found"}

    @pytest.mark.asyncio
    async def test_update_without_id(self, client):
        response = await client.put("/ideas", headers=W, json={"title": "T"})
        assert response.status_code == 400
        assert response.json() == {"error": "Idea ID required for updates"}

    @pytest.mark.asyncio
    async def test_delete_archives_and_get_still_returns_it(self, client):
        idea = await create(client, title="T")
        response = await client.delete(f"/ideas/{idea['id']}", headers=W)
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Idea archived successfully"
        assert body["data"]["status"] == "archived"

        fetched = await client.get(f"/ideas/{idea['id']}", headers=W)
        assert fetched.status_code == 200
        assert fetched.json()["data"]["status"] == "archived"

    @pytest.mark.asyncio
    async def test_delete_missing(self, client):
        response = await client.delete(f"/ideas/{uuid.uuid4()}", headers=W)
        assert response.status_code == 404
        assert response.json() == {"error": "Idea not found"}

    @pytest.mark.asyncio
    async def test_delete_without_id(self, client):
        response = await client.delete("/ideas", headers=W)
        assert response.status_code == 400
        assert response.json() == {"error": "Idea ID required for deletion"}


class TestUnsupportedVerbs:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method,path", [
        ("POST", f"/ideas/{uuid.uuid4()}"),
        ("PATCH", f"/ideas/{uuid.uuid4()}"),
        ("PATCH", "/ideas"),
    ])
    async def test_method_not_allowed(self, client, method, path):
        response = await client.request(method, path, headers=W, json={"title": "T"})
        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}
