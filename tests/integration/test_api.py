"""
Integration tests for API endpoints.
"""

import pytest

from lendshelf.storage.book_repository import VersionConflict

pytestmark = pytest.mark.asyncio


def as_user(user_id: str) -> dict:
    return {"X-User-Id": user_id}


async def open_accounts(client, *user_ids):
    for user_id in user_ids:
        response = await client.post("/api/v1/users", json={"name": user_id.title(), "id": user_id})
        assert response.status_code == 201


async def upload(client, sample_book_data, owner="owner") -> dict:
    response = await client.post("/api/v1/books", json=sample_book_data, headers=as_user(owner))
    assert response.status_code == 201
    return response.json()


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    async def test_health_check(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["database"] == "healthy"

    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "LendShelf"


class TestBooksEndpoints:
    """Tests for book upload, browse and delete."""

    async def test_upload_book(self, client, sample_book_data):
        await open_accounts(client, "owner")

        data = await upload(client, sample_book_data)

        assert data["title"] == sample_book_data["title"]
        assert data["owner_id"] == "owner"
        assert data["available"] is True
        assert data["state"] == "available"
        assert data["requests"] == []
        assert data["version"] == 1

        account = (await client.get("/api/v1/users/owner")).json()
        assert account["points"] == 1

    async def test_upload_requires_user_header(self, client, sample_book_data):
        response = await client.post("/api/v1/books", json=sample_book_data)

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHENTICATED"

    async def test_upload_validation_error(self, client):
        response = await client.post(
            "/api/v1/books",
            json={"title": "Untitled"},
            headers=as_user("owner"),
        )

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "INVALID_INPUT"
        assert "author" in data["detail"]

    async def test_upload_rejects_unknown_fields(self, client, sample_book_data):
        response = await client.post(
            "/api/v1/books",
            json={**sample_book_data, "available": False},
            headers=as_user("owner"),
        )

        assert response.status_code == 400

    async def test_malformed_user_header(self, client, sample_book_data):
        response = await client.post("/api/v1/books", json=sample_book_data, headers=as_user("not valid!"))

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INPUT"

    async def test_get_book(self, client, sample_book_data):
        created = await upload(client, sample_book_data)

        response = await client.get(f"/api/v1/books/{created['id']}")

        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    async def test_get_missing_book(self, client):
        response = await client.get("/api/v1/books/does-not-exist")

        assert response.status_code == 404
        data = response.json()
        assert data["code"] == "BOOK_NOT_FOUND"
        assert data["retryable"] is False
        assert "timestamp" in data

    async def test_list_books(self, client, sample_book_data):
        first = await upload(client, sample_book_data)
        second = await upload(client, {**sample_book_data, "title": "The Dispossessed"})
        await client.post(f"/api/v1/books/{first['id']}/requests", headers=as_user("r1"))
        await client.post(f"/api/v1/books/{first['id']}/requests/r1/approve")

        everything = (await client.get("/api/v1/books")).json()
        assert everything["count"] == 2

        available = (await client.get("/api/v1/books", params={"available": True})).json()
        assert [b["id"] for b in available["books"]] == [second["id"]]

    async def test_list_books_limit_bounds(self, client):
        response = await client.get("/api/v1/books", params={"limit": 0})

        assert response.status_code == 400

    async def test_delete_book(self, client, sample_book_data):
        created = await upload(client, sample_book_data)

        response = await client.delete(f"/api/v1/books/{created['id']}")
        assert response.status_code == 204

        response = await client.get(f"/api/v1/books/{created['id']}")
        assert response.status_code == 404

    async def test_delete_refused_while_on_loan(self, client, sample_book_data):
        created = await upload(client, sample_book_data)
        await client.post(f"/api/v1/books/{created['id']}/requests", headers=as_user("r1"))
        await client.post(f"/api/v1/books/{created['id']}/requests/r1/approve")

        response = await client.delete(f"/api/v1/books/{created['id']}")

        assert response.status_code == 409
        assert response.json()["code"] == "BOOK_ON_LOAN"


class TestLendingFlow:
    """Lending transitions driven over HTTP."""

    async def test_full_cycle(self, client, sample_book_data):
        await open_accounts(client, "owner", "r1", "r2")
        book = await upload(client, sample_book_data)
        book_id = book["id"]

        response = await client.post(f"/api/v1/books/{book_id}/requests", headers=as_user("r1"))
        assert response.status_code == 200
        response = await client.post(f"/api/v1/books/{book_id}/requests", headers=as_user("r2"))
        assert response.json()["requests"] == ["r1", "r2"]
        assert response.json()["state"] == "requested"

        incoming = (await client.get("/api/v1/users/owner/requests")).json()
        assert [r["requester_id"] for r in incoming] == ["r1", "r2"]
        assert incoming[0]["book_title"] == sample_book_data["title"]

        response = await client.post(f"/api/v1/books/{book_id}/requests/r1/approve")
        assert response.status_code == 200
        lent = response.json()
        assert lent["state"] == "borrowed"
        assert lent["borrower_id"] == "r1"
        assert lent["requests"] == []
        assert lent["return_due_at"] is not None

        owner = (await client.get("/api/v1/users/owner")).json()
        assert owner["points"] == 6
        assert owner["books_shared"] == 1
        assert (await client.get("/api/v1/users/r1")).json()["books_borrowed"] == 1

        on_loan = (await client.get("/api/v1/users/owner/on-loan")).json()
        assert [(l["book_id"], l["counterparty_id"]) for l in on_loan] == [(book_id, "r1")]
        borrowed = (await client.get("/api/v1/users/r1/borrowed")).json()
        assert [(l["book_id"], l["counterparty_id"]) for l in borrowed] == [(book_id, "owner")]

        response = await client.post(f"/api/v1/books/{book_id}/requests/r2/approve")
        assert response.status_code == 409
        assert response.json()["code"] == "BOOK_UNAVAILABLE"

        response = await client.post(f"/api/v1/books/{book_id}/return")
        assert response.status_code == 200
        assert response.json()["available"] is True
        assert response.json()["borrower_id"] is None

        response = await client.post(f"/api/v1/books/{book_id}/return")
        assert response.status_code == 409
        assert response.json()["code"] == "NOT_BORROWED"

    async def test_duplicate_request(self, client, sample_book_data):
        book = await upload(client, sample_book_data)
        await client.post(f"/api/v1/books/{book['id']}/requests", headers=as_user("r1"))

        response = await client.post(f"/api/v1/books/{book['id']}/requests", headers=as_user("r1"))

        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_REQUESTED"

    async def test_self_request(self, client, sample_book_data):
        book = await upload(client, sample_book_data)

        response = await client.post(f"/api/v1/books/{book['id']}/requests", headers=as_user("owner"))

        assert response.status_code == 400
        assert response.json()["code"] == "SELF_REQUEST"

    async def test_reject(self, client, sample_book_data):
        book = await upload(client, sample_book_data)
        await client.post(f"/api/v1/books/{book['id']}/requests", headers=as_user("r1"))

        response = await client.post(f"/api/v1/books/{book['id']}/requests/r1/reject")
        assert response.status_code == 200
        assert response.json()["requests"] == []

        response = await client.post(f"/api/v1/books/{book['id']}/requests/r1/reject")
        assert response.status_code == 409
        assert response.json()["code"] == "REQUEST_NOT_PENDING"

    async def test_request_missing_book(self, client):
        response = await client.post("/api/v1/books/ghost/requests", headers=as_user("r1"))

        assert response.status_code == 404
        assert response.json()["code"] == "BOOK_NOT_FOUND"


class TestUserEndpoints:
    """Tests for ledger accounts."""

    async def test_create_and_get_account(self, client):
        response = await client.post("/api/v1/users", json={"name": "Rae", "id": "r1"})

        assert response.status_code == 201
        data = response.json()
        assert data["id"] == "r1"
        assert data["points"] == 0
        assert data["books_shared"] == 0
        assert data["books_borrowed"] == 0

    async def test_duplicate_account(self, client):
        await open_accounts(client, "r1")

        response = await client.post("/api/v1/users", json={"name": "Rae", "id": "r1"})

        assert response.status_code == 400

    async def test_missing_account(self, client):
        response = await client.get("/api/v1/users/nobody")

        assert response.status_code == 404
        assert response.json()["code"] == "USER_NOT_FOUND"

    async def test_owned_books(self, client, sample_book_data):
        book = await upload(client, sample_book_data)

        response = await client.get("/api/v1/users/owner/books")

        assert response.status_code == 200
        assert [b["id"] for b in response.json()] == [book["id"]]


class TestConflictResponses:
    """Exhausted compare-and-swap retries over HTTP."""

    async def test_conflict_asks_client_to_retry(self, app, client, sample_book_data, monkeypatch):
        book = await upload(client, sample_book_data)
        repo = app.state.container.book_repository

        def always_stale(book_id, expected_version, new_book):
            raise VersionConflict(book_id, expected_version)

        monkeypatch.setattr(repo, "compare_and_swap", always_stale)

        response = await client.post(f"/api/v1/books/{book['id']}/requests", headers=as_user("r1"))

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"
        data = response.json()
        assert data["code"] == "CONCURRENT_MODIFICATION"
        assert data["retryable"] is True
        assert data["detail"] is None
        assert data["error"] == "The book was modified concurrently, please retry"

        monkeypatch.undo()
        stored = (await client.get(f"/api/v1/books/{book['id']}")).json()
        assert stored["requests"] == []
        assert stored["version"] == 1
