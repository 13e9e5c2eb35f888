"""Tests for repository content and copy routes."""

from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

from repodrop.github.client import ContentStoreClient
from repodrop.main import app

AUTH = {"Authorization": "token test-token"}


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture(autouse=True)
def github_store(fake_github):
    def build(token):
        return ContentStoreClient(
            token,
            base_url="https://api.github.test",
            transport=httpx.MockTransport(fake_github.handler),
        )

    with patch("repodrop.api.v1.routes_contents.get_store_client", side_effect=build) as mock:
        yield mock


def test_delete_file(client, fake_github):
    sha = fake_github.seed("octo", "docs", "notes/old.md", b"bye")

    response = client.request(
        "DELETE", "/api/v1/repos/octo/docs/contents/notes/old.md", json={"sha": sha}, headers=AUTH
    )

    assert response.status_code == 200
    assert response.json() == {"path": "notes/old.md", "commit_sha": "delete-commit"}
    assert fake_github.content("octo", "docs", "notes/old.md") is None


def test_delete_file_default_message(client, fake_github):
    sha = fake_github.seed("octo", "docs", "notes/old.md", b"bye")

    client.request("DELETE", "/api/v1/repos/octo/docs/contents/notes/old.md", json={"sha": sha}, headers=AUTH)

    request = fake_github.calls("DELETE")[0]
    assert b'"Delete old.md"' in request.content


def test_delete_file_stale_sha(client, fake_github):
    fake_github.seed("octo", "docs", "a.txt", b"a")

    response = client.request(
        "DELETE", "/api/v1/repos/octo/docs/contents/a.txt", json={"sha": "stale"}, headers=AUTH
    )

    assert response.status_code == 409
    assert fake_github.content("octo", "docs", "a.txt") == b"a"


def test_delete_missing_file(client):
    response = client.request(
        "DELETE", "/api/v1/repos/octo/docs/contents/ghost.txt", json={"sha": "abc"}, headers=AUTH
    )

    assert response.status_code == 404


def test_delete_without_token(client, github_store):
    response = client.request("DELETE", "/api/v1/repos/octo/docs/contents/a.txt", json={"sha": "abc"})

    assert response.status_code == 401
    github_store.assert_not_called()


def test_copy_repository(client):
    response = client.post(
        "/api/v1/repositories/copy",
        json={"source_owner": "acme", "source_repo": "starter", "new_name": "my-site"},
        headers=AUTH,
    )

    assert response.status_code == 201
    assert response.json() == {
        "name": "my-site",
        "owner": "octocat",
        "html_url": "https://github.com/octocat/my-site",
        "private": False,
    }


def test_copy_repository_name_taken(client, fake_github):
    fake_github.existing_repos.add("my-site")

    response = client.post(
        "/api/v1/repositories/copy",
        json={"source_owner": "acme", "source_repo": "starter", "new_name": "my-site"},
        headers=AUTH,
    )

    assert response.status_code == 422
    assert "already exists" in response.json()["detail"]


def test_copy_repository_invalid_name(client):
    response = client.post(
        "/api/v1/repositories/copy",
        json={"source_owner": "acme", "source_repo": "starter", "new_name": "bad name"},
        headers=AUTH,
    )

    assert response.status_code == 400


def test_copy_repository_missing_fields(client):
    response = client.post(
        "/api/v1/repositories/copy",
        json={"source_owner": "acme", "source_repo": "", "new_name": "x"},
        headers=AUTH,
    )

    assert response.status_code == 400


def test_create_repository(client, fake_github):
    response = client.post(
        "/api/v1/repositories",
        json={"name": "notes", "description": "My notes", "private": True},
        headers=AUTH,
    )

    assert response.status_code == 201
    assert response.json() == {
        "name": "notes",
        "owner": "octocat",
        "html_url": "https://github.com/octocat/notes",
        "private": True,
        "default_branch": "main",
    }
    assert "notes" in fake_github.existing_repos


def test_create_repository_name_taken(client, fake_github):
    fake_github.existing_repos.add("notes")

    response = client.post("/api/v1/repositories", json={"name": "notes"}, headers=AUTH)

    assert response.status_code == 422
    assert "already exists" in response.json()["detail"]


def test_create_repository_invalid_name(client, fake_github):
    response = client.post("/api/v1/repositories", json={"name": "my notes"}, headers=AUTH)

    assert response.status_code == 400
    assert fake_github.requests == []


def test_create_repository_without_token(client, github_store):
    response = client.post("/api/v1/repositories", json={"name": "notes"})

    assert response.status_code == 401
    github_store.assert_not_called()
