"""Pytest configuration and shared fixtures."""

import asyncio
import base64
import hashlib
import io
import json
import re
from datetime import datetime

import httpx
import pytest
from openpyxl import Workbook

from repodrop.github.client import ContentStoreClient
from repodrop.storage.session_store import session_store

CONTENTS_PATH = re.compile(r"^/repos/([^/]+)/([^/]+)/contents/(.+)$")
GENERATE_PATH = re.compile(r"^/repos/([^/]+)/([^/]+)/generate$")


class FakeGitHub:
    """In-memory stand-in for the GitHub contents API behind httpx.MockTransport.

    Enforces the sha rules: updating an existing file without a sha is a
    422, a stale sha is a 409.
    """

    def __init__(self):
        self.files = {}  # (owner, repo, branch, path) -> (content, sha)
        self.requests = []
        self.put_failures = {}  # path -> (status, message)
        self.existing_repos = set()
        self.login = "octocat"
        self._version = 0

    def seed(self, owner, repo, path, content, branch="main"):
        sha = self._next_sha(content)
        self.files[(owner, repo, branch, path)] = (content, sha)
        return sha

    def content(self, owner, repo, path, branch="main"):
        entry = self.files.get((owner, repo, branch, path))
        return entry[0] if entry else None

    def calls(self, method):
        return [r for r in self.requests if r.method == method]

    def _next_sha(self, content):
        self._version += 1
        return hashlib.sha1(content + str(self._version).encode()).hexdigest()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/user" and request.method == "GET":
            return httpx.Response(200, json={"login": self.login})

        if path == "/user/repos" and request.method == "POST":
            body = json.loads(request.content)
            if body["name"] in self.existing_repos:
                return httpx.Response(
                    422,
                    json={"message": "Repository creation failed.", "errors": [{"message": "name already exists on this account"}]},
                )
            self.existing_repos.add(body["name"])
            return httpx.Response(
                201,
                json={
                    "name": body["name"],
                    "owner": {"login": self.login},
                    "html_url": f"https://github.com/{self.login}/{body['name']}",
                    "private": body.get("private", False),
                    "default_branch": "main",
                },
            )

        match = GENERATE_PATH.match(path)
        if match and request.method == "POST":
            body = json.loads(request.content)
            if body["name"] in self.existing_repos:
                return httpx.Response(422, json={"message": "Name already exists on this account"})
            self.existing_repos.add(body["name"])
            return httpx.Response(
                201,
                json={
                    "name": body["name"],
                    "owner": {"login": body["owner"]},
                    "html_url": f"https://github.com/{body['owner']}/{body['name']}",
                    "private": body["private"],
                },
            )

        match = CONTENTS_PATH.match(path)
        if not match:
            return httpx.Response(404, json={"message": "Not Found"})

        owner, repo, file_path = match.groups()
        body = json.loads(request.content) if request.content else {}
        branch = request.url.params.get("ref") or body.get("branch") or "main"
        key = (owner, repo, branch, file_path)
        existing = self.files.get(key)

        if request.method == "GET":
            if existing is None:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(
                200,
                json={"path": file_path, "sha": existing[1], "type": "file", "size": len(existing[0])},
            )

        if request.method == "PUT":
            if file_path in self.put_failures:
                status, message = self.put_failures[file_path]
                return httpx.Response(status, json={"message": message})
            if existing is not None and "sha" not in body:
                return httpx.Response(422, json={"message": 'Invalid request.\n\n"sha" wasn\'t supplied.'})
            if existing is not None and body["sha"] != existing[1]:
                return httpx.Response(409, json={"message": f"{file_path} does not match {body['sha']}"})
            content = base64.b64decode(body["content"])
            sha = self._next_sha(content)
            self.files[key] = (content, sha)
            return httpx.Response(
                201 if existing is None else 200,
                json={"content": {"path": file_path, "sha": sha}, "commit": {"sha": f"commit-{self._version}"}},
            )

        if request.method == "DELETE":
            if existing is None:
                return httpx.Response(404, json={"message": "Not Found"})
            if body.get("sha") != existing[1]:
                return httpx.Response(409, json={"message": f"{file_path} does not match {body.get('sha')}"})
            del self.files[key]
            return httpx.Response(200, json={"content": None, "commit": {"sha": "delete-commit"}})

        return httpx.Response(405, json={"message": "Method Not Allowed"})


@pytest.fixture
def fake_github():
    """Fresh fake GitHub for each test."""
    return FakeGitHub()


@pytest.fixture
def store_client(fake_github):
    """Content store client wired to the fake GitHub."""
    return ContentStoreClient(
        "test-token",
        base_url="https://api.github.test",
        transport=httpx.MockTransport(fake_github.handler),
    )


@pytest.fixture
def make_xlsx():
    """Build workbook bytes from {sheet_name: rows}."""

    def _make(sheets):
        workbook = Workbook()
        workbook.remove(workbook.active)
        for name, rows in sheets.items():
            sheet = workbook.create_sheet(title=name)
            for row in rows:
                sheet.append(row)
        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    return _make


@pytest.fixture
def people_xlsx(make_xlsx):
    """Two-sheet workbook; only the first sheet should be converted."""
    return make_xlsx(
        {
            "People": [
                ["name", "age", "joined"],
                ["Ada", 36, datetime(2024, 1, 15)],
                ["Linus", None, None],
            ],
            "Ignored": [["x"], [1]],
        }
    )


@pytest.fixture(autouse=True)
def clear_session_store():
    """Sessions live in a module-level singleton."""
    session_store.clear()
    yield
    session_store.clear()


class BlockingStore:
    """Content store whose writes wait until ``release`` is set."""

    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.paths = []

    async def upsert(self, owner, repo, path, content, commit_message, branch=None):
        self.paths.append(path)
        self.started.set()
        await self.release.wait()

    async def aclose(self):
        pass


@pytest.fixture
def blocking_store():
    """Store that holds every write until released."""
    return BlockingStore()
