"""GitHub contents API client."""

import base64
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from repodrop.core.config import settings
from repodrop.core.exceptions import (
    DeleteConflict,
    RepositoryCopyFailed,
    RepositoryCreateFailed,
    StoreConflict,
    StoreDeleteFailed,
    StoreError,
    StoreWriteFailed,
)

logger = logging.getLogger(__name__)

REPOSITORY_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_.-]+$")


@dataclass
class ContentMetadata:
    """Current version of a path in a repository."""

    path: str
    sha: Optional[str]
    type: str = "file"  # "file", "dir", "symlink" or "submodule"
    size: int = 0


@dataclass
class UpsertResult:
    """Outcome of a successful create-or-update."""

    path: str
    sha: Optional[str]
    commit_sha: Optional[str]
    created: bool


class _ServerBusy(Exception):
    """5xx on a read, retried."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"GitHub returned {response.status_code}")
        self.response = response


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        details = [e.get("message") for e in body.get("errors") or [] if isinstance(e, dict) and e.get("message")]
        if details:
            return f"{body['message']} ({'; '.join(details)})"
        return str(body["message"])
    return f"GitHub returned {response.status_code}: {response.reason_phrase}"


def _is_conflict(response: httpx.Response, message: str) -> bool:
    # Missing sha comes back as 422, stale sha as 409
    if response.status_code == 409:
        return True
    return response.status_code == 422 and "sha" in message.lower()


class ContentStoreClient:
    """Reads, writes and deletes single paths in a GitHub repository.

    The client never decides versions: it forwards the ``sha`` it last
    observed and lets GitHub reject stale or missing ones. Only metadata
    reads are retried; writes are sent once.
    """

    def __init__(
        self,
        token: str,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.GITHUB_API_URL).rstrip("/"),
            timeout=timeout if timeout is not None else settings.GITHUB_TIMEOUT_SECONDS,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            transport=transport,
        )

    async def __aenter__(self) -> "ContentStoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _contents_url(owner: str, repo: str, path: str) -> str:
        return f"/repos/{owner}/{repo}/contents/{quote(path.lstrip('/'), safe='/')}"

    @retry(
        stop=stop_after_attempt(settings.GITHUB_FETCH_ATTEMPTS),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type((httpx.TransportError, _ServerBusy)),
        reraise=True,
    )
    async def _fetch_contents(self, owner: str, repo: str, path: str, branch: Optional[str]) -> httpx.Response:
        params = {"ref": branch} if branch else None
        response = await self._client.get(self._contents_url(owner, repo, path), params=params)
        if response.status_code >= 500:
            raise _ServerBusy(response)
        return response

    async def get_file(
        self, owner: str, repo: str, path: str, branch: Optional[str] = None
    ) -> Optional[ContentMetadata]:
        """Fetch the current metadata of ``path``.

        Returns:
            ContentMetadata, or None when the path does not exist

        Raises:
            StoreError: For any other failure
        """
        try:
            response = await self._fetch_contents(owner, repo, path, branch)
        except _ServerBusy as e:
            response = e.response
        except httpx.HTTPError as e:
            raise StoreError(f"Failed to reach GitHub: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise StoreError(_error_message(response), response.status_code)

        body = response.json()
        if isinstance(body, list):
            return ContentMetadata(path=path, sha=None, type="dir")
        return ContentMetadata(
            path=body.get("path", path),
            sha=body.get("sha"),
            type=body.get("type", "file"),
            size=body.get("size", 0),
        )

    async def write_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: bytes,
        commit_message: str,
        branch: Optional[str] = None,
        sha: Optional[str] = None,
    ) -> UpsertResult:
        """Send one PUT with the given ``sha`` (omitted when None).

        Raises:
            StoreConflict: GitHub rejected the sha as missing or stale
            StoreWriteFailed: Any other rejection
        """
        payload: Dict[str, Any] = {
            "message": commit_message,
            "content": base64.b64encode(content).decode("ascii"),
        }
        if branch:
            payload["branch"] = branch
        if sha:
            payload["sha"] = sha

        try:
            response = await self._client.put(self._contents_url(owner, repo, path), json=payload)
        except httpx.HTTPError as e:
            raise StoreWriteFailed(f"Failed to reach GitHub: {e}") from e

        if response.status_code in (200, 201):
            body = response.json()
            return UpsertResult(
                path=(body.get("content") or {}).get("path", path),
                sha=(body.get("content") or {}).get("sha"),
                commit_sha=(body.get("commit") or {}).get("sha"),
                created=response.status_code == 201,
            )

        message = _error_message(response)
        logger.warning(
            "GitHub rejected file write",
            extra={
                "owner": owner,
                "repo": repo,
                "path": path,
                "branch": branch,
                "status_code": response.status_code,
                "error": message,
                "sent_sha": bool(sha),
            },
        )
        if _is_conflict(response, message):
            raise StoreConflict(message, response.status_code)
        raise StoreWriteFailed(message, response.status_code)

    async def upsert(
        self,
        owner: str,
        repo: str,
        path: str,
        content: bytes,
        commit_message: str,
        branch: Optional[str] = None,
    ) -> UpsertResult:
        """Create ``path`` or update it in place.

        Reads the current sha first and sends it with the write only when
        a version exists. A concurrent writer between the read and the
        write makes GitHub reject the sha, which surfaces as StoreConflict.

        Raises:
            StoreConflict: The observed sha was stale
            StoreWriteFailed: The read or the write failed otherwise
        """
        try:
            existing = await self.get_file(owner, repo, path, branch)
        except StoreError as e:
            raise StoreWriteFailed(str(e), e.status_code) from e

        if existing is not None and existing.type == "dir":
            raise StoreWriteFailed(f"{path} is a directory in {owner}/{repo}", 422)

        result = await self.write_file(
            owner,
            repo,
            path,
            content,
            commit_message,
            branch=branch,
            sha=existing.sha if existing else None,
        )
        logger.info(
            "File committed",
            extra={
                "owner": owner,
                "repo": repo,
                "path": result.path,
                "branch": branch,
                "file_created": result.created,
                "commit_sha": result.commit_sha,
            },
        )
        return result

    async def delete(
        self,
        owner: str,
        repo: str,
        path: str,
        sha: str,
        commit_message: str,
        branch: Optional[str] = None,
    ) -> Optional[str]:
        """Delete ``path`` at the version identified by ``sha``.

        Returns:
            The sha of the deletion commit

        Raises:
            DeleteConflict: The sha is stale
            StoreDeleteFailed: Any other rejection
        """
        payload: Dict[str, Any] = {"message": commit_message, "sha": sha}
        if branch:
            payload["branch"] = branch

        try:
            response = await self._client.request(
                "DELETE", self._contents_url(owner, repo, path), json=payload
            )
        except httpx.HTTPError as e:
            raise StoreDeleteFailed(f"Failed to reach GitHub: {e}") from e

        if response.status_code == 200:
            logger.info(
                "File deleted",
                extra={"owner": owner, "repo": repo, "path": path, "branch": branch},
            )
            return (response.json().get("commit") or {}).get("sha")

        message = _error_message(response)
        logger.warning(
            "GitHub rejected file delete",
            extra={"owner": owner, "repo": repo, "path": path, "status_code": response.status_code, "error": message},
        )
        if _is_conflict(response, message):
            raise DeleteConflict(message, response.status_code)
        raise StoreDeleteFailed(message, response.status_code)

    async def create_repository(
        self,
        name: str,
        description: Optional[str] = None,
        private: bool = False,
        auto_init: bool = True,
        gitignore_template: Optional[str] = None,
        license_template: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a repository owned by the authenticated user.

        Raises:
            RepositoryCreateFailed: Invalid name, or GitHub rejected the request
        """
        name = name.strip()
        if not name:
            raise RepositoryCreateFailed("Repository name is required", 400)
        if not REPOSITORY_NAME_PATTERN.match(name):
            raise RepositoryCreateFailed(
                "Repository name can only contain letters, numbers, hyphens, underscores, and periods",
                400,
            )

        payload: Dict[str, Any] = {"name": name, "private": private, "auto_init": auto_init}
        if description:
            payload["description"] = description
        if gitignore_template:
            payload["gitignore_template"] = gitignore_template
        if license_template:
            payload["license_template"] = license_template

        try:
            response = await self._client.post("/user/repos", json=payload)
        except httpx.HTTPError as e:
            raise RepositoryCreateFailed(f"Failed to reach GitHub: {e}", 502) from e

        if response.status_code != 201:
            message = _error_message(response)
            logger.warning(
                "GitHub rejected repository creation",
                extra={"new_repo": name, "status_code": response.status_code, "error": message},
            )
            raise RepositoryCreateFailed(message, response.status_code)

        created = response.json()
        owner = (created.get("owner") or {}).get("login")
        logger.info("Repository created", extra={"new_repo": f"{owner}/{created.get('name')}", "private": private})
        return {
            "name": created.get("name", name),
            "owner": owner,
            "html_url": created.get("html_url"),
            "private": created.get("private", private),
            "default_branch": created.get("default_branch"),
        }

    async def copy_repository(
        self,
        template_owner: str,
        template_repo: str,
        new_name: str,
        private: bool = False,
    ) -> Dict[str, Any]:
        """Create a repository for the authenticated user from a template repository.

        Raises:
            RepositoryCopyFailed: Invalid name, or GitHub rejected the request
        """
        if not REPOSITORY_NAME_PATTERN.match(new_name):
            raise RepositoryCopyFailed(
                "Invalid repository name. Use only alphanumeric characters, periods, hyphens, or underscores.",
                400,
            )

        try:
            user_response = await self._client.get("/user")
            if user_response.status_code != 200:
                raise RepositoryCopyFailed(
                    self._copy_error(user_response, template_owner, template_repo, new_name, "[unknown_user]"),
                    user_response.status_code,
                )
            login = user_response.json()["login"]

            response = await self._client.post(
                f"/repos/{template_owner}/{template_repo}/generate",
                json={
                    "owner": login,
                    "name": new_name,
                    "private": private,
                    "description": f"Copied from {template_owner}/{template_repo} by {login}.",
                    "include_all_branches": True,
                },
            )
        except httpx.HTTPError as e:
            raise RepositoryCopyFailed(f"Failed to reach GitHub: {e}", 502) from e

        if response.status_code != 201:
            raise RepositoryCopyFailed(
                self._copy_error(response, template_owner, template_repo, new_name, login),
                response.status_code,
            )

        created = response.json()
        logger.info(
            "Repository created from template",
            extra={"template": f"{template_owner}/{template_repo}", "new_repo": f"{login}/{created.get('name')}"},
        )
        return {
            "name": created.get("name"),
            "owner": (created.get("owner") or {}).get("login", login),
            "html_url": created.get("html_url"),
            "private": created.get("private", private),
        }

    @staticmethod
    def _copy_error(
        response: httpx.Response, template_owner: str, template_repo: str, new_name: str, login: str
    ) -> str:
        message = _error_message(response)
        lowered = message.lower()
        if response.status_code == 422 and "already exists" in lowered:
            return (
                f"A repository named '{new_name}' already exists on the account '{login}'. "
                "Please choose a different name."
            )
        if response.status_code == 403 and "template" in lowered:
            return f"The repository '{template_owner}/{template_repo}' must be marked as a template repository to be copied."
        if response.status_code == 404:
            return (
                f"Could not find the template repository '{template_owner}/{template_repo}' "
                "or you may not have access."
            )
        if response.status_code == 401:
            return "Authentication failed. Please ensure your GitHub token is valid and has the 'repo' scope."
        return message
