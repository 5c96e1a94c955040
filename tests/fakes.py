"""In-memory fakes of the GitHub and Gitee contents APIs."""

from __future__ import annotations

import base64
import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

API_PREFIX = {"github": "", "gitee": "/api/v5"}
INITIAL_BRANCH = {"github": "main", "gitee": "master"}


@dataclass
class _Repo:
    """A repository: branch -> {path -> (content, sha)}."""

    name: str
    private: bool
    default_branch: str
    branches: dict[str, dict[str, tuple[str, str]]] = field(default_factory=dict)


def _wrap_base64(text: str) -> str:
    """Encode like the real APIs do: base64 wrapped at 60 columns."""
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return "\n".join(encoded[i : i + 60] for i in range(0, len(encoded), 60)) + "\n"


class FakeRepoServer:
    """Minimal emulation of one backend, used through ``httpx.MockTransport``.

    ``flavor`` selects GitHub semantics (single PUT, sha disambiguates
    create/update) or Gitee semantics (POST creates, PUT updates, errors
    reported through Chinese message text).
    """

    def __init__(self, flavor: str, token: str = "tok", login: str = "alice"):
        self.flavor = flavor
        self.token = token
        self.login = login
        self.repos: dict[tuple[str, str], _Repo] = {}
        self.requests: list[tuple[str, str, dict[str, Any]]] = []
        self.writes: list[tuple[str, str, str]] = []
        """(method, path, branch) of every accepted write"""

        self.create_forbidden = False
        self.omit_default_branch = False
        self.fail_reads: dict[str, int] = {}
        """path -> status code returned for GETs of that path"""

        self.fail_writes: dict[str, int] = {}
        """path -> status code returned for writes of that path"""

        self.large_files: set[str] = set()
        """paths served without inline content, as the APIs do for big files"""

        self.raw_payloads: dict[str, bytes] = {}
        """path -> bytes served base64-encoded in place of the stored text"""

        self._counter = 0

    # =========================
    # Test helpers
    # =========================

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def add_repo(
        self,
        name: str,
        owner: Optional[str] = None,
        branch: Optional[str] = None,
        private: bool = True,
    ) -> _Repo:
        branch = branch or INITIAL_BRANCH[self.flavor]
        repo = _Repo(name=name, private=private, default_branch=branch)
        repo.branches[branch] = {}
        self._store(repo, branch, "README.md", f"# {name}\n")
        self.repos[(owner or self.login, name)] = repo
        return repo

    def repo(self, name: str, owner: Optional[str] = None) -> _Repo:
        return self.repos[(owner or self.login, name)]

    def seed_file(
        self,
        repo_name: str,
        path: str,
        content: str,
        branch: Optional[str] = None,
    ) -> str:
        repo = self.repo(repo_name)
        return self._store(repo, branch or repo.default_branch, path, content)

    def files(self, repo_name: str, branch: Optional[str] = None) -> dict[str, str]:
        repo = self.repo(repo_name)
        tree = repo.branches[branch or repo.default_branch]
        return {path: content for path, (content, _) in tree.items()}

    def sha_of(self, repo_name: str, path: str, branch: Optional[str] = None) -> str:
        repo = self.repo(repo_name)
        return repo.branches[branch or repo.default_branch][path][1]

    def rename_default_branch(self, repo_name: str, new_branch: str) -> None:
        """Simulate the default branch being renamed out-of-band."""
        repo = self.repo(repo_name)
        repo.branches[new_branch] = repo.branches.pop(repo.default_branch)
        repo.default_branch = new_branch

    # =========================
    # Request handling
    # =========================

    def _store(self, repo: _Repo, branch: str, path: str, content: str) -> str:
        self._counter += 1
        sha = hashlib.sha1(f"{self._counter}:{content}".encode()).hexdigest()
        repo.branches[branch][path] = (content, sha)
        return sha

    @staticmethod
    def _json(status: int, data: Any) -> httpx.Response:
        return httpx.Response(status, json=data)

    def _error(self, status: int, message: str) -> httpx.Response:
        return self._json(status, {"message": message})

    def _authorized(self, request: httpx.Request) -> bool:
        if self.flavor == "github":
            return request.headers.get("Authorization") == f"token {self.token}"
        return request.url.params.get("access_token") == self.token

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        prefix = API_PREFIX[self.flavor]
        if prefix and path.startswith(prefix):
            path = path[len(prefix) :]
        body = json.loads(request.content) if request.content else {}
        self.requests.append((request.method, path, body))

        if not self._authorized(request):
            return self._error(401, "Bad credentials")

        parts = [p for p in path.split("/") if p]
        if parts == ["user"] and request.method == "GET":
            return self._json(200, {"login": self.login})
        if parts == ["user", "repos"] and request.method == "POST":
            return self._create_repo(body)
        if len(parts) == 3 and parts[0] == "repos" and request.method == "GET":
            return self._get_repo(parts[1], parts[2])
        if len(parts) >= 5 and parts[0] == "repos" and parts[3] == "contents":
            repo = self.repos.get((parts[1], parts[2]))
            if repo is None:
                return self._error(404, "Not Found")
            file_path = "/".join(parts[4:])
            if request.method == "GET":
                return self._get_contents(repo, file_path, request.url.params.get("ref"))
            return self._write_contents(repo, file_path, request.method, body)
        if (
            len(parts) == 6
            and parts[0] == "repos"
            and parts[3:5] == ["git", "blobs"]
            and request.method == "GET"
        ):
            return self._get_blob(parts[1], parts[2], parts[5])
        return self._error(404, "Not Found")

    def _create_repo(self, body: dict[str, Any]) -> httpx.Response:
        if self.create_forbidden:
            return self._error(403, "Resource not accessible by personal access token")
        if (self.login, body["name"]) in self.repos:
            return self._error(422, "name already exists on this account")
        repo = self.add_repo(body["name"], private=bool(body.get("private")))
        return self._json(201, {"name": repo.name, "private": repo.private})

    def _get_repo(self, owner: str, name: str) -> httpx.Response:
        repo = self.repos.get((owner, name))
        if repo is None:
            return self._error(404, "Not Found")
        data: dict[str, Any] = {"name": repo.name, "private": repo.private}
        if not self.omit_default_branch:
            data["default_branch"] = repo.default_branch
        return self._json(200, data)

    def _get_contents(
        self, repo: _Repo, path: str, ref: Optional[str]
    ) -> httpx.Response:
        if path in self.fail_reads:
            return self._error(self.fail_reads[path], "Internal failure")
        branch = ref or repo.default_branch
        tree = repo.branches.get(branch)
        if tree is None:
            return self._error(404, f"No commit found for the ref {branch}")

        if path in tree:
            content, sha = tree[path]
            return self._json(
                200,
                {
                    "type": "file",
                    "path": path,
                    "name": path.rsplit("/", 1)[-1],
                    "sha": sha,
                    "size": len(content.encode("utf-8")),
                    **self._inline_content(path, content),
                },
            )

        prefix = path.rstrip("/") + "/"
        children: dict[str, str] = {}
        for file_path in tree:
            if not file_path.startswith(prefix):
                continue
            rest = file_path[len(prefix) :]
            child = rest.split("/", 1)[0]
            children[child] = "dir" if "/" in rest else "file"
        if not children:
            return self._error(404, "Not Found")
        return self._json(
            200,
            [
                {"type": kind, "name": name, "path": prefix + name}
                for name, kind in sorted(children.items())
            ],
        )

    def _inline_content(self, path: str, content: str) -> dict[str, str]:
        if path in self.large_files:
            return {"encoding": "none", "content": ""}
        if path in self.raw_payloads:
            encoded = base64.b64encode(self.raw_payloads[path]).decode("ascii")
            return {"encoding": "base64", "content": encoded}
        return {"encoding": "base64", "content": _wrap_base64(content)}

    def _get_blob(self, owner: str, name: str, sha: str) -> httpx.Response:
        repo = self.repos.get((owner, name))
        if repo is not None:
            for tree in repo.branches.values():
                for content, blob_sha in tree.values():
                    if blob_sha == sha:
                        return self._json(
                            200,
                            {
                                "sha": sha,
                                "encoding": "base64",
                                "content": _wrap_base64(content),
                            },
                        )
        return self._error(404, "Not Found")

    def _write_contents(
        self, repo: _Repo, path: str, method: str, body: dict[str, Any]
    ) -> httpx.Response:
        if path in self.fail_writes:
            return self._error(self.fail_writes[path], "Write failed")
        branch = body.get("branch") or repo.default_branch
        tree = repo.branches.get(branch)
        content = base64.b64decode(body["content"]).decode("utf-8")
        sha = body.get("sha")

        if self.flavor == "github":
            if method != "PUT":
                return self._error(404, "Not Found")
            if tree is None:
                return self._error(404, f"Branch {branch} not found")
            if path in tree:
                if not sha:
                    return self._error(422, 'Invalid request.\n\n"sha" wasn\'t supplied.')
                if sha != tree[path][1]:
                    return self._error(409, f"{path} does not match {sha}")
            elif sha:
                return self._error(409, f"{path} does not match {sha}")
        else:
            if tree is None:
                return self._error(400, "只允许在分支上创建或更新文件")
            if method == "POST":
                if path in tree:
                    return self._error(400, "文件名已存在")
            elif method == "PUT":
                if path not in tree:
                    return self._error(404, "File Not Found")
                if sha != tree[path][1]:
                    return self._error(409, "sha 不匹配")
            else:
                return self._error(405, "Method Not Allowed")

        new_sha = self._store(repo, branch, path, content)
        self.writes.append((method, path, branch))
        return self._json(
            201 if method == "POST" else 200,
            {"content": {"path": path, "sha": new_sha}},
        )
