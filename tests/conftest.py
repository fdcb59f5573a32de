from __future__ import annotations

from pathlib import Path

import git
import httpx
import pytest
import structlog

from bcu.registry import RegistryClient

COMPOSE = """\
version: '3.8'
services:
  web:
    image: org/web:v1
    ports:
    - 80:80
    environment:
      LOG_LEVEL: info
  cache:
    image: org/cache:v3
  worker:
    build: ./worker
    depends_on:
    - cache
"""


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def compose_path(tmp_path: Path) -> Path:
    path = tmp_path / "docker-compose.yml"
    path.write_text(COMPOSE, encoding="utf-8")
    return path


def beekeeper_client(latest: dict[str, object], seen: list[httpx.Request] | None = None) -> RegistryClient:
    """RegistryClient answered by an in-memory beekeeper.

    ``latest`` maps a service path to a docker_url string, an int status
    code, or a raw ``httpx.Response``. Unknown paths answer 404.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        prefix, suffix = "/deployments/", "/latest"
        path = request.url.path
        assert path.startswith(prefix) and path.endswith(suffix), path
        answer = latest.get(path[len(prefix) : -len(suffix)])
        if answer is None:
            return httpx.Response(404, json={"error": "Not Found"})
        if isinstance(answer, httpx.Response):
            return answer
        if isinstance(answer, int):
            return httpx.Response(answer, text="boom")
        return httpx.Response(200, json={"docker_url": answer, "tags": []})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    return RegistryClient("http://beekeeper.test", client=client)


@pytest.fixture
def git_remote(tmp_path: Path) -> Path:
    """Bare repository holding one commit with docker-compose.yml."""
    remote = tmp_path / "remote.git"
    git.Repo.init(remote, bare=True, initial_branch="main")

    seed_path = tmp_path / "seed"
    seed = git.Repo.init(seed_path, initial_branch="main")
    with seed.config_writer() as cw:
        cw.set_value("user", "name", "Test User")
        cw.set_value("user", "email", "test@example.com")
    (seed_path / "docker-compose.yml").write_text(COMPOSE, encoding="utf-8")
    (seed_path / "README.md").write_text("# deployments\n", encoding="utf-8")
    seed.index.add(["docker-compose.yml", "README.md"])
    seed.index.commit("Initial commit")
    seed.create_remote("origin", str(remote))
    seed.git.push("-u", "origin", "main")
    return remote


def remote_log(remote: Path) -> list[git.Commit]:
    return list(git.Repo(remote).iter_commits("main"))


def remote_file(remote: Path, name: str) -> str:
    return git.Repo(remote).git.show(f"main:{name}")
