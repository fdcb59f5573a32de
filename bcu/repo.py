"""Working copy of the manifest repository.

Thin GitPython wrapper: one shallow clone per process, pulled at the top of
every pass and published (pull, add, commit, push) only when the manifest
changed. There is no conflict handling; a rejected push fails the pass.
"""
from __future__ import annotations

from pathlib import Path

import git
from git import Actor, GitCommandError

from .errors import PublishError, SetupError
from .events import log_event
from .settings import redact_url


class RepoSync:
    def __init__(self, work_dir: str | Path, remote_url: str, author_name: str, author_email: str):
        self.work_dir = Path(work_dir)
        self.remote_url = remote_url
        self.actor = Actor(author_name, author_email)
        self._repo: git.Repo | None = None

    @property
    def repo(self) -> git.Repo:
        if self._repo is None:
            raise SetupError("Repository has not been cloned yet.")
        return self._repo

    def _diagnostic(self, e: GitCommandError) -> str:
        text = (e.stderr or str(e)).strip()
        return text.replace(self.remote_url, redact_url(self.remote_url))

    def ensure_clone(self) -> None:
        if self._repo is not None:
            return
        if self.work_dir.exists() and any(self.work_dir.iterdir()):
            raise SetupError(f"Clone destination {self.work_dir} is not empty.")
        try:
            self._repo = git.Repo.clone_from(self.remote_url, self.work_dir, depth=1)
        except GitCommandError as e:
            raise SetupError(f"git clone of {redact_url(self.remote_url)} failed: {self._diagnostic(e)}") from e

        # `git pull` may merge; it needs an identity and a merge strategy.
        with self._repo.config_writer() as cw:
            cw.set_value("user", "name", self.actor.name)
            cw.set_value("user", "email", self.actor.email)
            cw.set_value("pull", "rebase", "false")
        log_event("INFO", "Cloned manifest repository", remote=redact_url(self.remote_url), path=str(self.work_dir))

    def path_of(self, relative: str) -> Path:
        return self.work_dir / relative

    def pull(self) -> None:
        try:
            self.repo.git.pull()
        except GitCommandError as e:
            raise PublishError(f"git pull failed: {self._diagnostic(e)}") from e

    def _ahead(self) -> bool:
        return int(self.repo.git.rev_list("--count", "@{u}..HEAD") or 0) > 0

    def pending(self, paths: list[str]) -> bool:
        """True when ``paths`` hold local edits or commits that never reached the remote."""
        try:
            return any(self.repo.is_dirty(path=p) for p in paths) or self._ahead()
        except GitCommandError as e:
            raise PublishError(f"git status failed: {self._diagnostic(e)}") from e

    def publish(self, paths: list[str], message: str) -> str | None:
        """Commit exactly ``paths`` and push. Returns the pushed sha, or None when there was nothing to publish."""
        self.pull()
        try:
            self.repo.git.add("--", *paths)
            staged = self.repo.git.diff("--cached", "--name-only", "--", *paths)
            if staged.strip():
                sha = self.repo.index.commit(message, author=self.actor, committer=self.actor).hexsha
            elif self._ahead():
                sha = self.repo.head.commit.hexsha
            else:
                log_event("INFO", "Nothing to commit", paths=paths)
                return None
            self.repo.git.push()
        except GitCommandError as e:
            raise PublishError(f"Publishing {', '.join(paths)} failed: {self._diagnostic(e)}") from e
        log_event("INFO", "Pushed manifest update", commit=sha, commit_message=message)
        return sha
