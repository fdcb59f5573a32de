from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Protocol

from .errors import MalformedManifest, UsageError
from .events import log_event
from .images import ImageRef
from .manifest import ComposeManifest
from .registry import RegistryClient, RegistryRecord
from .repo import RepoSync
from .settings import Settings, redact_url


class Registry(Protocol):
    def fetch_latest(self, service_path: str, tags: str | None = None) -> RegistryRecord | None: ...


class VersionControl(Protocol):
    def pull(self) -> None: ...

    def publish(self, paths: list[str], message: str) -> str | None: ...

    def pending(self, paths: list[str]) -> bool: ...


class Manifest(Protocol):
    def list_services(self) -> list[str]: ...

    def read_image(self, service_name: str) -> str | None: ...

    def write_image(self, service_name: str, image: str) -> None: ...


@dataclass(frozen=True)
class ServiceUpdate:
    service_name: str
    old_image: str
    new_image: str


class Reconciler:
    """Brings the manifest's images in line with beekeeper, one pass at a time.

    A pass pulls, checks every service in manifest order, writes drifted
    images straight to the file, and publishes once at the end. The first
    error aborts the pass; images already written stay written and get
    published by the next pass that succeeds.
    """

    def __init__(
        self,
        manifest: Manifest,
        registry: Registry,
        vcs: VersionControl | None = None,
        tags: str | None = None,
        manifest_relpath: str | None = None,
        commit_message: str = "update docker-compose from beekeeper",
    ):
        self.manifest = manifest
        self.registry = registry
        self.vcs = vcs
        self.tags = tags or None
        self.manifest_relpath = manifest_relpath
        self.commit_message = commit_message
        self.last_updates: list[ServiceUpdate] = []

    def reconcile_once(self) -> bool:
        """Diff and rewrite the manifest. Returns True when any image changed."""
        updates: list[ServiceUpdate] = []
        self.last_updates = updates
        for name in self.manifest.list_services():
            update = self._check_service(name)
            if update is None:
                continue
            self.manifest.write_image(name, update.new_image)
            updates.append(update)
            log_event("INFO", f"Updated image {update.old_image} -> {update.new_image}", service_name=name)
        return bool(updates)

    def _check_service(self, name: str) -> ServiceUpdate | None:
        current = self.manifest.read_image(name)
        if current is None:
            log_event("DEBUG", "Service has no image, skipping", service_name=name)
            return None

        try:
            path = ImageRef.parse(current).path
        except ValueError as e:
            raise MalformedManifest(f"Service {name!r}: {e}") from e
        record = self.registry.fetch_latest(path, self.tags)
        if record is None:
            log_event("DEBUG", f"{path} is not tracked by beekeeper", service_name=name, image=current)
            return None
        if record.docker_url == current:
            log_event("DEBUG", "Image is up to date", service_name=name, image=current)
            return None
        return ServiceUpdate(service_name=name, old_image=current, new_image=record.docker_url)

    def run_pass(self) -> bool:
        log_event("INFO", "Pass started")
        if self.vcs is not None:
            self.vcs.pull()
        changed = self.reconcile_once()
        if self.vcs is not None and self.manifest_relpath:
            paths = [self.manifest_relpath]
            # Leftovers of an earlier pass that failed before its push.
            if changed or self.vcs.pending(paths):
                self.vcs.publish(paths, self.commit_message)
        log_event("INFO", "Pass finished", changed=changed, updated=len(self.last_updates))
        return changed

    def close(self) -> None:
        close = getattr(self.registry, "close", None)
        if close is not None:
            close()

    def run(self, interval_s: int, single_run: bool = False, sleep: Callable[[float], None] = time.sleep) -> None:
        """Run one pass, or pass/sleep forever. Errors are never swallowed here."""
        if single_run:
            self.run_pass()
            return
        while True:
            self.run_pass()
            sleep(max(1, interval_s))


def build_reconciler(settings: Settings) -> tuple[Reconciler, RepoSync]:
    """Wire the concrete collaborators. The caller clones before running and closes afterwards."""
    settings.validate()
    if not settings.work_dir:
        raise UsageError("work_dir is required to build the updater")
    vcs = RepoSync(
        settings.work_dir,
        settings.repository_url,
        author_name=settings.git_author_name,
        author_email=settings.git_author_email,
    )
    reconciler = Reconciler(
        manifest=ComposeManifest(vcs.path_of(settings.compose_file)),
        registry=RegistryClient(settings.beekeeper_uri, timeout_s=settings.request_timeout_s),
        vcs=vcs,
        tags=settings.tags,
        manifest_relpath=settings.compose_file,
        commit_message=settings.commit_message,
    )
    log_event(
        "INFO",
        "Updater configured",
        beekeeper=redact_url(settings.beekeeper_uri),
        repository=redact_url(settings.repository_url),
        compose_file=settings.compose_file,
        tags=settings.tags,
    )
    return reconciler, vcs
