from __future__ import annotations


class UpdaterError(Exception):
    """Base class for every failure that ends a pass (or the process)."""


class UsageError(UpdaterError):
    pass


class SetupError(UpdaterError):
    """The manifest repository could not be cloned."""


class RegistryError(UpdaterError):
    pass


class ManifestError(UpdaterError):
    pass


class MissingFile(ManifestError):
    pass


class MalformedManifest(ManifestError):
    pass


class UnknownService(ManifestError):
    pass


class PublishError(UpdaterError):
    """Pull, commit or push failed after the manifest was touched."""
