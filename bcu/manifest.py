from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

import yaml

from .errors import MalformedManifest, ManifestError, MissingFile, UnknownService


class StructuredDataCodec(Protocol):
    def load(self, text: str) -> Any: ...

    def dump(self, data: Any) -> str: ...


class YamlCodec:
    """PyYAML round trip that keeps key order and block style."""

    def load(self, text: str) -> Any:
        return yaml.safe_load(text)

    def dump(self, data: Any) -> str:
        return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)


class ComposeManifest:
    """Reads and rewrites service images in a docker-compose file.

    Nothing is cached: every call reads the file again, so the manifest always
    reflects the working copy after the latest pull.
    """

    def __init__(self, path: str | Path, codec: StructuredDataCodec | None = None):
        self.path = Path(path)
        self.codec = codec or YamlCodec()

    def _load(self) -> dict[str, Any]:
        if not self.path.is_file():
            raise MissingFile(f"Manifest not found: {self.path}")
        try:
            data = self.codec.load(self.path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise MalformedManifest(f"Cannot parse {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise MalformedManifest(f"Expected a mapping at top-level in {self.path}, got {type(data).__name__}")
        return data

    def _services(self, data: dict[str, Any]) -> dict[str, Any]:
        services = data.get("services")
        if services is None:
            raise MalformedManifest(f"No services defined in {self.path}")
        if not isinstance(services, dict):
            raise MalformedManifest(f"'services' in {self.path} must be a mapping")
        return services

    def _service(self, services: dict[str, Any], name: str) -> dict[str, Any]:
        if name not in services:
            raise UnknownService(f"Service {name!r} not found in {self.path}")
        definition = services[name]
        if not isinstance(definition, dict):
            raise MalformedManifest(f"Service {name!r} in {self.path} must be a mapping")
        return definition

    def list_services(self) -> list[str]:
        return [str(name) for name in self._services(self._load())]

    def read_image(self, service_name: str) -> str | None:
        """Current image of ``service_name``; None when the service has no image (build-only)."""
        definition = self._service(self._services(self._load()), service_name)
        image = definition.get("image")
        if image is None:
            return None
        if not isinstance(image, str):
            raise MalformedManifest(f"Image of service {service_name!r} must be a string")
        return image

    def write_image(self, service_name: str, image: str) -> None:
        data = self._load()
        definition = self._service(self._services(data), service_name)
        definition["image"] = image
        try:
            text = self.codec.dump(data)
        except yaml.YAMLError as e:
            raise ManifestError(f"Cannot serialize {self.path}: {e}") from e
        self.path.write_text(text, encoding="utf-8")
