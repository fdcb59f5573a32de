from __future__ import annotations

from dataclasses import dataclass

from docker.utils import parse_repository_tag


@dataclass(frozen=True)
class ImageRef:
    """A ``repository[:tag][@digest]`` image reference as written in a compose file.

    ``path`` is the beekeeper lookup key, everything else is the mutable part.
    The digest is cut off first, then docker's own rule splits the tag from
    the last path segment, so a registry ``host:port`` prefix stays in the
    path: ``registry:5000/org/web:v2`` -> (``registry:5000/org/web``, ``v2``).
    """

    path: str
    tag: str | None = None
    digest: str | None = None

    @classmethod
    def parse(cls, text: str) -> "ImageRef":
        text = text.strip()
        if not text:
            raise ValueError("Empty image reference.")
        name, sep, digest = text.partition("@")
        if sep and not digest:
            raise ValueError(f"Invalid image reference: {text!r}")
        path, tag = parse_repository_tag(name)
        if not path:
            raise ValueError(f"Invalid image reference: {text!r}")
        return cls(path=path, tag=tag or None, digest=digest or None)

    def __str__(self) -> str:
        text = self.path
        if self.tag is not None:
            text = f"{text}:{self.tag}"
        if self.digest is not None:
            text = f"{text}@{self.digest}"
        return text
