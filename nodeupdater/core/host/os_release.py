"""
Host identity — parse os-release and classify the host variant.

The updater exposes one of two capability profiles depending on
whether the host OS supports atomic, image-based updates (a CoreOS
variant) or not. This module answers that question.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from nodeupdater.core.errors import HostIdentityError

logger = logging.getLogger(__name__)

DEFAULT_OS_RELEASE = "/etc/os-release"
FALLBACK_OS_RELEASE = "/usr/lib/os-release"

# Distribution IDs that are always CoreOS variants
_COREOS_IDS = frozenset({"rhcos", "scos"})


@dataclass
class OSRelease:
    """Parsed os-release fields of the running host."""

    id: str = ""
    variant_id: str = ""
    version_id: str = ""
    pretty_name: str = ""
    id_like: list[str] = field(default_factory=list)
    fields: dict[str, str] = field(default_factory=dict)

    @property
    def is_coreos_variant(self) -> bool:
        """Whether the host supports rpm-ostree based OS updates."""
        if self.id in _COREOS_IDS:
            return True
        return self.id == "fedora" and self.variant_id == "coreos"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "variant_id": self.variant_id,
            "version_id": self.version_id,
            "pretty_name": self.pretty_name,
            "coreos": self.is_coreos_variant,
        }


def parse_os_release(text: str) -> OSRelease:
    """Parse the ``KEY=value`` lines of an os-release document."""
    fields: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        fields[key.strip()] = value

    return OSRelease(
        id=fields.get("ID", "").lower(),
        variant_id=fields.get("VARIANT_ID", "").lower(),
        version_id=fields.get("VERSION_ID", ""),
        pretty_name=fields.get("PRETTY_NAME", ""),
        id_like=fields.get("ID_LIKE", "").split(),
        fields=fields,
    )


def read_os_release(path: str | Path = DEFAULT_OS_RELEASE) -> OSRelease:
    """Read and parse the host's os-release file.

    The standard location falls back to ``/usr/lib/os-release``, as
    os-release(5) requires.

    Raises:
        HostIdentityError: No os-release file could be read, or it
            carries no ``ID``.
    """
    candidates = [Path(path)]
    if str(path) == DEFAULT_OS_RELEASE:
        candidates.append(Path(FALLBACK_OS_RELEASE))

    errors = []
    for candidate in candidates:
        try:
            text = candidate.read_text(encoding="utf-8")
        except OSError as e:
            errors.append(f"{candidate}: {e}")
            continue

        release = parse_os_release(text)
        if not release.id:
            raise HostIdentityError(f"{candidate} does not define an ID")
        logger.debug("Host OS: %s (%s)", release.pretty_name or release.id, candidate)
        return release

    raise HostIdentityError(f"failed to query operating system: {'; '.join(errors)}")
