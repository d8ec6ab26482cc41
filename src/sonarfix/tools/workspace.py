"""Map finding component references onto files in the local workspace."""

from __future__ import annotations

import logging
from pathlib import Path

from ..errors import MissingFileError

LOGGER = logging.getLogger(__name__)


class WorkspaceResolver:
    """Resolve ``"<projectKey>:<relativePath>"`` references under ``root``."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()

    def resolve(self, component_ref: str) -> Path | None:
        """Return the file for ``component_ref`` or ``None`` when it is missing.

        References that escape ``root`` (``proj:../../etc/passwd``) count as
        missing.
        """
        _, sep, remainder = component_ref.partition(":")
        relative = remainder if sep else component_ref
        relative = relative.strip().lstrip("/")
        if not relative:
            return None
        candidate = (self.root / relative).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            LOGGER.warning("Component %s points outside the workspace root", component_ref)
            return None
        if not candidate.is_file():
            LOGGER.debug("Component %s does not map to a file (%s)", component_ref, candidate)
            return None
        return candidate

    def require(self, key: str, component_ref: str) -> Path:
        """Like :meth:`resolve` but raise :class:`MissingFileError` for ``key``."""
        path = self.resolve(component_ref)
        if path is None:
            raise MissingFileError(key, component_ref)
        return path


__all__ = ["WorkspaceResolver"]
