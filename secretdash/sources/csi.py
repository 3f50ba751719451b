"""
CSI Driver secret source.

Reads secrets mounted as files by the Secrets Store CSI Driver, one file per
secret under the mount path.

Author: SecretDash Team
Date: 2026-09-03
"""

import logging
from pathlib import Path
from typing import Dict, List, Union

from ..core.config_manager import SecretStrategy
from ..exceptions import SecretFileNotFoundError
from .base import SecretSource

logger = logging.getLogger(__name__)


class CsiSecretSource(SecretSource):
    """Secret source backed by a CSI volume mount."""

    strategy = SecretStrategy.CSI

    def __init__(self, mount_path: Union[str, Path] = "/etc/secrets"):
        self.mount_path = Path(mount_path)

    async def fetch(self, name: str) -> str:
        secret_path = self.mount_path / name
        if not secret_path.is_file():
            logger.error(f"Error reading secret '{name}' from CSI: file not found at {secret_path}")
            raise SecretFileNotFoundError(str(secret_path))
        return self.read_file(name)

    def read_file(self, name: str) -> str:
        """
        Read one mounted file as text.

        Bytes that are not valid UTF-8 (PFX or DER objects) become U+FFFD.
        """
        return (self.mount_path / name).read_text(encoding="utf-8", errors="replace").strip()

    def list_files(self) -> List[str]:
        """
        List the secret files present in the mount.

        Hidden entries created by the kubelet (``..data`` and timestamped
        directories) are not regular files and are skipped.

        Returns:
            Sorted file names, empty if the mount does not exist
        """
        if not self.mount_path.is_dir():
            logger.warning(f"Secrets mount path does not exist: {self.mount_path}")
            return []
        return sorted(
            entry.name
            for entry in self.mount_path.iterdir()
            if entry.is_file() and not entry.name.startswith("..")
        )

    def read_all(self) -> Dict[str, str]:
        """Read every secret file in the mount."""
        values: Dict[str, str] = {}
        for name in self.list_files():
            values[name] = self.read_file(name)
        return values

    def describe(self) -> str:
        return f"csi ({self.mount_path})"
