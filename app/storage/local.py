"""
Local Filesystem Storage Backend

Keeps knowledge-base artifacts as files in one directory.
"""

import os
from pathlib import Path

from .base import StorageBackend


class LocalStorage(StorageBackend):
    """
    Local filesystem storage.

    Layout:
        storage/knowledge_base/
            hts_codes.json
            passages.json
    """

    SCHEME = "local"

    def __init__(self, base_path: str = "storage/knowledge_base"):
        """
        Args:
            base_path: Artifact directory. Relative paths are resolved from
                       the project root, not the working directory.
        """
        if not os.path.isabs(base_path):
            project_root = Path(__file__).parent.parent.parent  # app/storage/local.py -> project root
            base_path = project_root / base_path

        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.base_path / key

    def write(self, key: str, data: bytes) -> None:
        # Same-directory temp file so os.replace stays a rename
        path = self._path(key)
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)

    def read(self, key: str) -> bytes:
        return self._path(key).read_bytes()

    def remove(self, key: str) -> bool:
        try:
            self._path(key).unlink()
            return True
        except FileNotFoundError:
            return False

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def location(self, key: str) -> str:
        return str(self._path(key))
