"""
Keyed, write-once artifact store on the local filesystem.
"""

import os
from typing import Callable, Optional

from sccnv.infrastructure.logger import Logger

PARTIAL_SUFFIX = ".partial"


class ArtifactStore:
    """Stores one artifact per integer key under a fixed directory.

    ``exists_for_key`` followed by ``write_for_key`` is a check-then-act
    sequence: callers must serialize builds of the same key. Writers produce
    a partial file that is renamed into place, so a reader never observes a
    half-written artifact.
    """

    def __init__(
        self,
        root: str,
        name_template: str,
        artifact: str,
        logger: Optional[Logger] = None,
    ):
        self.root = root
        self.name_template = name_template
        self.artifact = artifact
        self.logger = logger if logger is not None else Logger()

    def path_for_key(self, key: int) -> str:
        return os.path.join(self.root, self.name_template.format(key=key))

    def exists_for_key(self, key: int) -> bool:
        return os.path.isfile(self.path_for_key(key))

    def write_for_key(self, key: int, writer: Callable[[str], None]) -> str:
        """
        Write the artifact for ``key``.

        Args:
            key: Artifact key
            writer: Called with the temporary path to write to

        Returns:
            str: Final artifact path
        """
        os.makedirs(self.root, exist_ok=True)
        final_path = self.path_for_key(key)
        partial_path = final_path + PARTIAL_SUFFIX
        try:
            writer(partial_path)
            os.replace(partial_path, final_path)
        finally:
            if os.path.exists(partial_path):
                os.remove(partial_path)
        self.logger.log_save(final_path)
        return final_path

    def get_or_build(self, key: int, writer: Callable[[str], None]) -> str:
        """Return the artifact for ``key``, running ``writer`` only when absent"""
        path = self.path_for_key(key)
        if self.exists_for_key(key):
            self.logger.log_cache(self.artifact, key, hit=True, path=path)
            return path
        self.logger.log_cache(self.artifact, key, hit=False, path=path)
        return self.write_for_key(key, writer)
