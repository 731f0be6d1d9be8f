"""
Saving generated files.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .errors import FileOperationError

logger = logging.getLogger(__name__)


class FileWriter:
    """Writes generated content relative to a base directory."""

    def __init__(self, base_dir: Optional[str] = None):
        """
        Args:
            base_dir: Directory relative names are resolved against
                      (the current directory at write time when omitted)
        """
        self.base_dir = Path(base_dir) if base_dir else None

    def resolve(self, name: str) -> Path:
        path = Path(name).expanduser()
        if not path.is_absolute():
            path = (self.base_dir or Path(os.getcwd())) / path
        return path

    def write(self, name: str, content: str) -> Path:
        """
        Write content to a file, creating parent directories as needed.

        Returns:
            The path that was written

        Raises:
            FileOperationError: If the file cannot be written
        """
        if not name or not name.strip():
            raise FileOperationError("No file name given", user_message="No file name was given.")

        path = self.resolve(name.strip())

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except PermissionError as e:
            raise FileOperationError(
                f"Permission denied writing {path}: {e}",
                user_message=f"You don't have permission to write to {path}.",
            ) from e
        except OSError as e:
            raise FileOperationError(
                f"Error writing {path}: {e}",
                user_message=f"Could not save {path}: {e.strerror or e}",
            ) from e

        logger.info("Saved generated file %s (%d chars)", path, len(content))
        return path
