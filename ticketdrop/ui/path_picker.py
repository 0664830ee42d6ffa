"""
Path selection source.

Native file and directory prompts. Both return an absolute path, or None when
the user dismisses the dialog.
"""

from typing import Optional

from PyQt6.QtWidgets import QFileDialog

from common.constants import FILE_FILTER_EXTENSIONS


def build_file_filter() -> str:
    """Qt name filter listing the accepted file types."""
    patterns = " ".join(f"*.{ext}" for ext in FILE_FILTER_EXTENSIONS)
    return f"Supported Files ({patterns});;All Files (*)"


class PathPicker:
    """Opens file dialogs on behalf of the flow controllers."""

    def __init__(self, parent=None, start_dir: str = ""):
        self.parent = parent
        self.start_dir = start_dir

    def pick_file(self) -> Optional[str]:
        file_path, _ = QFileDialog.getOpenFileName(
            self.parent, "Select file to share", self.start_dir, build_file_filter()
        )
        return file_path or None

    def pick_directory(self) -> Optional[str]:
        dir_path = QFileDialog.getExistingDirectory(
            self.parent, "Select destination folder", self.start_dir
        )
        return dir_path or None
