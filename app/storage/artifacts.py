"""Filesystem artifact store: uploaded inputs, outputs, per-task working dirs."""

import logging
import os
import shutil
from typing import Optional

logger = logging.getLogger(__name__)


class ArtifactStore:
    """Lays out task artifacts under one processing root.

    uploads/<task_id>.<in_ext>   input, removed once the task finishes
    frames-<task_id>/            working data, removed with the input
    output/<task_id>.<out_ext>   result, kept for download
    """

    def __init__(self, root: str, input_extension: str = "mp4", output_extension: str = "webm"):
        self._root = os.path.abspath(root)
        self._input_ext = input_extension
        self._output_ext = output_extension
        self.uploads_dir = os.path.join(self._root, "uploads")
        self.output_dir = os.path.join(self._root, "output")

    def ensure_dirs(self) -> None:
        os.makedirs(self.uploads_dir, exist_ok=True)
        os.makedirs(self.output_dir, exist_ok=True)

    def input_path(self, task_id: str) -> str:
        return os.path.join(self.uploads_dir, f"{task_id}.{self._input_ext}")

    def output_name(self, task_id: str) -> str:
        return f"{task_id}.{self._output_ext}"

    def output_path(self, task_id: str) -> str:
        return os.path.join(self.output_dir, self.output_name(task_id))

    def working_dir(self, task_id: str) -> str:
        return os.path.join(self._root, f"frames-{task_id}")

    def download_link(self, task_id: str) -> str:
        return f"/download/{self.output_name(task_id)}"

    def resolve_download(self, file_name: str) -> Optional[str]:
        """Path of an existing output file, or None.

        Only bare file names directly inside output/ are served.
        """
        if not file_name or os.path.basename(file_name) != file_name or file_name in (".", ".."):
            return None
        path = os.path.join(self.output_dir, file_name)
        if not os.path.isfile(path):
            return None
        return path

    def cleanup(self, task_id: str) -> None:
        """Delete the input artifact and working dir. Missing paths are a no-op."""
        input_path = self.input_path(task_id)
        try:
            os.remove(input_path)
            logger.debug("Removed input %s", input_path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not remove input %s: %s", input_path, exc)

        frame_dir = self.working_dir(task_id)
        if os.path.isdir(frame_dir):
            try:
                shutil.rmtree(frame_dir)
                logger.debug("Removed working dir %s", frame_dir)
            except OSError as exc:
                logger.warning("Could not remove working dir %s: %s", frame_dir, exc)
