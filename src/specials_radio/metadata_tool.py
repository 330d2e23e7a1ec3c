"""External metadata tools: ffprobe, ffmpeg stream-copy and the ID3 fix script.

The core pipeline only talks to the MetadataTool interface so it can be
exercised without spawning processes.
"""

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config.tools import ToolsConfig

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    """Outcome of a side-effecting tool invocation."""

    success: bool
    message: str = ""


def output_tail(output: str, lines: int) -> str:
    """Return the last ``lines`` lines of tool output."""
    return "\n".join(output.splitlines()[-lines:])


def temp_path_for(file_path: Path) -> Path:
    """Sibling hidden temp path used for the stream-copy rewrite.

    Keeps the original extension so ffmpeg picks the same container.
    """
    ext = file_path.suffix.lower()
    return file_path.parent / f".{file_path.name}.tmp{ext}"


class MetadataTool(ABC):
    """Reads, rewrites and repairs audio file tags."""

    @abstractmethod
    def probe_tag(self, file_path: Path, tag: str) -> Optional[str]:
        """Return the tag value, or None when absent or unreadable."""

    @abstractmethod
    def write_tags(self, file_path: Path, artist: str, title: str) -> ToolResult:
        """Replace artist/title tags in place."""

    @abstractmethod
    def repair_directory(self, directory: Path) -> ToolResult:
        """Normalize ID3 tags for every file in a directory."""


class FFmpegMetadataTool(MetadataTool):
    """MetadataTool backed by ffprobe, ffmpeg and an external fix script."""

    def __init__(self, settings: Optional[ToolsConfig] = None):
        self.settings = settings or ToolsConfig()

    def probe_tag(self, file_path: Path, tag: str) -> Optional[str]:
        """Read a single format tag with ffprobe.

        Tool missing, crash, timeout and empty output all look the same to
        the caller: None.
        """
        cmd = [
            self.settings.ffprobe_bin,
            "-v", "quiet",
            "-show_entries", f"format_tags={tag}",
            "-of", "csv=p=0",
            str(file_path),
        ]

        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                timeout=self.settings.probe_timeout_sec,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"ffprobe failed for {file_path} ({tag}): {e}")
            return None

        if result.returncode != 0:
            logger.warning(f"ffprobe exited {result.returncode} for {file_path} ({tag})")
            return None

        value = result.stdout.strip()
        return value if value else None

    def write_tags(self, file_path: Path, artist: str, title: str) -> ToolResult:
        """Rewrite artist/title via ffmpeg stream copy and atomic rename.

        Args:
            file_path: Audio file to rewrite in place
            artist: New artist tag
            title: New title tag

        Returns:
            ToolResult; on failure the temp file is removed and the original
            is untouched.
        """
        tmp_path = temp_path_for(file_path)
        cmd = [
            self.settings.ffmpeg_bin,
            "-y",
            "-i", str(file_path),
            "-codec", "copy",
            "-metadata", f"artist={artist}",
            "-metadata", f"title={title}",
            str(tmp_path),
        ]

        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.settings.transcode_timeout_sec,
            )
            returncode = result.returncode
            output = result.stdout or ""
        except subprocess.TimeoutExpired:
            returncode = -1
            output = f"timed out after {self.settings.transcode_timeout_sec:g}s"
        except OSError as e:
            returncode = -1
            output = str(e)

        if returncode != 0 or not tmp_path.exists():
            tmp_path.unlink(missing_ok=True)
            tail = output_tail(output, self.settings.error_tail_lines)
            return ToolResult(False, f"ffmpeg tag write failed: {tail}")

        try:
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, file_path)
        except OSError as e:
            logger.error(f"Failed to replace {file_path}: {e}")
            tmp_path.unlink(missing_ok=True)
            return ToolResult(False, "Failed to replace file after tag write")

        logger.info(f"Rewrote tags on {file_path.name}")
        return ToolResult(True, "Tags updated")

    def repair_directory(self, directory: Path) -> ToolResult:
        """Run the configured ID3 fix script over a directory."""
        script = self.settings.fix_id3_script
        if script is None or str(script) == "" or not Path(script).exists():
            return ToolResult(False, "ID3 fix script not found")

        try:
            result = subprocess.run(
                [str(script), str(directory)],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.settings.repair_timeout_sec,
            )
        except subprocess.TimeoutExpired:
            return ToolResult(
                False, f"ID3 fix script timed out after {self.settings.repair_timeout_sec:g}s"
            )
        except OSError as e:
            return ToolResult(False, f"ID3 fix script failed to start: {e}")

        output = (result.stdout or "").strip()
        if result.returncode != 0:
            logger.error(f"ID3 fix script exited {result.returncode} for {directory}")
        return ToolResult(result.returncode == 0, output)
