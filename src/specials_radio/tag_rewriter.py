"""Special broadcast tag rewriting.

Marks a file's artist and title as a special broadcast, verifying the
result by reading the tags back. The sequence runs once when a special is
scheduled and again when it is dispatched; the second pass is normally a
no-op only because suffixing is idempotent.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config.scheduling import SchedulingConfig
from .errors import TagRewriteError
from .metadata_tool import MetadataTool

logger = logging.getLogger(__name__)

MARKER_PHRASE = "special broadcast"


@dataclass
class TagRewriteResult:
    """Tags as read back from the rewritten file."""

    artist: str
    title: str


def ensure_special_broadcast_suffix(
    value: Optional[str], marker: str = MARKER_PHRASE
) -> Optional[str]:
    """Append " - <marker>" unless the marker is already present.

    Matching is a case-insensitive substring check.
    """
    if value is None:
        return None
    if marker.lower() in value.lower():
        return value
    return f"{value.rstrip()} - {marker}"


def has_marker(value: Optional[str], marker: str = MARKER_PHRASE) -> bool:
    return value is not None and marker.lower() in value.lower()


def rewrite_special_tags(
    file_path: Path,
    tool: MetadataTool,
    repair_dir: Path,
    settings: Optional[SchedulingConfig] = None,
) -> TagRewriteResult:
    """Run the repair / probe / suffix / rewrite / verify sequence.

    Args:
        file_path: Audio file to mark
        tool: Metadata tool used for every external step
        repair_dir: Directory handed to the batch ID3 repair
        settings: Marker phrase and repair extensions

    Returns:
        TagRewriteResult with the verified tags

    Raises:
        TagRewriteError: Any step failed. A verification failure happens
            after the rename, so the rewritten file stays in place. A repair
            failure carries only "ID3 tag fix failed"; the script output
            goes to the log, not into the error message.
    """
    settings = settings or SchedulingConfig()
    marker = settings.marker_phrase
    ext = file_path.suffix.lower().lstrip(".")

    if ext in settings.repair_extensions:
        repair = tool.repair_directory(repair_dir)
        if not repair.success:
            logger.error(f"ID3 repair failed for {repair_dir}: {repair.message}")
            raise TagRewriteError(TagRewriteError.REPAIR, "ID3 tag fix failed")

    artist = tool.probe_tag(file_path, "artist")
    title = tool.probe_tag(file_path, "title")
    if artist is None or title is None:
        raise TagRewriteError(TagRewriteError.PROBE, "Missing artist/title metadata")

    new_artist = ensure_special_broadcast_suffix(artist, marker)
    new_title = ensure_special_broadcast_suffix(title, marker)

    write = tool.write_tags(file_path, new_artist, new_title)
    if not write.success:
        raise TagRewriteError(TagRewriteError.WRITE, write.message)

    verify_artist = tool.probe_tag(file_path, "artist")
    verify_title = tool.probe_tag(file_path, "title")
    if not (has_marker(verify_artist, marker) and has_marker(verify_title, marker)):
        # No rollback: the rename already happened
        raise TagRewriteError(TagRewriteError.VERIFY, "Metadata verification failed")

    logger.info(f"Tagged {file_path.name}: {verify_artist} / {verify_title}")
    return TagRewriteResult(artist=verify_artist, title=verify_title)
