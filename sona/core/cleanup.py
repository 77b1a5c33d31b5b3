"""
Cleanup: the per-run temporary workspace and temporary audio assets.
"""

import shutil
import logging
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator

from sona.core.constants import TEMP_DIR_PREFIX
from sona.core.models import AudioAsset

logger = logging.getLogger(__name__)


@contextmanager
def temp_workspace(temp_root: Path | None = None) -> Iterator[Path]:
    """
    Create a private working directory for one run and remove it on every
    exit path, including exceptions and KeyboardInterrupt.
    """
    if temp_root is not None:
        Path(temp_root).mkdir(parents=True, exist_ok=True)
    workspace = Path(tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX, dir=temp_root))
    logger.debug("Created workspace: %s", workspace)
    try:
        yield workspace
    finally:
        cleanup_workspace(workspace)


def cleanup_workspace(workspace: Path):
    """Delete the workspace and everything in it. Failures are logged, not raised."""
    if not workspace.exists():
        return
    try:
        shutil.rmtree(workspace)
        logger.debug("Deleted workspace: %s", workspace)
    except OSError as e:
        logger.warning("Failed to delete %s: %s", workspace, e)


def remove_temporary_assets(assets: Iterable[AudioAsset]):
    """Unlink temporary assets that live outside the workspace."""
    for asset in assets:
        if not asset.is_temporary:
            continue
        try:
            asset.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to delete %s: %s", asset.path, e)
