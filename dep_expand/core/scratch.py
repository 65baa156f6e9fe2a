from __future__ import annotations

import logging
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

SCRATCH_PREFIX = "dep-expand"


@contextmanager
def scratch_dir(prefix: str = SCRATCH_PREFIX) -> Iterator[Path]:
    """Create a process-unique directory and remove it on every exit path."""
    path = Path(tempfile.mkdtemp(prefix=prefix))
    logger.debug("Created scratch dir %s", path)
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        if path.exists():
            logger.warning("Failed to remove scratch dir %s", path)
        else:
            logger.debug("Removed scratch dir %s", path)
