"""Atomic file writes for crash-safe snapshots.

Uses the write-to-temp-then-rename pattern:
1. Write to a .tmp file in the same directory
2. Flush + fsync the file descriptor
3. Path.replace() onto the target (atomic on POSIX)

A reader therefore sees either the previous snapshot or the new one,
never a half-written file.
"""

import json
import os
from pathlib import Path
from typing import Any, Union


def atomic_text_write(path: Union[str, Path], text: str) -> None:
    """Write text to path atomically.

    Raises:
        OSError from file I/O. The tmp file is cleaned up on error.
    """
    path = Path(path)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.replace(path)
    except BaseException:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def atomic_json_write(
    path: Union[str, Path],
    data: Any,
    *,
    indent: int = None,
) -> None:
    """Serialize data as JSON and write it atomically.

    Serialization happens before the tmp file is opened, so an
    unserializable payload never touches the disk.

    Raises:
        TypeError/ValueError from json, OSError from file I/O.
    """
    text = json.dumps(data, indent=indent)
    atomic_text_write(path, text)
