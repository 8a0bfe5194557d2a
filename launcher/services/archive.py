from __future__ import annotations

import io
import zipfile
from pathlib import Path


def zip_directory(name: str, path: str | Path) -> bytes:
    """Zip the tree at ``path`` with every entry nested under ``name/``."""
    root = Path(path)
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for file in sorted(root.rglob("*")):
            if file.is_file():
                archive.write(file, f"{name}/{file.relative_to(root).as_posix()}")
    return buffer.getvalue()


def unzip(contents: bytes, target: str | Path) -> Path:
    """Extract a zip archive into ``target``, refusing entries outside it."""
    target = Path(target).resolve()
    with zipfile.ZipFile(io.BytesIO(contents)) as archive:
        for member in archive.infolist():
            destination = (target / member.filename).resolve()
            if destination != target and not destination.is_relative_to(target):
                raise ValueError(f"Archive entry escapes target directory: {member.filename}")
        archive.extractall(target)
    return target
