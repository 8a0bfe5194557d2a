from __future__ import annotations

import re
import shutil
from pathlib import Path
from typing import Protocol

_SEGMENT = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class BoosterNotFoundError(LookupError):
    def __init__(self, mission: str, runtime: str) -> None:
        super().__init__(f"No booster for mission '{mission}' and runtime '{runtime}'")
        self.mission = mission
        self.runtime = runtime


class BoosterCatalog(Protocol):
    def materialize(self, mission: str, runtime: str, target: Path) -> Path:
        """Write the booster's files into ``target`` and return the project root."""
        ...


class DirectoryBoosterCatalog:
    """Boosters laid out on disk as ``<root>/<mission>/<runtime>/``."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def locate(self, mission: str, runtime: str) -> Path:
        if not (_SEGMENT.match(mission or "") and _SEGMENT.match(runtime or "")):
            raise BoosterNotFoundError(mission, runtime)
        source = self.root / mission / runtime
        if not source.is_dir():
            raise BoosterNotFoundError(mission, runtime)
        return source

    def materialize(self, mission: str, runtime: str, target: Path) -> Path:
        source = self.locate(mission, runtime)
        shutil.copytree(source, target, dirs_exist_ok=True)
        return target
