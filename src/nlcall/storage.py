from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Callable, Optional, Union

from .core.Exceptions import DefinitionError
from .functions import Definition

logger = logging.getLogger(__name__)

__all__ = ["DEF_FILE_SUFFIX", "DefinitionStore", "fn_key"]

DEF_FILE_SUFFIX = ".lcdef.json"

_UNSAFE = re.compile(r"[^A-Za-z0-9_.\-]")


def fn_key(fn: Callable[..., Any]) -> str:
    """Stable file key for a callable: ``module.qualname``."""
    target = getattr(fn, "__func__", fn)
    module = getattr(target, "__module__", None) or "unknown"
    qualname = getattr(target, "__qualname__", None) or getattr(target, "__name__", None) or type(fn).__name__
    return f"{module}.{qualname}"


class DefinitionStore:
    """One JSON definition per function under ``directory``.

    Files are named ``<module.qualname><DEF_FILE_SUFFIX>``; characters that
    are unsafe in file names are replaced by ``_``.
    """

    def __init__(self, directory: Union[str, os.PathLike]) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, fn_name: str) -> Path:
        return self._directory / f"{_UNSAFE.sub('_', fn_name)}{DEF_FILE_SUFFIX}"

    def load(self, fn_name: str) -> Optional[Definition]:
        """Return the stored definition, or ``None`` when no file exists."""
        path = self.path_for(fn_name)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            definition = Definition.from_json(text)
        except DefinitionError as exc:
            raise DefinitionError(f"corrupt definition file {path}: {exc}") from exc
        logger.debug("Loaded definition %s from %s", definition.name, path)
        return definition

    def save(self, fn_name: str, definition: Definition, overwrite: bool = False) -> bool:
        """Write ``definition``; an existing file is kept unless ``overwrite``.

        Returns True when a file was written.
        """
        path = self.path_for(fn_name)
        if path.exists() and not overwrite:
            logger.debug("Keeping existing definition file %s", path)
            return False
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(definition.to_dict(), ensure_ascii=False), encoding="utf-8")
        logger.info("Saved definition %s to %s", definition.name, path)
        return True
