"""Load collection definitions from YAML files.

Each ``*.yaml`` file under the collections directory holds one definition
under a top-level ``collection`` key::

    collection:
      name: albums
      schema:
        title: {type: string, required: true}
        streams: {type: number, defaultValue: 0}
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


@dataclass
class DefinitionFile:
    """A raw definition read from disk, not yet validated."""

    path: Path
    definition: dict[str, Any]

    @property
    def name(self) -> str:
        return str(self.definition.get("name", self.path.stem))


class DefinitionFileError(Exception):
    """A definition file could not be read or is not a definition."""

    def __init__(self, path: Path, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


def load_definition_file(path: Path) -> DefinitionFile:
    """Read one definition file.

    Raises:
        DefinitionFileError: If the file is not valid YAML or has no ``collection`` key
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise DefinitionFileError(path, f"YAML parse error: {e}")

    if not isinstance(data, dict) or not isinstance(data.get("collection"), dict):
        raise DefinitionFileError(path, "expected a top-level 'collection' mapping")
    return DefinitionFile(path=path, definition=data["collection"])


def load_definitions(path: Path | str) -> list[DefinitionFile]:
    """Read every ``*.yaml`` definition under ``path`` (or ``path`` itself).

    Files are returned so that a definition comes after the definitions its
    relation fields point at, where those are part of the same set.
    """
    path = Path(path)
    if path.is_file():
        files = [path]
    elif path.is_dir():
        files = sorted(path.glob("*.yaml")) + sorted(path.glob("*.yml"))
    else:
        logger.warning("Collections path %s does not exist", path)
        return []

    loaded = [load_definition_file(f) for f in files]
    return order_by_relations(loaded)


def _relation_targets(definition: dict[str, Any]) -> set[str]:
    targets = set()
    for spec in (definition.get("schema") or {}).values():
        if isinstance(spec, dict) and isinstance(spec.get("relation"), str):
            targets.add(spec["relation"])
    return targets


def order_by_relations(files: list[DefinitionFile]) -> list[DefinitionFile]:
    """Order definitions so relation targets precede the definitions using them.

    Cycles and references outside the set keep their original order; the
    registry reports them when the definitions are created.
    """
    names = {f.name for f in files}
    ordered: list[DefinitionFile] = []
    placed: set[str] = set()
    pending = list(files)

    while pending:
        ready = [
            f
            for f in pending
            if not ((_relation_targets(f.definition) & names) - placed - {f.name})
        ]
        if not ready:
            ordered.extend(pending)
            break
        for f in ready:
            ordered.append(f)
            placed.add(f.name)
            pending.remove(f)

    return ordered
