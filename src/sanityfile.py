"""
Sanityfile loading and discovery.

A Sanityfile is a YAML document at the root of a deployable directory,
keyed by target kind:

    heroku:
      app: my-app
      buildpacks: [heroku/python, heroku/nodejs]
      addons: [heroku-postgresql, heroku-redis:mini]
      copy_to_root: [Procfile]
"""

import logging
import os
import re
import subprocess
from pathlib import Path, PurePosixPath
from typing import FrozenSet, List, Set, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from validation import validate_sanityfile

logger = logging.getLogger(__name__)

SANITYFILE_NAME = "Sanityfile"

# Heroku app names: lowercase letters, digits and dashes, starting with a letter
APP_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9-]{1,28}[a-z0-9]$")


class SanityfileError(Exception):
    """A Sanityfile could not be read, parsed or validated."""

    def __init__(self, path: Union[str, Path], message: str):
        self.path = Path(path)
        super().__init__(f"{path}: {message}")


class HerokuTarget(BaseModel):
    """Desired configuration of one Heroku app. Immutable once loaded."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    app: str = Field(..., description="Heroku app name", examples=["my-app"])
    buildpacks: Tuple[str, ...] = Field(
        default=(), description="Buildpacks in the order they should run"
    )
    addons: FrozenSet[str] = Field(
        default=frozenset(),
        description="Addon services, optionally with a plan (service:plan)",
    )
    copy_to_root: Tuple[str, ...] = Field(
        default=(),
        description="Files copied from this directory to the repository root",
    )

    @field_validator("app")
    @classmethod
    def validate_app(cls, v: str) -> str:
        if not APP_NAME_PATTERN.match(v):
            raise ValueError(
                "app must be 3-30 lowercase letters, digits or dashes, "
                "starting with a letter"
            )
        return v

    @field_validator("addons")
    @classmethod
    def validate_addons(cls, v: FrozenSet[str]) -> FrozenSet[str]:
        services = {}
        for addon in sorted(v):
            service = addon.split(":", 1)[0]
            if service in services:
                raise ValueError(
                    f"addons '{services[service]}' and '{addon}' name the "
                    f"same service '{service}'"
                )
            services[service] = addon
        return v

    @field_validator("copy_to_root")
    @classmethod
    def validate_copy_to_root(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        for entry in v:
            path = PurePosixPath(entry)
            if path.is_absolute() or ".." in path.parts:
                raise ValueError(
                    f"copy_to_root entry '{entry}' must be a relative path "
                    f"inside the directory"
                )
        return v


def parse_sanityfile(text: str, path: Union[str, Path] = SANITYFILE_NAME) -> HerokuTarget:
    """
    Parse Sanityfile contents.

    Raises:
        SanityfileError: If the YAML is invalid or does not describe a target.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SanityfileError(path, f"invalid YAML: {e}") from e

    is_valid, error = validate_sanityfile(data)
    if not is_valid:
        raise SanityfileError(path, error)

    try:
        return HerokuTarget(**data["heroku"])
    except ValidationError as e:
        raise SanityfileError(path, str(e)) from e


def load_sanityfile(directory: Path, filename: str = SANITYFILE_NAME) -> HerokuTarget:
    """Read and parse the Sanityfile in a directory."""
    path = Path(directory) / filename
    try:
        text = path.read_text()
    except OSError as e:
        raise SanityfileError(path, f"cannot read: {e}") from e
    target = parse_sanityfile(text, path)
    logger.debug(f"Loaded {path}: {target!r}")
    return target


def _ignored_by_git(root: Path, paths: List[Path]) -> Set[Path]:
    """
    Return the subset of paths that git ignores under root.

    Outside a git repository, or without git installed, nothing is ignored.
    """
    if not paths:
        return set()
    relative = {os.path.relpath(p, root): p for p in paths}
    try:
        result = subprocess.run(
            ["git", "check-ignore", "--stdin", "-z"],
            cwd=root,
            input="".join(f"{rel}\0" for rel in relative).encode(),
            capture_output=True,
        )
    except OSError as e:
        logger.debug(f"git unavailable, not applying ignore rules: {e}")
        return set()

    # 0 = some paths ignored, 1 = none ignored, anything else = not a repo
    if result.returncode not in (0, 1):
        logger.debug(
            f"git check-ignore failed in '{root}', not applying ignore rules: "
            f"{result.stderr.decode(errors='replace').strip()}"
        )
        return set()

    ignored = result.stdout.decode(errors="replace").split("\0")
    return {relative[rel] for rel in ignored if rel in relative}


def find_sanity_dirs(root: Path, filename: str = SANITYFILE_NAME) -> List[Path]:
    """
    Find deployable directories under root.

    A directory is deployable if it holds a Sanityfile and none of its
    ancestors (up to root) do. Hidden directories are skipped, as are
    Sanityfiles that git ignores.
    """
    found: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        if filename in filenames:
            found.append(Path(dirpath))
            dirnames[:] = []
            continue
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))

    ignored = _ignored_by_git(Path(root), [d / filename for d in found])
    for path in sorted(ignored):
        logger.info(f"Skipping '{path}', ignored by git")
    return [d for d in found if d / filename not in ignored]
