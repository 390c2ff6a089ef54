"""
Heroku adapter - Reads app state from and applies actions through the Heroku CLI.

Positions passed in are zero-based, as produced by the ordered reconciler;
the CLI's --index flag is one-based and the translation happens here.
"""

import json
import logging
import re
from typing import Awaitable, Callable, Dict, List, Optional

from config import HerokuConfig
from reconcilers.base import ObservationError
from runner import CommandError, run_command

logger = logging.getLogger(__name__)

Runner = Callable[..., Awaitable[str]]

_NUMBERED_PACK = re.compile(r"^(\d+)\. (.+)$", re.MULTILINE)
_SINGLE_PACK = re.compile(r"Buildpack URL\n(.+)")


def parse_buildpacks(output: str) -> List[str]:
    """
    Parse `heroku buildpacks` output into an ordered list.

    Handles the numbered multi-buildpack listing, the single
    "Buildpack URL" form, and the no-buildpack message (empty list).

    Raises:
        ObservationError: If the numbered listing is not 1..n.
    """
    numbered: Dict[int, str] = {}
    for match in _NUMBERED_PACK.finditer(output):
        index = int(match.group(1))
        if index in numbered:
            raise ObservationError(f"Duplicate buildpack index {index} in: {output!r}")
        numbered[index] = match.group(2).strip()

    if numbered:
        if sorted(numbered) != list(range(1, len(numbered) + 1)):
            raise ObservationError(
                f"Buildpack indices {sorted(numbered)} are not contiguous "
                f"from 1 in: {output!r}"
            )
        return [numbered[i] for i in sorted(numbered)]

    match = _SINGLE_PACK.search(output)
    if match:
        return [match.group(1).strip()]
    return []


def parse_addons(output: str) -> Dict[str, str]:
    """
    Parse `heroku addons --json` output.

    Returns:
        Mapping of addon service name (e.g. 'heroku-postgresql') to the
        addon instance name needed to destroy it.

    Raises:
        ObservationError: If the output is not the expected JSON list.
    """
    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise ObservationError(f"Addon listing is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise ObservationError(
            f"Addon listing must be a JSON list, got {type(data).__name__}"
        )

    addons: Dict[str, str] = {}
    for entry in data:
        try:
            service = entry["addon_service"]["name"]
            name = entry["name"]
        except (KeyError, TypeError) as e:
            raise ObservationError(f"Malformed addon entry {entry!r}") from e
        if service in addons:
            logger.warning(
                f"Multiple '{service}' addons attached; tracking '{name}' only"
            )
        addons[service] = name
    return addons


class HerokuClient:
    """
    Heroku CLI wrapper scoped to a single app.

    Read methods raise ObservationError; write methods let CommandError
    propagate so the reconcile loop can attach the failing action.
    """

    def __init__(
        self,
        app: str,
        config: Optional[HerokuConfig] = None,
        runner: Optional[Runner] = None,
        timeout: Optional[float] = None,
    ):
        self.app = app
        self.config = config or HerokuConfig()
        self._runner = runner or run_command
        self.timeout = timeout

    async def _run(self, *args: str) -> str:
        return await self._runner([self.config.cli, *args], timeout=self.timeout)

    async def _read(self, *args: str) -> str:
        try:
            return await self._run(*args)
        except CommandError as e:
            raise ObservationError(f"Could not read state of '{self.app}': {e}") from e

    async def buildpacks(self) -> List[str]:
        """Current buildpacks, in order."""
        output = await self._read("buildpacks", "--app", self.app)
        return parse_buildpacks(output)

    async def add_buildpack(self, position: int, buildpack: str) -> None:
        """Insert a buildpack at a zero-based position."""
        await self._run(
            "buildpacks:add", "--app", self.app, "--index", str(position + 1), buildpack
        )

    async def remove_buildpack(self, position: int) -> None:
        """Remove the buildpack at a zero-based position."""
        await self._run(
            "buildpacks:remove", "--app", self.app, "--index", str(position + 1)
        )

    async def addons(self) -> Dict[str, str]:
        """Attached addons as service name -> addon instance name."""
        output = await self._read("addons", "--app", self.app, "--json")
        return parse_addons(output)

    async def create_addon(self, service: str) -> None:
        """Provision an addon from a service (or service:plan) name."""
        await self._run("addons:create", service, "--app", self.app)

    async def destroy_addon(self, name: str) -> None:
        """Destroy an addon instance by name."""
        await self._run("addons:destroy", name, "--app", self.app, "--confirm", self.app)
