"""Pytest configuration and fixtures."""

from typing import Dict, Iterable, List, Optional

import pytest

import config
from config import Config, ConvergenceConfig
from runner import CommandError


class FakeHerokuClient:
    """In-memory stand-in for HerokuClient with the same interface."""

    def __init__(
        self,
        app: str = "my-app",
        buildpacks: Iterable[str] = (),
        addons: Optional[Dict[str, str]] = None,
    ):
        self.app = app
        self.state_buildpacks: List[str] = list(buildpacks)
        self.state_addons: Dict[str, str] = dict(addons or {})
        self.calls: List[tuple] = []
        # When False, mutations are accepted but never show up in reads
        self.reflect_changes = True
        self._counter = 0

    async def buildpacks(self) -> List[str]:
        return list(self.state_buildpacks)

    async def add_buildpack(self, position: int, buildpack: str) -> None:
        self.calls.append(("add_buildpack", position, buildpack))
        if self.reflect_changes:
            self.state_buildpacks.insert(position, buildpack)

    async def remove_buildpack(self, position: int) -> None:
        self.calls.append(("remove_buildpack", position))
        if self.reflect_changes:
            del self.state_buildpacks[position]

    async def addons(self) -> Dict[str, str]:
        return dict(self.state_addons)

    async def create_addon(self, service: str) -> None:
        self.calls.append(("create_addon", service))
        if self.reflect_changes:
            self._counter += 1
            name = service.split(":", 1)[0]
            self.state_addons[name] = f"{name}-instance-{self._counter}"

    async def destroy_addon(self, name: str) -> None:
        self.calls.append(("destroy_addon", name))
        if self.reflect_changes:
            self.state_addons = {
                service: instance
                for service, instance in self.state_addons.items()
                if instance != name
            }


class FakeRunner:
    """
    Scripted command runner.

    Responses are matched by command-line prefix; an exception instance as a
    response is raised instead of returned.
    """

    def __init__(self, responses: Optional[Dict[str, object]] = None):
        self.responses = responses or {}
        self.calls: List[List[str]] = []
        self.timeouts: List[Optional[float]] = []
        self.cwds: List[Optional[object]] = []

    async def __call__(self, argv, timeout=None, cwd=None) -> str:
        self.calls.append(list(argv))
        self.timeouts.append(timeout)
        self.cwds.append(cwd)
        line = " ".join(argv)
        for prefix, response in self.responses.items():
            if line.startswith(prefix):
                if isinstance(response, Exception):
                    raise response
                return response
        return ""

    def lines(self) -> List[str]:
        return [" ".join(call) for call in self.calls]


@pytest.fixture
def fake_heroku():
    """Factory for in-memory Heroku clients."""
    return FakeHerokuClient


@pytest.fixture
def fake_runner():
    """Factory for scripted command runners."""
    return FakeRunner


@pytest.fixture
def command_error():
    """Factory for CommandError instances."""

    def _make(command: str = "heroku", returncode: int = 1, stderr: str = "boom"):
        return CommandError(command, returncode, stderr)

    return _make


@pytest.fixture
def convergence_config():
    """Convergence settings without delays."""
    return ConvergenceConfig(max_iterations=50, stagnation_limit=3, settle_delay=0.0)


@pytest.fixture
def app_config():
    """Default configuration."""
    return Config.default()


@pytest.fixture(autouse=True)
def clean_config():
    """Reset the global config singleton around each test."""
    config.reset_config()
    yield
    config.reset_config()
