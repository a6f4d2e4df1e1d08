"""Local environment loading for VAULTLINE.

This module provides the LocalSource interface and its canonical
implementation, DotEnvSource, which layers configuration in increasing
precedence:

    1. .env                (base file, lowest priority)
    2. .env.<environment>  (environment-named file)
    3. .env.local          (local overrides)
    4. Process variables   (highest priority, always win)

Loading never fails: missing or unreadable files are skipped and
malformed lines are ignored, so the worst case is an empty result.

Security: Uses safe line-by-line parsing (no eval/exec). Only reads
KEY=VALUE, KEY="VALUE" and KEY='VALUE' lines, optionally prefixed
with ``export``.
"""

from __future__ import annotations

import logging
import os
import re
from abc import ABC, abstractmethod
from collections import ChainMap
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from vaultline.utils.env_utils import expand_references

logger = logging.getLogger(__name__)

ENVIRONMENT_KEY = "VAULTLINE_ENVIRONMENT"
DEFAULT_ENVIRONMENT = "development"

# Source label for values that came from process variables
PROCESS_SOURCE = "process"

_LINE_PATTERN = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_.\-]*)\s*=\s*(.*)$")
_ESCAPE_PATTERN = re.compile(r'\\(["\\n])')
_ESCAPES = {'"': '"', "\\": "\\", "n": "\n"}


@dataclass
class LocalEnvironment:
    """Result of loading the local environment.

    File-based values and process variables are kept apart so the merge
    step can place remote values between them.

    Attributes:
        environment: Environment name used to pick the .env.<environment> file
        file_values: Values from env files, later files overriding earlier ones
        process_values: Process-level variables
        loaded_files: Files actually read, in load order
        sources: Key to origin ("process" or the file path) of the effective value
    """

    environment: str = DEFAULT_ENVIRONMENT
    file_values: dict[str, str] = field(default_factory=dict)
    process_values: dict[str, str] = field(default_factory=dict)
    loaded_files: list[Path] = field(default_factory=list)
    sources: dict[str, str] = field(default_factory=dict)

    def combined(self) -> dict[str, str]:
        """Return file values overlaid with process variables."""
        return {**self.file_values, **self.process_values}

    def source_of(self, key: str) -> str | None:
        """Get where the effective value of a key came from."""
        return self.sources.get(key)


class LocalSource(ABC):
    """Provider of locally available configuration.

    Implementations must never raise: anything unreadable is skipped.
    """

    @abstractmethod
    def load(self) -> LocalEnvironment:
        """Collect local configuration in precedence order."""

    @property
    def root(self) -> Path | None:
        """Directory the source reads from, if it is file-based."""
        return None


class DotEnvSource(LocalSource):
    """Loads .env-style files from a directory plus process variables.

    Attributes:
        root: Directory containing the env files
    """

    BASE_FILE = ".env"
    LOCAL_FILE = ".env.local"

    def __init__(
        self,
        root: Path | None = None,
        environment: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            root: Directory containing the env files (default: current directory)
            environment: Environment name override (default: from VAULTLINE_ENVIRONMENT)
            environ: Process variables override (default: os.environ at load time)
        """
        self._root = root
        self._environment = environment
        self._environ = environ

    @property
    def root(self) -> Path:
        return self._root or Path.cwd()

    def resolve_environment(self, process_values: Mapping[str, str]) -> str:
        """Determine the environment name used to pick files."""
        if self._environment and self._environment.strip():
            return self._environment.strip()
        from_process = process_values.get(ENVIRONMENT_KEY, "").strip()
        return from_process or DEFAULT_ENVIRONMENT

    def candidate_files(self, environment: str) -> list[str]:
        """File names to load, lowest priority first."""
        names = [self.BASE_FILE, f".env.{environment}", self.LOCAL_FILE]
        # .env.local doubles as the environment file when environment == "local"
        return list(dict.fromkeys(names))

    def load(self) -> LocalEnvironment:
        """Load env files and process variables.

        Values in files may reference other variables as ${VAR}; references
        resolve against process variables first, then values loaded so far.
        """
        environ = self._environ if self._environ is not None else os.environ
        process_values = {k: v for k, v in environ.items() if v is not None}
        environment = self.resolve_environment(process_values)

        result = LocalEnvironment(environment=environment, process_values=process_values)
        lookup = ChainMap(process_values, result.file_values)

        for name in self.candidate_files(environment):
            path = self.root / name
            lines = _read_lines(path)
            if lines is None:
                continue

            count = 0
            for key, value, expandable in iter_env_entries(lines):
                if expandable and "${" in value:
                    value = expand_references(value, lookup, context=key)
                result.file_values[key] = value
                result.sources[key] = str(path)
                count += 1

            result.loaded_files.append(path)
            logger.debug("Loaded %d values from %s", count, path)

        for key in process_values:
            result.sources[key] = PROCESS_SOURCE

        logger.debug(
            "Local environment '%s': %d file values from %d files, %d process variables",
            environment,
            len(result.file_values),
            len(result.loaded_files),
            len(process_values),
        )
        return result


def parse_env_line(line: str) -> tuple[str, str, bool] | None:
    """Parse a single env file line.

    Returns:
        (key, value, expandable) or None for blank, comment and malformed
        lines. Single-quoted values are literal and not expandable.
    """
    line = line.strip()

    # Skip empty lines and comments
    if not line or line.startswith("#"):
        return None

    match = _LINE_PATTERN.match(line)
    if not match:
        return None

    key, value = match.groups()
    value = value.strip()

    if len(value) >= 2 and value[0] == value[-1] == '"':
        # Double quotes: unescape \" \\ and \n
        return key, _unescape(value[1:-1]), True
    if len(value) >= 2 and value[0] == value[-1] == "'":
        # Single quotes: no escaping, just remove quotes
        return key, value[1:-1], False
    return key, value, True


def iter_env_entries(lines: Iterable[str]) -> Iterator[tuple[str, str, bool]]:
    """Yield parsed entries from env file lines, skipping unparseable ones."""
    for line in lines:
        parsed = parse_env_line(line)
        if parsed is not None:
            yield parsed


def _unescape(value: str) -> str:
    return _ESCAPE_PATTERN.sub(lambda m: _ESCAPES[m.group(1)], value)


def _read_lines(path: Path) -> list[str] | None:
    if not path.is_file():
        return None
    try:
        return path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Skipping unreadable env file %s: %s", path, e)
        return None


__all__ = [
    "DEFAULT_ENVIRONMENT",
    "ENVIRONMENT_KEY",
    "PROCESS_SOURCE",
    "DotEnvSource",
    "LocalEnvironment",
    "LocalSource",
    "iter_env_entries",
    "parse_env_line",
]
