# pyright: standard

"""snapcopy: snapcopy/core/copy.py
Run the external mirror copy tool (robocopy) for one backup item.

The executor owns retry, wait, concurrency and log destination flags; user
supplied options setting any of them are dropped.
"""

import logging
import os
import re
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from .. import strip_trailing_sep

logger = logging.getLogger(__name__)

# Exit code used when the tool is not invoked at all
FATAL_EXIT_CODE = 16
# Codes below this are informational (nothing copied, extra files, ...)
FAILURE_THRESHOLD = 8

RETRY_ARGS = ["/R:1", "/W:1"]
THREAD_COUNT = 16

PROTECTED_OPTION = re.compile(r"^/(LOG\+?|R|W|MT)(:.*)?$", re.IGNORECASE)
# A token is a run of unquoted characters and quoted substrings, so
# /LOG:"C:\My Logs\x.log" stays whole
OPTION_TOKEN = re.compile(r'(?:[^\s"]+|"[^"]*")+')


class CopyStatus(Enum):
    SUCCESS = "Success"
    FAILED = "Failed"


@dataclass(frozen=True)
class CopyResult:
    status: CopyStatus
    exit_code: int
    log_file: str

    @property
    def ok(self) -> bool:
        return self.status is CopyStatus.SUCCESS


def classify_exit_code(code: int) -> CopyStatus:
    return CopyStatus.SUCCESS if code < FAILURE_THRESHOLD else CopyStatus.FAILED


def split_options(options: str) -> list[str]:
    """Tokenize an option string, keeping quoted substrings and their quotes."""
    if not options or not options.strip():
        return []
    if options.count('"') % 2:
        logger.warning("Unbalanced quote in copy options %r, splitting on spaces", options)
        return options.split()
    return OPTION_TOKEN.findall(options)


def sanitize_options(options: str) -> list[str]:
    """Drop protected options from a user supplied option string."""
    kept = []
    for token in split_options(options):
        if PROTECTED_OPTION.match(token):
            logger.warning("Ignoring reserved copy option: %s", token)
            continue
        kept.append(token)
    return kept


def build_arguments(
    source: str, destination: str, options: str, rate_limit_ms: int, log_file: str
) -> list[str]:
    """Compose the full argument list, mandatory flags last."""
    args = [strip_trailing_sep(source), strip_trailing_sep(destination)]
    args.extend(sanitize_options(options))
    args.append(f"/LOG:{log_file}")
    args.extend(RETRY_ARGS)
    args.append(f"/MT:{THREAD_COUNT}")
    if rate_limit_ms > 0:
        args.append(f"/IPG:{rate_limit_ms}")
    return args


class CopyRunner(Protocol):
    """Runs the copy tool with the given arguments and returns its exit code."""

    def run(self, args: list[str]) -> int: ...


def _quote(token: str) -> str:
    if token.startswith('"') or '"' in token or not re.search(r"\s", token):
        return token
    return f'"{token}"'


def command_line(executable: str, args: list[str]) -> str:
    """Windows command line keeping pre-quoted tokens verbatim."""
    return " ".join(_quote(token) for token in [executable, *args])


class RobocopyRunner:
    """Spawn the real copy tool synchronously."""

    def __init__(self, executable: str = "robocopy") -> None:
        self.executable = executable

    def run(self, args: list[str]) -> int:
        if os.name == "nt":
            cmd = command_line(self.executable, args)
        else:
            cmd = [self.executable, *(token.replace('"', "") for token in args)]
        logger.debug("Executing: %s", cmd)
        try:
            # Output goes to the tool's own log
            result = subprocess.run(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                check=False,
            )
        except OSError as e:
            logger.error("Cannot start %s: %s", self.executable, e)
            return FATAL_EXIT_CODE
        if result.stderr:
            logger.debug("%s stderr: %s", self.executable, result.stderr.strip())
        return result.returncode


class CopyExecutor:
    """Copy one item and classify the outcome."""

    def __init__(self, runner: CopyRunner) -> None:
        self.runner = runner

    def run(
        self,
        source: str,
        destination: str,
        options: str = "",
        rate_limit_ms: int = 0,
        log_file: str | os.PathLike = "",
    ) -> CopyResult:
        log_file = str(log_file)

        if not source or not source.strip() or not destination or not destination.strip():
            logger.error(
                "Refusing to copy with empty source (%r) or destination (%r)",
                source,
                destination,
            )
            return CopyResult(CopyStatus.FAILED, FATAL_EXIT_CODE, log_file)

        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)

        args = build_arguments(source, destination, options, rate_limit_ms, log_file)
        logger.info("Copying %s -> %s", args[0], args[1])
        exit_code = self.runner.run(args)
        status = classify_exit_code(exit_code)

        if status is CopyStatus.SUCCESS:
            logger.info("Copy finished with exit code %d", exit_code)
        else:
            logger.error(
                "Copy of %s failed with exit code %d, see %s", args[0], exit_code, log_file
            )
        return CopyResult(status, exit_code, log_file)
