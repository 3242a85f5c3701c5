"""
Error reporting for the cargo-prebuild command line.

Every projection failure is fatal; the command prints one diagnostic and
exits non-zero. Nothing is retried.
"""

import os
import traceback

from cargo_prebuild.errors import PrebuildError

# Maximum length for traceback output in CLI
_CLI_TRACE_LIMIT = 4000

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def format_cli_error(
    exc: BaseException,
    *,
    include_traceback: bool = False,
) -> str:
    """
    Format an exception for display on stderr.

    Examples:
        >>> from cargo_prebuild.errors import UnknownService
        >>> print(format_cli_error(UnknownService("api", ["worker"])))
        Error [UNKNOWN_SERVICE]: Service 'api' is not a member of the workspace
        Hint: Available members: worker
    """
    lines = []

    if isinstance(exc, PrebuildError):
        lines.append(f"Error [{exc.code}]: {exc.message}")
        location = exc.location.describe()
        if location != "unknown location":
            lines.append(f"  --> {location}")
        if exc.hint:
            lines.append(f"Hint: {exc.hint}")
    else:
        lines.append(f"Error: {exc.__class__.__name__}: {exc}")

    if include_traceback:
        lines.append("\nTraceback:")
        lines.append(format_traceback_excerpt())

    return "\n".join(lines)


def format_traceback_excerpt() -> str:
    """
    Format the exception being handled, truncated to a readable size.

    Only meaningful inside an ``except`` block.
    """
    trace = traceback.format_exc().strip()
    if len(trace) <= _CLI_TRACE_LIMIT:
        return trace
    return f"{trace[:_CLI_TRACE_LIMIT - 3]}..."


def _env_flag(name: str) -> bool:
    val = os.getenv(name)
    if val is None:
        return False
    return val.strip().lower() in {"1", "true", "yes", "on"}


def cli_verbose_enabled(verbose_flag: bool = False) -> bool:
    """Explicit flag or CARGO_PREBUILD_VERBOSE / CARGO_PREBUILD_DEBUG."""
    return verbose_flag or _env_flag("CARGO_PREBUILD_VERBOSE") or _env_flag("CARGO_PREBUILD_DEBUG")


def cli_reraise_enabled() -> bool:
    """Re-raise instead of exiting when CARGO_PREBUILD_DEBUG is set."""
    return _env_flag("CARGO_PREBUILD_DEBUG")
