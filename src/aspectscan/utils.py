import logging
import shlex
import subprocess
from pathlib import Path

from .constants import LOG_SEPARATOR_WIDTH, LOG_SEPARATOR_CHAR

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> Path:
    """Create directory (and parents) if it doesn't exist, then return it.

    Args:
        path: Directory path to create

    Returns:
        The same path, for chaining
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_app_root() -> Path:
    """Checkout root (`src/aspectscan/utils.py` -> repo root).

    A configuration file (aspectscan.yaml) placed here is found when the tool
    runs from another working directory through `main.py`.
    """
    return Path(__file__).resolve().parents[2]


def format_command_error(returncode: int, cmd: list[str], output: str = "") -> str:
    """Format a consistent error message for failed subprocess commands.

    Args:
        returncode: Process return code
        cmd: Command and arguments that failed
        output: Optional stdout/stderr output

    Returns:
        Formatted error message string
    """
    msg = f"Command failed ({returncode}): {' '.join(shlex.quote(c) for c in cmd)}"
    if output:
        msg += f"\n\n{output}"
    return msg


def log_section(log: logging.Logger, title: str) -> None:
    """Log a visual section separator with a title."""
    separator = LOG_SEPARATOR_CHAR * LOG_SEPARATOR_WIDTH
    log.info("")
    log.info(separator)
    log.info(" %s", title.upper())
    log.info(separator)


def run_capture(cmd: list[str], timeout: float | None = None) -> str:
    """Execute a command and return its combined stdout and stderr.

    FFmpeg writes filter output (cropdetect, metadata) to stderr, so both
    streams are merged.

    Args:
        cmd: Command and arguments to execute
        timeout: Optional timeout in seconds

    Returns:
        Combined output as a string

    Raises:
        RuntimeError: If the command is missing, times out, or exits non-zero
    """
    logger.debug("Running command: %s", " ".join(shlex.quote(c) for c in cmd))
    try:
        proc = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise RuntimeError(f"Command not found: {cmd[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise RuntimeError(f"Command timed out after {timeout}s: {cmd[0]}") from e
    if proc.returncode != 0:
        raise RuntimeError(format_command_error(proc.returncode, cmd, proc.stdout))
    return proc.stdout
