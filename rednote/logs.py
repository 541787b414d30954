"""
Logging Setup
Console + file logging, and helpers behind the ``pack-logs`` / ``open-logs``
commands.
"""

import logging
import subprocess
import sys
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s | %(levelname)s | %(message)s'
LOG_DATEFMT = '%H:%M:%S'
LOG_FILENAME = 'rednote.log'


def configure_logging(logs_dir: Union[str, Path], level: str = "INFO") -> Path:
    """
    Configure root logging to stderr and to ``<logs_dir>/rednote.log``.

    Args:
        logs_dir: Directory for log files (created if missing)
        level: Logging level name

    Returns:
        Path of the log file
    """
    logs_path = Path(logs_dir)
    logs_path.mkdir(parents=True, exist_ok=True)
    log_file = logs_path / LOG_FILENAME

    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(message)s'
    ))

    # stderr only: stdout may carry tool output
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[console, file_handler],
        force=True,
    )
    return log_file


def pack_logs(logs_dir: Union[str, Path], output_dir: Optional[Union[str, Path]] = None) -> Path:
    """
    Zip every file in *logs_dir*.

    Args:
        logs_dir: Directory holding the log files
        output_dir: Where to write the archive (defaults to the parent of *logs_dir*)

    Returns:
        Path of the created zip file
    """
    logs_path = Path(logs_dir)
    if not logs_path.is_dir():
        raise FileNotFoundError(f"Log directory does not exist: {logs_path}")

    target_dir = Path(output_dir) if output_dir else logs_path.parent
    target_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime('%Y%m%d-%H%M%S')
    zip_path = target_dir / f"rednote-logs-{stamp}.zip"

    with zipfile.ZipFile(zip_path, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
        for path in sorted(logs_path.rglob('*')):
            if path.is_file():
                archive.write(path, arcname=str(path.relative_to(logs_path)))

    logger.info(f"Logs packed to {zip_path}")
    return zip_path


def open_logs_command(logs_dir: Union[str, Path], platform: str = sys.platform) -> list:
    """Command that opens *logs_dir* in the platform's file manager."""
    path = str(logs_dir)
    if platform == 'darwin':
        return ['open', path]
    if platform == 'win32':
        return ['explorer', path]
    if platform.startswith('linux'):
        return ['xdg-open', path]
    raise OSError(f"Unsupported platform: {platform}")


def open_logs_dir(logs_dir: Union[str, Path]) -> None:
    """Open *logs_dir* in the file manager (created if missing)."""
    Path(logs_dir).mkdir(parents=True, exist_ok=True)
    subprocess.run(open_logs_command(logs_dir), check=False)
