"""Concrete adapters for archives, terminal I/O and atomic file writes."""

from __future__ import annotations

import logging
import os
import stat
import zipfile
import zlib
from pathlib import Path

import click

from ..errors import ExtractionError

logger = logging.getLogger(__name__)


def _atomic_write(path: Path, data: str, mode: int | None = None) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(data, encoding="utf-8")
    if mode is not None:
        os.chmod(tmp, mode)
    tmp.replace(path)


class ZipArchiveExtractor:
    """Extracts .mcpb bundles (zip archives), restoring stored unix permissions."""

    def extract(self, archive: Path, dest: Path) -> None:
        dest.mkdir(parents=True, exist_ok=True)
        try:
            with zipfile.ZipFile(archive) as zf:
                for info in zf.infolist():
                    target = zf.extract(info, dest)
                    mode = (info.external_attr >> 16) & 0o777
                    if mode and not info.is_dir():
                        os.chmod(target, mode | stat.S_IRUSR | stat.S_IWUSR)
        except (zipfile.BadZipFile, zlib.error, OSError, NotImplementedError, RuntimeError) as e:
            raise ExtractionError(str(e), archive=archive) from e
        logger.debug("Extracted %s into %s", archive, dest)


class TerminalPrompter:
    """Reads answers from the terminal; everything is written to stderr.

    stdout is left untouched because it becomes the server's protocol stream.
    """

    def say(self, message: str) -> None:
        click.echo(message, err=True)

    def ask(self, prompt: str, *, hide_input: bool = False) -> str:
        return click.prompt(
            prompt,
            default="",
            show_default=False,
            hide_input=hide_input,
            prompt_suffix="",
            err=True,
        )
