"""Gateway: transcript files on disk (implements TranscriptWriter port)."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from whisper_bridge.l1_entities.config import OutputFormat
from whisper_bridge.l1_entities.transcript import Transcript
from whisper_bridge.l2_use_cases.utils import error_mapper

log = logging.getLogger('wb.persist')


def place_file(src: Path, dest: Path) -> Path:
    """Move a finished artifact into *dest*, replacing any existing file.

    The bytes are first copied next to *dest* and then swapped in with
    os.replace, so *dest* never holds a partial file even when *src* lives
    on another filesystem.
    """
    tmp_name: str | None = None
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=dest.parent, prefix=f'.{dest.name}.', suffix='.tmp', delete=False) as f:
            tmp_name = f.name
        shutil.copyfile(src, tmp_name)
        os.replace(tmp_name, dest)
        tmp_name = None
        Path(src).unlink(missing_ok=True)
    except OSError as exc:
        raise error_mapper.from_os_error(exc, dest) from exc
    finally:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)
    log.debug('Placed %s -> %s', src.name, dest)
    return dest


class FileTranscriptWriter:
    """Writes rendered transcripts atomically: temp file in the target dir, then os.replace."""

    def write(self, path: Path, transcript: Transcript, fmt: OutputFormat) -> Path:
        content = transcript.render(fmt)
        path = Path(path)
        tmp_name: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                'w',
                encoding='utf-8',
                dir=path.parent,
                prefix=f'.{path.name}.',
                suffix='.tmp',
                delete=False,
            ) as f:
                tmp_name = f.name
                f.write(content)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as exc:
            raise error_mapper.from_os_error(exc, path) from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
        log.debug('Wrote %d segments to %s (format=%s)', len(transcript), path, fmt.value)
        return path
