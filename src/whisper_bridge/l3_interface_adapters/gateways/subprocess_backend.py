"""Gateway: run the whisper.cpp CLI as a child process and parse what it writes."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess  # noqa: S404 -- intentional: runs whisper.cpp with an explicit arg list, not shell=True
import tempfile
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from whisper_bridge.l1_entities.config import OutputFormat, TranscriptionConfig
from whisper_bridge.l1_entities.errors import InitializationError, TranscriptionError
from whisper_bridge.l1_entities.invocation_state import InvocationState
from whisper_bridge.l1_entities.transcript import Transcript
from whisper_bridge.l2_use_cases.utils import error_mapper
from whisper_bridge.l3_interface_adapters.gateways import whisper_output_parser
from whisper_bridge.l3_interface_adapters.gateways.file_persistence import place_file

log = logging.getLogger('wb.subprocess')

BINARY_NAMES = ('whisper-cli', 'whisper', 'main')
WELL_KNOWN_DIRS = (
    Path('/usr/local/bin'),
    Path('/usr/bin'),
    Path('/opt/whisper/bin'),
    Path('/opt/homebrew/bin'),
)
BUILD_DIR_ENV = 'WHISPER_CPP_BUILD_DIR'
DEFAULT_BUILD_DIR = Path('whisper.cpp')
BUILD_OUTPUTS = (
    Path('build/bin/whisper-cli'),
    Path('build/bin/main'),
    Path('build/main'),
    Path('build/whisper'),
)

_FORMAT_FLAGS = {
    OutputFormat.TEXT: '--output-txt',
    OutputFormat.SRT: '--output-srt',
    OutputFormat.VTT: '--output-vtt',
    OutputFormat.JSON: '--output-json',
}


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


class BinaryLocator:
    """Finds the whisper.cpp CLI. Strategies run in order; the first hit wins."""

    def __init__(
        self,
        explicit: Path | str | None = None,
        *,
        names: Sequence[str] = BINARY_NAMES,
        well_known_dirs: Sequence[Path] = WELL_KNOWN_DIRS,
        build_dir: Path | None = None,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self._explicit = Path(explicit) if explicit is not None else None
        self._names = tuple(names)
        self._well_known_dirs = tuple(well_known_dirs)
        self._build_dir = build_dir
        self._which = which

    def _strategies(self) -> list[Callable[[list[str]], Path | None]]:
        return [self._from_search_path, self._from_well_known_dirs, self._from_build_dir]

    def locate(self) -> Path:
        if self._explicit is not None:
            if not self._explicit.is_file():
                raise InitializationError(f'Specified whisper.cpp binary not found at {self._explicit}')
            return self._explicit

        attempted: list[str] = []
        for strategy in self._strategies():
            found = strategy(attempted)
            if found is not None:
                log.debug('Using whisper.cpp binary %s', found)
                return found

        raise InitializationError(
            'Could not find whisper.cpp binary. Tried: '
            + ', '.join(attempted)
            + '. Put it on PATH, pass --binary, or set '
            + BUILD_DIR_ENV
            + ' to a whisper.cpp checkout with a build.'
        )

    def _from_search_path(self, attempted: list[str]) -> Path | None:
        for name in self._names:
            attempted.append(f'PATH:{name}')
            hit = self._which(name)
            if hit:
                return Path(hit)
        return None

    def _from_well_known_dirs(self, attempted: list[str]) -> Path | None:
        for directory in self._well_known_dirs:
            for name in self._names:
                candidate = directory / name
                attempted.append(str(candidate))
                if _is_executable(candidate):
                    return candidate
        return None

    def _from_build_dir(self, attempted: list[str]) -> Path | None:
        build_dir = self._build_dir or Path(os.environ.get(BUILD_DIR_ENV, DEFAULT_BUILD_DIR))
        for rel in BUILD_OUTPUTS:
            candidate = build_dir / rel
            attempted.append(str(candidate))
            if _is_executable(candidate):
                return candidate
        return None


@dataclass
class BackendInvocation:
    """One spawn/wait cycle of the whisper.cpp CLI."""

    executable: Path
    argv: list[str]
    output_base: Path
    output_format: OutputFormat
    stdout: str = ''
    stderr: str = ''
    returncode: int | None = None

    @property
    def artifact(self) -> Path:
        return self.output_base.with_name(f'{self.output_base.name}.{self.output_format.extension}')


def build_argv(
    executable: Path,
    model_path: Path,
    audio_path: Path,
    config: TranscriptionConfig,
    output_base: Path,
    passthrough: Sequence[str] = (),
) -> list[str]:
    fmt = config.parsed_format
    argv = [str(executable), '-m', str(model_path), '-f', str(audio_path)]
    if not config.is_auto_language:
        argv += ['-l', config.language]
    if config.translate:
        argv.append('--translate')
    argv.append(_FORMAT_FLAGS[fmt])
    argv += ['--output-file', str(output_base)]
    argv += list(passthrough)
    for arg in argv:
        if '\x00' in arg:
            raise InitializationError(f'Invalid argument for whisper.cpp: embedded NUL byte in {arg!r}')
    return argv


class SubprocessBackend:
    """Transcribes by spawning the whisper.cpp CLI.

    The CLI writes into a private temporary directory; the artifact is moved
    to ``output_path`` only after it parsed cleanly. There is no cancellation:
    ``timeout`` (seconds) kills the child and reports a TranscriptionError.
    """

    def __init__(
        self,
        model_path: Path | str,
        *,
        binary: Path | str | None = None,
        passthrough: Sequence[str] = (),
        timeout: float | None = None,
        locator: BinaryLocator | None = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        self._model_path = Path(model_path)
        self._passthrough = list(passthrough)
        self._timeout = timeout
        self._locator = locator or BinaryLocator(binary)
        self._runner = runner
        self._state = InvocationState.IDLE
        self.last_invocation: BackendInvocation | None = None

    @property
    def state(self) -> InvocationState:
        return self._state

    def transcribe(
        self,
        audio_path: Path,
        config: TranscriptionConfig,
        output_path: Path | None = None,
    ) -> Transcript:
        self._state = InvocationState.VALIDATING
        try:
            fmt = config.parsed_format
            model_path = error_mapper.require_model_file(self._model_path)
            audio_path = error_mapper.require_audio_file(audio_path)
            executable = self._locator.locate()

            self._state = InvocationState.RUNNING
            with tempfile.TemporaryDirectory(prefix='whisper-bridge-') as tmp:
                output_base = Path(tmp) / Path(audio_path).stem
                invocation = BackendInvocation(
                    executable=executable,
                    argv=build_argv(executable, model_path, audio_path, config, output_base, self._passthrough),
                    output_base=output_base,
                    output_format=fmt,
                )
                self.last_invocation = invocation
                self._run(invocation)
                transcript = self._parse(invocation)
                if output_path is not None:
                    self._place_artifact(invocation, transcript, Path(output_path))
        except Exception:
            self._state = InvocationState.FAILED
            raise

        self._state = InvocationState.COMPLETED
        log.info('whisper.cpp produced %d segments', len(transcript))
        return transcript

    def close(self) -> None:
        """Nothing is held between invocations."""

    def _run(self, invocation: BackendInvocation) -> None:
        log.info('Running %s', ' '.join(invocation.argv))
        try:
            result = self._runner(invocation.argv, capture_output=True, timeout=self._timeout)  # noqa: S603
        except subprocess.TimeoutExpired as exc:
            raise TranscriptionError(f'whisper.cpp timed out after {self._timeout}s') from exc
        except OSError as exc:
            raise InitializationError(f'Failed to execute whisper.cpp command: {exc}') from exc

        invocation.returncode = result.returncode
        invocation.stdout = _decode(result.stdout)
        invocation.stderr = _decode(result.stderr)
        error_mapper.from_exit_status(result.returncode, invocation.stderr)

    def _parse(self, invocation: BackendInvocation) -> Transcript:
        fmt = invocation.output_format
        artifact = invocation.artifact
        if fmt is OutputFormat.TEXT and whisper_output_parser.has_timestamp_lines(invocation.stdout):
            return whisper_output_parser.parse_stdout(invocation.stdout)
        if artifact.is_file():
            try:
                content = artifact.read_text(encoding='utf-8', errors='replace')
            except OSError as exc:
                raise error_mapper.from_os_error(exc, artifact) from exc
            return whisper_output_parser.parse_output(content, fmt)
        if fmt is OutputFormat.TEXT:
            return whisper_output_parser.parse_txt(invocation.stdout)
        raise TranscriptionError(f'whisper.cpp did not write {artifact.name}')

    @staticmethod
    def _place_artifact(invocation: BackendInvocation, transcript: Transcript, output_path: Path) -> None:
        artifact = invocation.artifact
        if not artifact.is_file():
            # Text taken from stdout: materialize it next to the other temp files first.
            try:
                artifact.write_text(transcript.render(invocation.output_format), encoding='utf-8')
            except OSError as exc:
                raise error_mapper.from_os_error(exc, artifact) from exc
        place_file(artifact, output_path)


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ''
    if isinstance(data, bytes):
        return data.decode('utf-8', errors='replace')
    return data
