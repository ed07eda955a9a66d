"""Tests for SubprocessBackend and BinaryLocator."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from whisper_bridge.l1_entities.config import OutputFormat, TranscriptionConfig
from whisper_bridge.l1_entities.errors import (
    AudioNotFoundError,
    EngineProtocolError,
    InitializationError,
    ModelNotFoundError,
    TranscriptionError,
    UnsupportedOutputFormatError,
)
from whisper_bridge.l1_entities.invocation_state import InvocationState
from whisper_bridge.l3_interface_adapters.gateways.subprocess_backend import (
    BinaryLocator,
    SubprocessBackend,
    build_argv,
)

STDOUT = b'[00:00:00.000 --> 00:00:02.000]  Hello\n[00:00:02.000 --> 00:00:04.500]  World\n'
SRT = '1\n00:00:00,000 --> 00:00:01,000\nHola\n\n2\n00:00:01,000 --> 00:00:02,500\nmundo\n'


@pytest.fixture
def exe(tmp_path: Path) -> Path:
    p = tmp_path / 'bin' / 'whisper-cli'
    p.parent.mkdir()
    p.write_text('#!/bin/sh\n')
    p.chmod(0o755)
    return p


def _backend(model_file, exe, runner, **kwargs) -> SubprocessBackend:
    return SubprocessBackend(model_file, locator=BinaryLocator(exe), runner=runner, **kwargs)


class TestBinaryLocator:
    def test_explicit_path(self, exe):
        assert BinaryLocator(exe).locate() == exe

    def test_explicit_missing(self, tmp_path):
        with pytest.raises(InitializationError, match='Specified whisper.cpp binary not found'):
            BinaryLocator(tmp_path / 'nope').locate()

    def test_search_path_first(self, exe, tmp_path):
        which = MagicMock(side_effect=lambda name: '/found/whisper' if name == 'whisper' else None)
        locator = BinaryLocator(well_known_dirs=[exe.parent], build_dir=tmp_path, which=which)
        assert locator.locate() == Path('/found/whisper')

    def test_well_known_dir(self, exe, tmp_path):
        locator = BinaryLocator(
            well_known_dirs=[tmp_path / 'empty', exe.parent], build_dir=tmp_path, which=lambda n: None
        )
        assert locator.locate() == exe

    def test_build_dir(self, tmp_path):
        built = tmp_path / 'checkout' / 'build' / 'bin' / 'main'
        built.parent.mkdir(parents=True)
        built.write_text('')
        built.chmod(0o755)
        locator = BinaryLocator(well_known_dirs=[], build_dir=tmp_path / 'checkout', which=lambda n: None)
        assert locator.locate() == built

    def test_build_dir_from_env(self, tmp_path, monkeypatch):
        built = tmp_path / 'wcpp' / 'build' / 'bin' / 'whisper-cli'
        built.parent.mkdir(parents=True)
        built.write_text('')
        built.chmod(0o755)
        monkeypatch.setenv('WHISPER_CPP_BUILD_DIR', str(tmp_path / 'wcpp'))
        locator = BinaryLocator(well_known_dirs=[], which=lambda n: None)
        assert locator.locate() == built

    def test_non_executable_skipped(self, tmp_path):
        plain = tmp_path / 'whisper-cli'
        plain.write_text('')
        plain.chmod(0o644)
        locator = BinaryLocator(well_known_dirs=[tmp_path], build_dir=tmp_path / 'x', which=lambda n: None)
        with pytest.raises(InitializationError):
            locator.locate()

    def test_exhausted_lists_every_attempt(self, tmp_path):
        locator = BinaryLocator(
            names=['whisper-cli'], well_known_dirs=[tmp_path / 'wk'], build_dir=tmp_path / 'b', which=lambda n: None
        )
        with pytest.raises(InitializationError, match='Could not find whisper.cpp binary') as exc_info:
            locator.locate()
        message = str(exc_info.value)
        assert 'PATH:whisper-cli' in message
        assert str(tmp_path / 'wk' / 'whisper-cli') in message
        assert str(tmp_path / 'b' / 'build' / 'bin' / 'whisper-cli') in message
        assert message.index('PATH:whisper-cli') < message.index(str(tmp_path / 'wk'))


class TestBuildArgv:
    def test_auto_language_omits_flag(self, tmp_path):
        argv = build_argv(Path('/w'), Path('m.bin'), Path('a.wav'), TranscriptionConfig(), tmp_path / 'a')
        assert '-l' not in argv
        assert argv[:5] == ['/w', '-m', 'm.bin', '-f', 'a.wav']
        assert '--output-txt' in argv
        assert argv[-2:] == ['--output-file', str(tmp_path / 'a')]

    def test_explicit_language_once(self, tmp_path):
        config = TranscriptionConfig().with_language('es')
        argv = build_argv(Path('/w'), Path('m.bin'), Path('a.wav'), config, tmp_path / 'a')
        assert argv.count('-l') == 1
        assert argv[argv.index('-l') + 1] == 'es'

    def test_translate_format_and_passthrough(self, tmp_path):
        config = TranscriptionConfig().with_translate().with_output_format('vtt')
        argv = build_argv(Path('/w'), Path('m.bin'), Path('a.wav'), config, tmp_path / 'a', ['-t', '8'])
        assert '--translate' in argv
        assert '--output-vtt' in argv
        assert argv[-2:] == ['-t', '8']

    def test_nul_byte_rejected(self, tmp_path):
        with pytest.raises(InitializationError, match='embedded NUL'):
            build_argv(Path('/w'), Path('m.bin'), Path('a.wav'), TranscriptionConfig(), tmp_path / 'a', ['-t\x008'])



class TestSubprocessBackend:
    def test_text_from_stdout(self, model_file, audio_file, exe, runner_factory):
        runner = runner_factory(stdout=STDOUT)
        backend = _backend(model_file, exe, runner)

        transcript = backend.transcribe(audio_file, TranscriptionConfig())

        assert transcript.to_text() == 'Hello\nWorld'
        assert transcript.segments[1].end == 4.5
        assert backend.state is InvocationState.COMPLETED
        assert runner.calls[0][0] == str(exe)
        assert runner.kwargs[0]['capture_output'] is True

    def test_language_flag_reaches_process(self, model_file, audio_file, exe, runner_factory):
        runner = runner_factory(stdout=STDOUT)
        _backend(model_file, exe, runner).transcribe(audio_file, TranscriptionConfig())
        _backend(model_file, exe, runner).transcribe(audio_file, TranscriptionConfig().with_language('es'))
        assert '-l' not in runner.calls[0]
        assert runner.calls[1].count('-l') == 1

    def test_srt_artifact_parsed_and_placed(self, model_file, audio_file, exe, runner_factory, tmp_path):
        runner = runner_factory(writes={'srt': SRT})
        out = tmp_path / 'results' / 'talk.srt'
        backend = _backend(model_file, exe, runner)

        transcript = backend.transcribe(audio_file, TranscriptionConfig().with_output_format('srt'), out)

        assert [s.text for s in transcript.segments] == ['Hola', 'mundo']
        assert out.read_text(encoding='utf-8') == SRT
        assert backend.last_invocation.output_format is OutputFormat.SRT
        assert not backend.last_invocation.artifact.exists()

    def test_text_from_stdout_written_when_requested(self, model_file, audio_file, exe, runner_factory, tmp_path):
        out = tmp_path / 'talk.txt'
        _backend(model_file, exe, runner_factory(stdout=STDOUT)).transcribe(audio_file, TranscriptionConfig(), out)
        assert out.read_text(encoding='utf-8') == 'Hello\nWorld'

    def test_text_artifact_without_timestamps(self, model_file, audio_file, exe, runner_factory):
        runner = runner_factory(stdout=b'loading model...\n', writes={'txt': ' Hello\n World\n'})
        transcript = _backend(model_file, exe, runner).transcribe(audio_file, TranscriptionConfig())
        assert transcript.to_text() == 'Hello\nWorld'

    def test_nonzero_exit(self, model_file, audio_file, exe, runner_factory, tmp_path):
        runner = runner_factory(returncode=1, stderr=b'error: failed to open model\n', writes={'txt': 'partial'})
        backend = _backend(model_file, exe, runner)
        out = tmp_path / 'talk.txt'
        with pytest.raises(TranscriptionError, match='failed to open model'):
            backend.transcribe(audio_file, TranscriptionConfig(), out)
        assert not out.exists()
        assert backend.state is InvocationState.FAILED
        assert backend.last_invocation.returncode == 1

    def test_missing_artifact(self, model_file, audio_file, exe, runner_factory):
        backend = _backend(model_file, exe, runner_factory())
        with pytest.raises(TranscriptionError, match='did not write talk.json'):
            backend.transcribe(audio_file, TranscriptionConfig().with_output_format('json'))

    def test_malformed_artifact_not_placed(self, model_file, audio_file, exe, runner_factory, tmp_path):
        runner = runner_factory(writes={'vtt': 'not a vtt file'})
        out = tmp_path / 'talk.vtt'
        with pytest.raises(EngineProtocolError):
            _backend(model_file, exe, runner).transcribe(
                audio_file, TranscriptionConfig().with_output_format('vtt'), out
            )
        assert not out.exists()

    def test_unknown_format_before_locate_and_run(self, model_file, audio_file, runner_factory):
        locator = MagicMock()
        runner = runner_factory()
        backend = SubprocessBackend(model_file, locator=locator, runner=runner)
        with pytest.raises(UnsupportedOutputFormatError):
            backend.transcribe(audio_file, TranscriptionConfig().with_output_format('xml'))
        locator.locate.assert_not_called()
        assert runner.calls == []

    def test_missing_audio(self, model_file, tmp_path, exe, runner_factory):
        runner = runner_factory()
        with pytest.raises(AudioNotFoundError):
            _backend(model_file, exe, runner).transcribe(tmp_path / 'gone.wav', TranscriptionConfig())
        assert runner.calls == []

    def test_missing_model(self, tmp_path, audio_file, exe, runner_factory):
        runner = runner_factory()
        with pytest.raises(ModelNotFoundError):
            _backend(tmp_path / 'gone.bin', exe, runner).transcribe(audio_file, TranscriptionConfig())
        assert runner.calls == []

    def test_timeout(self, model_file, audio_file, exe, runner_factory):
        runner = runner_factory(raises=subprocess.TimeoutExpired(['whisper-cli'], 5))
        backend = _backend(model_file, exe, runner, timeout=5)
        with pytest.raises(TranscriptionError, match='timed out'):
            backend.transcribe(audio_file, TranscriptionConfig())
        assert runner.kwargs[0]['timeout'] == 5

    def test_spawn_failure(self, model_file, audio_file, exe, runner_factory):
        runner = runner_factory(raises=PermissionError(13, 'Permission denied'))
        with pytest.raises(InitializationError, match='Failed to execute whisper.cpp command'):
            _backend(model_file, exe, runner).transcribe(audio_file, TranscriptionConfig())

    def test_nul_in_language_never_spawns(self, model_file, audio_file, exe, runner_factory):
        runner = runner_factory(stdout=STDOUT)
        backend = _backend(model_file, exe, runner)
        with pytest.raises(InitializationError, match='embedded NUL'):
            backend.transcribe(audio_file, TranscriptionConfig().with_language('e\x00s'))
        assert runner.calls == []
        assert backend.state is InvocationState.FAILED

    def test_passthrough_appended(self, model_file, audio_file, exe, runner_factory):

        runner = runner_factory(stdout=STDOUT)
        _backend(model_file, exe, runner, passthrough=['--threads', '2']).transcribe(audio_file, TranscriptionConfig())
        assert runner.calls[0][-2:] == ['--threads', '2']

    def test_close_is_noop(self, model_file, exe, runner_factory):
        _backend(model_file, exe, runner_factory()).close()
