"""CLI entry point for whisper-bridge."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from whisper_bridge import __version__
from whisper_bridge.l1_entities.config import AppConfig, TranscriptionConfig
from whisper_bridge.l1_entities.errors import WhisperBridgeError

_FORMAT_HELP = 'Output format (txt, srt, vtt, json).'


def _fail(exc: Exception) -> None:
    click.echo(f'Error: {exc}', err=True)
    sys.exit(1)


def _parse_params(values: tuple[str, ...]) -> dict[str, str]:
    params: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition('=')
        if not sep or not key.strip():
            raise click.BadParameter(f'expected KEY=VALUE, got {item!r}', param_hint='--param')
        params[key.strip()] = value
    return params


def _build_config(
    app_config: AppConfig,
    language: str | None,
    translate: bool,
    fmt: str | None,
    params: dict[str, str],
) -> TranscriptionConfig:
    cfg = app_config.base_transcription_config()
    if language is not None:
        cfg = cfg.with_language(language)
    if fmt is not None:
        cfg = cfg.with_output_format(fmt)
    cfg = cfg.with_translate(translate)
    for key, value in params.items():
        cfg = cfg.with_param(key, value)
    return cfg


def _on_progress(percent: int) -> None:
    click.echo(f'\r  Downloading model: {percent}%', err=True, nl=percent >= 100)


def _container(ctx: click.Context):
    from whisper_bridge.l4_frameworks_and_drivers.container import (  # noqa: PLC0415 -- deferred: hub client not loaded on --help
        DependencyContainer,
    )

    return DependencyContainer(ctx.obj['config'], on_download_progress=_on_progress)


@click.group()
@click.option(
    '-c',
    '--config',
    'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Path to YAML config file.',
)
@click.option('-v', '--verbose', is_flag=True, help='Log debug output to stderr.')
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx: click.Context, config_path, verbose):
    """whisper-bridge -- transcribe audio with whisper.cpp, in-process or via its CLI."""
    from whisper_bridge.l3_interface_adapters.gateways.yaml_config_loader import (  # noqa: PLC0415 -- deferred: yaml stack not loaded on --help
        YamlConfigLoader,
    )
    from whisper_bridge.l4_frameworks_and_drivers.config import (  # noqa: PLC0415 -- deferred: not needed for --help
        build_app_config,
    )
    from whisper_bridge.l4_frameworks_and_drivers.logging_setup import (  # noqa: PLC0415 -- deferred: not needed for --help
        setup_logging,
    )

    setup_logging(verbose)
    try:
        raw = YamlConfigLoader().load_raw(config_path)
        config = build_app_config(raw)
    except WhisperBridgeError as e:
        _fail(e)
    except ValueError as e:  # pydantic ValidationError
        _fail(e)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config


def _common_options(fn):
    fn = click.option(
        '-p',
        '--param',
        'params',
        multiple=True,
        help='Extra engine option as KEY=VALUE (repeatable), e.g. n_threads=4.',
    )(fn)
    fn = click.option(
        '-o',
        '--output',
        default=None,
        type=click.Path(dir_okay=False),
        help='Output file path (defaults to audio filename with new extension).',
    )(fn)
    fn = click.option('-f', '--format', 'fmt', default=None, help=_FORMAT_HELP)(fn)
    fn = click.option('-t', '--translate', is_flag=True, help='Translate to English.')(fn)
    fn = click.option('-l', '--language', default=None, help="Language code, or 'auto' to detect.")(fn)
    fn = click.option('-m', '--model', default=None, help='Model file path or model name (e.g. base).')(fn)
    fn = click.option('-a', '--audio', required=True, type=click.Path(), help='Path to the audio file.')(fn)
    return fn


@cli.command()
@_common_options
@click.pass_context
def transcribe(ctx: click.Context, audio, model, language, translate, fmt, output, params):
    """Transcribe audio in-process through the whisper.cpp library."""
    from whisper_bridge.l4_frameworks_and_drivers.container import BackendKind  # noqa: PLC0415 -- deferred: not needed for --help

    app_config: AppConfig = ctx.obj['config']
    try:
        config = _build_config(app_config, language, translate, fmt, _parse_params(params))
        container = _container(ctx)
        model_path = container.resolve_model(model)
        backend = container.build_backend(BackendKind.IN_PROCESS, model_path)
        try:
            outcome = container.use_case(backend).execute(
                Path(audio), config, _output_path(app_config, audio, output, config)
            )
        finally:
            backend.close()
    except WhisperBridgeError as e:
        _fail(e)
    click.echo(f'Transcription complete! Output saved to {outcome.output_path}')


@cli.command('execute-direct', context_settings={'ignore_unknown_options': True})
@_common_options
@click.option(
    '-b',
    '--binary',
    default=None,
    type=click.Path(dir_okay=False),
    help='Path to the whisper.cpp binary (searched for when omitted).',
)
@click.option('--timeout', default=None, type=float, help='Kill whisper.cpp after this many seconds.')
@click.argument('passthrough', nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def execute_direct(ctx: click.Context, audio, model, language, translate, fmt, output, params, binary, timeout, passthrough):
    """Run the whisper.cpp binary; arguments after -- are passed to it verbatim."""
    from whisper_bridge.l4_frameworks_and_drivers.container import BackendKind  # noqa: PLC0415 -- deferred: not needed for --help

    app_config: AppConfig = ctx.obj['config']
    try:
        config = _build_config(app_config, language, translate, fmt, _parse_params(params))
        container = _container(ctx)
        model_path = container.resolve_model(model)
        backend = container.build_backend(
            BackendKind.SUBPROCESS,
            model_path,
            binary=Path(binary) if binary else None,
            passthrough=list(passthrough),
            timeout=timeout,
        )
        outcome = container.use_case(backend).execute(
            Path(audio), config, _output_path(app_config, audio, output, config)
        )
    except WhisperBridgeError as e:
        _fail(e)
    click.echo(f'Direct execution output:\n{outcome.transcript.to_text()}')
    click.echo(f'Transcription complete! Output saved to {outcome.output_path}')


@cli.command()
@click.option('-m', '--model', default='base', show_default=True, help='Model name to download.')
@click.pass_context
def download(ctx: click.Context, model):
    """Download a whisper.cpp model into the local cache."""
    try:
        path = _container(ctx).resolve_model(model)
    except WhisperBridgeError as e:
        _fail(e)
    click.echo(f'Model available at {path}')


@cli.command()
def models():
    """List downloadable and already-downloaded models."""
    from whisper_bridge.l3_interface_adapters.gateways.hf_model_resolver import (  # noqa: PLC0415 -- deferred: hub client not loaded on --help
        available_models,
        downloaded_models,
    )

    click.echo('Available: ' + ', '.join(available_models()))
    cached = downloaded_models()
    click.echo('Downloaded:' + ('' if cached else ' (none)'))
    for path in cached:
        click.echo(f'  {path}')


def _output_path(app_config: AppConfig, audio: str, output: str | None, config: TranscriptionConfig) -> Path | None:
    """Explicit --output wins; else the configured directory; else None (next to the audio)."""
    if output:
        return Path(output)
    if app_config.output.directory:
        name = Path(audio).with_suffix(f'.{config.parsed_format.extension}').name
        return Path(app_config.output.directory) / name
    return None
