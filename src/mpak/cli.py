"""
mpak CLI entrypoint.

Usage:
    mpak run @scope/name[@version] [--update]
    mpak bundle pull @scope/name [--os linux --arch x64]
    mpak config set @scope/name api_key=xxx
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import NoReturn

import click

from . import __version__
from ._paths import mpak_home
from ._platform import detect_platform
from ._ref import parse_package_spec
from .errors import MpakError
from .models.cache import Platform
from .registry import RegistryClient
from .runner import ConfigStore, make_package_runner
from .runner._cache import cache_dir_name

_FMT_MINIMAL = "%(message)s"
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d %(message)s"
_NOISY_LOGGERS = ("httpx", "httpcore")

EXIT_FAILURE = 1


def setup_logging(level: str = "WARNING") -> None:
    """Send log records to stderr; stdout is reserved for the server protocol."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.WARNING
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(_FMT_DEBUG if numeric_level <= logging.DEBUG else _FMT_MINIMAL)
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)
    if numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _config_store() -> ConfigStore:
    return ConfigStore(mpak_home() / "config.json")


def _fail(error: MpakError) -> NoReturn:
    click.echo(f"Error: {error}", err=True)
    sys.exit(EXIT_FAILURE)


def _mask(value: str) -> str:
    if len(value) <= 4:
        return "*" * len(value)
    return value[:4] + "*" * (len(value) - 4)


@click.group()
@click.version_option(version=__version__, prog_name="mpak")
@click.option("--verbose", "-v", is_flag=True, help="Log progress details to stderr.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
def cli(verbose: bool, debug: bool) -> None:
    """mpak: run MCP bundles from the registry."""
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    else:
        level = os.environ.get("MPAK_LOG_LEVEL", "WARNING")
    setup_logging(level)


@click.group()
def bundle() -> None:
    """MCP bundle commands."""


@click.command("run")
@click.argument("package")
@click.option("--update", is_flag=True, help="Force re-download even if cached.")
def run_cmd(package: str, update: bool) -> None:
    """Run a bundle as a stdio MCP server, pulling it first if needed."""
    try:
        runner = make_package_runner()
        code = runner.run(package, update=update)
    except MpakError as e:
        _fail(e)
    sys.exit(code)


@click.command("pull")
@click.argument("package")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Output file path.")
@click.option("--os", "os_name", help="Target OS (darwin, linux, win32).")
@click.option("--arch", help="Target architecture (x64, arm64).")
@click.option("--json", "as_json", is_flag=True, help="Output download info as JSON.")
def pull_cmd(
    package: str,
    output: str | None,
    os_name: str | None,
    arch: str | None,
    as_json: bool,
) -> None:
    """Download a bundle file without installing it."""
    ref = parse_package_spec(package)
    detected = detect_platform()
    platform = Platform(os=os_name or detected.os, arch=arch or detected.arch)

    try:
        client = RegistryClient(_config_store().get_registry_url())
        if not as_json:
            label = str(ref) if ref.version else f"{ref.name} (latest)"
            click.echo(f"=> Fetching {label}...")
            click.echo(f"   Platform: {platform}")
        info = client.get_download_info(ref.name, ref.version, platform)
        if as_json:
            click.echo(info.model_dump_json(indent=2))
            return

        artifact = info.bundle
        click.echo(f"   Version: {artifact.version}")
        click.echo(f"   Artifact: {artifact.platform}")
        click.echo(f"   Size: {artifact.size / (1024 * 1024):.2f} MB")

        filename = f"{cache_dir_name(ref.name)}-{artifact.version}-{artifact.platform}.mcpb"
        output_path = Path(output).resolve() if output else Path(filename).resolve()
        click.echo(f"\n=> Downloading to {output_path}...")
        client.download_bundle(info.url, output_path, sha256=artifact.sha256)
    except MpakError as e:
        _fail(e)

    click.echo("\n=> Bundle downloaded successfully!")
    click.echo(f"   File: {output_path}")
    click.echo(f"   SHA256: {artifact.sha256[:16]}...")


bundle.add_command(run_cmd)
bundle.add_command(pull_cmd)
cli.add_command(bundle)
cli.add_command(run_cmd)


@cli.group()
def config() -> None:
    """Manage stored per-package configuration."""


@config.command("set")
@click.argument("package")
@click.argument("pairs", nargs=-1, metavar="KEY=VALUE...")
def config_set(package: str, pairs: tuple[str, ...]) -> None:
    """Store config values for a package."""
    if not pairs:
        raise click.UsageError("At least one key=value pair is required")

    parsed: list[tuple[str, str]] = []
    for pair in pairs:
        if "=" not in pair:
            raise click.UsageError(f'Invalid format "{pair}". Expected key=value')
        key, value = pair.split("=", 1)
        if not key:
            raise click.UsageError(f'Empty key in "{pair}"')
        parsed.append((key, value))

    try:
        store = _config_store()
        for key, value in parsed:
            store.set_package_config_value(package, key, value)
    except MpakError as e:
        _fail(e)
    click.echo(f"Set {len(parsed)} config value(s) for {package}")


@config.command("get")
@click.argument("package")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def config_get(package: str, as_json: bool) -> None:
    """Show stored config values for a package (masked)."""
    try:
        values = _config_store().get_package_config(package) or {}
    except MpakError as e:
        _fail(e)

    masked = {key: _mask(value) for key, value in values.items()}
    if as_json:
        click.echo(json.dumps(masked, indent=2))
        return
    if not masked:
        click.echo(f"No config stored for {package}")
        return
    click.echo(f"Config for {package}:")
    for key, value in masked.items():
        click.echo(f"  {key}: {value}")


@config.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def config_list(as_json: bool) -> None:
    """List packages that have stored config."""
    try:
        store = _config_store()
        packages = store.list_packages_with_config()
        counts = {pkg: len(store.get_package_config(pkg) or {}) for pkg in packages}
    except MpakError as e:
        _fail(e)

    if as_json:
        click.echo(json.dumps(packages, indent=2))
        return
    if not packages:
        click.echo("No packages have stored config")
        return
    click.echo("Packages with stored config:")
    for pkg, count in counts.items():
        click.echo(f"  {pkg} ({count} value{'' if count == 1 else 's'})")


@config.command("clear")
@click.argument("package")
@click.argument("key", required=False)
def config_clear(package: str, key: str | None) -> None:
    """Clear one key, or all stored config, for a package."""
    try:
        store = _config_store()
        if key:
            cleared = store.clear_package_config_value(package, key)
        else:
            cleared = store.clear_package_config(package)
    except MpakError as e:
        _fail(e)

    if key and cleared:
        click.echo(f"Cleared {key} for {package}")
    elif key:
        click.echo(f"No value found for {key} in {package}")
    elif cleared:
        click.echo(f"Cleared all config for {package}")
    else:
        click.echo(f"No config found for {package}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
