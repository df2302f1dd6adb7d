"""
Node OS Updater — CLI entrypoint.

Usage:
    node-os-updater --help
    node-os-updater status
    node-os-updater update quay.io/example/os@sha256:... --content-dir /run/os-content
"""

from __future__ import annotations

import json
import os
import signal
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from nodeupdater import __version__
from nodeupdater.core.config.loader import load_config
from nodeupdater.core.errors import ConfigError, HostIdentityError, NodeUpdaterError
from nodeupdater.core.host.inhibit import inhibited
from nodeupdater.core.host.os_release import read_os_release
from nodeupdater.core.models.config import AgentConfig
from nodeupdater.core.models.kernel_args import KernelArgument
from nodeupdater.core.observability.logging_config import (
    LOG_FILE_ENV,
    LOG_FILE_LEVEL_ENV,
    resolve_level,
    setup_logging,
)
from nodeupdater.core.updater import NodeUpdaterClient, new_node_updater_client

# Exit code for failures the agent cannot start past
EXIT_STARTUP = 2


@click.group()
@click.version_option(version=__version__, prog_name="node-os-updater")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to agent.yml (default: $NODEUPDATER_CONFIG or /etc/node-os-updater/agent.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Node OS Updater — reconcile this host's OS image and kernel arguments."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(LOG_FILE_ENV),
        log_file_level=os.environ.get(LOG_FILE_LEVEL_ENV),
        quiet_third_party=not debug,
    )


# ── Helpers ─────────────────────────────────────────────────────


def _config(ctx: click.Context) -> AgentConfig:
    if "config" not in ctx.obj:
        try:
            ctx.obj["config"] = load_config(ctx.obj.get("config_path"))
        except ConfigError as e:
            click.secho(f"❌ {e}", fg="red", err=True)
            sys.exit(EXIT_STARTUP)
    return ctx.obj["config"]


def _client(ctx: click.Context) -> NodeUpdaterClient:
    """Build the node updater once per invocation."""
    if "client" not in ctx.obj:
        try:
            ctx.obj["client"] = new_node_updater_client(_config(ctx))
        except HostIdentityError as e:
            click.secho(f"❌ {e}", fg="red", err=True)
            sys.exit(EXIT_STARTUP)
    return ctx.obj["client"]


@contextmanager
def _host_errors() -> Iterator[None]:
    """Turn node updater errors into a red message and exit code 1."""
    try:
        yield
    except (NodeUpdaterError, OSError) as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


def _content_dir(ctx: click.Context, content_dir: str | None) -> str:
    content_dir = content_dir or _config(ctx).os_image_content_dir
    if not content_dir:
        raise click.UsageError(
            "No OS content directory: pass --content-dir or set os_image_content_dir."
        )
    return content_dir


def _kernel_args(append: tuple[str, ...], delete: tuple[str, ...]) -> list[KernelArgument]:
    return [KernelArgument.add(a) for a in append] + [KernelArgument.remove(d) for d in delete]


# ── Host ────────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def host(ctx: click.Context, as_json: bool) -> None:
    """Show the host OS identity and update capability."""
    try:
        release = read_os_release(_config(ctx).os_release_path)
    except HostIdentityError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(EXIT_STARTUP)

    if as_json:
        click.echo(json.dumps(release.to_dict(), indent=2))
        return

    click.secho(f"🖥  {release.pretty_name or release.id}", fg="cyan", bold=True)
    if release.is_coreos_variant:
        click.secho("   CoreOS variant: image-based updates enabled", fg="green")
    else:
        click.secho("   Not a CoreOS variant: updates disabled", fg="yellow")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--raw", is_flag=True, help="Print the raw rpm-ostree status text.")
@click.pass_context
def status(ctx: click.Context, as_json: bool, raw: bool) -> None:
    """Show the booted deployment and kernel arguments."""
    from nodeupdater.core.use_cases.status import get_node_status

    client = _client(ctx)

    if raw:
        with _host_errors():
            click.echo(client.get_status().rstrip())
        return

    result = get_node_status(client)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.secho(f"\n📦 Host variant: {result.variant}", fg="cyan", bold=True)
    if result.booted is not None and result.booted.id:
        click.echo(f"   Booted: {result.booted.id}")
        click.echo(f"   Checksum: {result.booted.checksum}")
    if result.version:
        click.echo(f"   Version: {result.version}")
    if result.image_url:
        click.echo(f"   Image: {result.image_url}")
    click.echo(f"   Kernel args: {' '.join(result.kernel_args)}")
    click.echo()


# ── Kernel arguments ────────────────────────────────────────────


@cli.group()
def kargs() -> None:
    """Kernel argument commands."""


@kargs.command("show")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def kargs_show(ctx: click.Context, as_json: bool) -> None:
    """Show the current kernel arguments."""
    with _host_errors():
        args = _client(ctx).get_kernel_args()
    if as_json:
        click.echo(json.dumps(args, indent=2))
        return
    for arg in args:
        click.echo(arg)


@kargs.command("set")
@click.option("--append", "-a", multiple=True, help="Kernel argument to add.")
@click.option("--delete", "-d", multiple=True, help="Kernel argument to remove.")
@click.pass_context
def kargs_set(ctx: click.Context, append: tuple[str, ...], delete: tuple[str, ...]) -> None:
    """Add and remove kernel arguments in one host operation."""
    with _host_errors():
        output = _client(ctx).set_kernel_args(_kernel_args(append, delete))

    if output is None:
        click.secho("✓ Kernel arguments already up to date", fg="green")
        return
    if output.strip():
        click.echo(output.rstrip())
    click.secho("✓ Kernel arguments updated; reboot to apply", fg="green")


# ── OS image ────────────────────────────────────────────────────


@cli.command()
@click.argument("image_url")
@click.option("--content-dir", default=None, help="Extracted OS content directory.")
@click.option("--no-inhibit", is_flag=True, help="Don't block power state changes.")
@click.pass_context
def rebase(ctx: click.Context, image_url: str, content_dir: str | None, no_inhibit: bool) -> None:
    """Rebase the host onto the OS commit carried by IMAGE_URL.

    A failed rebase has its pending deployment removed.
    """
    from nodeupdater.core.use_cases.update import rebase_with_cleanup

    client = _client(ctx)
    content_dir = _content_dir(ctx, content_dir)
    inhibit = _config(ctx).inhibit_power and not no_inhibit

    with _host_errors(), inhibited(enabled=inhibit):
        changed = rebase_with_cleanup(client, image_url, content_dir)

    if changed:
        click.secho(f"✓ Rebased to {image_url}; reboot to apply", fg="green")


@cli.command()
@click.argument("image_url", required=False, default="")
@click.option("--content-dir", default=None, help="Extracted OS content directory.")
@click.option("--append", "-a", multiple=True, help="Kernel argument to add.")
@click.option("--delete", "-d", multiple=True, help="Kernel argument to remove.")
@click.option("--no-inhibit", is_flag=True, help="Don't block power state changes.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def update(
    ctx: click.Context,
    image_url: str,
    content_dir: str | None,
    append: tuple[str, ...],
    delete: tuple[str, ...],
    no_inhibit: bool,
    as_json: bool,
) -> None:
    """Run one reconciliation pass: OS image, then kernel arguments.

    Without IMAGE_URL only the kernel arguments are reconciled. The
    content directory is only needed when a rebase has to run.
    """
    from nodeupdater.core.use_cases.update import apply_update

    client = _client(ctx)
    content_dir = content_dir or _config(ctx).os_image_content_dir

    with _host_errors():
        result = apply_update(
            client,
            image_url,
            content_dir,
            kernel_args=_kernel_args(append, delete),
            inhibit=_config(ctx).inhibit_power and not no_inhibit,
        )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if result.rebased:
        click.secho(f"✓ Rebased to {image_url}", fg="green")
    elif image_url:
        click.echo(f"⊘ Already on {image_url}")
    if result.kernel_args_applied:
        click.secho("✓ Kernel arguments updated", fg="green")
    if result.changed:
        click.echo("   Reboot to apply.")


@cli.command()
@click.pass_context
def cleanup(ctx: click.Context) -> None:
    """Remove any pending (staged, not booted) deployment."""
    with _host_errors():
        _client(ctx).remove_pending_deployment()
    click.secho("✓ Pending deployment removed", fg="green")


# ── Plugins ─────────────────────────────────────────────────────


@cli.group()
def plugins() -> None:
    """Plugin harness commands."""


@plugins.command("list")
@click.pass_context
def plugins_list(ctx: click.Context) -> None:
    """List the plugins enabled in agent.yml."""
    from nodeupdater.core.plugins import builtin_registry

    with _host_errors():
        registry = builtin_registry(_config(ctx).plugins)
    for plugin in registry.plugins:
        click.echo(f"• {plugin.name} ({plugin.kind})")


@plugins.command("run")
@click.option("--timeout", type=float, default=None, help="Stop plugins after N seconds.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plugins_run(ctx: click.Context, timeout: float | None, as_json: bool) -> None:
    """Run all enabled plugins until SIGINT/SIGTERM (or --timeout)."""
    from nodeupdater.core.plugins import builtin_registry, run_plugins

    with _host_errors():
        registry = builtin_registry(_config(ctx).plugins)

    stop = threading.Event()

    def _on_signal(signum: int, frame: object) -> None:
        stop.set()

    previous = {
        sig: signal.signal(sig, _on_signal) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    timer = threading.Timer(timeout, stop.set) if timeout is not None else None
    if timer:
        timer.start()

    try:
        report = run_plugins(registry, stop)
    finally:
        if timer:
            timer.cancel()
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    for receipt in report.receipts:
        marker = "✓" if receipt.ok else "✗"
        line = f"{marker} {receipt.plugin}"
        if receipt.error:
            line += f": {receipt.error}"
        click.echo(line)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
