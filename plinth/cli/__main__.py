"""Plinth CLI - Main Entry Point.

Commands:
    order - Print plugin load (or teardown) order
    graph - Export the plugin dependency graph as DOT
    check - Validate a plugin set (duplicates, missing deps, cycles)
"""

import importlib
import importlib.util
import json
import logging
import sys
from pathlib import Path
from typing import Any

import click

from . import __version__, __cli_name__
from .utils.colors import success, error, info, dim, bold, step, _ARROW, _CHECK, _CROSS
from ..application import ApplicationBuilder
from ..errors import RuntimeFault
from ..registry import PluginRegistry


def _import_target(target: str) -> Any:
    """Import ``module:attribute`` or ``path/to/file.py:attribute``."""
    module_ref, sep, attr = target.partition(":")
    if not sep or not module_ref or not attr:
        raise click.BadParameter(
            f"expected 'module:attribute', got '{target}'", param_hint="TARGET"
        )

    if module_ref.endswith(".py"):
        path = Path(module_ref)
        if not path.exists():
            raise click.BadParameter(f"file not found: {module_ref}", param_hint="TARGET")
        spec = importlib.util.spec_from_file_location(path.stem, path)
        if spec is None or spec.loader is None:
            raise click.BadParameter(f"cannot load {module_ref}", param_hint="TARGET")
        module = importlib.util.module_from_spec(spec)
        sys.modules[spec.name] = module
        spec.loader.exec_module(module)
    else:
        try:
            module = importlib.import_module(module_ref)
        except ImportError as e:
            raise click.BadParameter(
                f"cannot import '{module_ref}': {e}", param_hint="TARGET"
            ) from e

    obj: Any = module
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError:
            raise click.BadParameter(
                f"'{module_ref}' has no attribute '{attr}'", param_hint="TARGET"
            ) from None
    return obj


def _to_registry(obj: Any, *, _called: bool = False) -> PluginRegistry:
    """Turn a CLI target into a registry."""
    if isinstance(obj, PluginRegistry):
        return obj
    if isinstance(obj, ApplicationBuilder):
        return obj.build_registry()
    if isinstance(obj, (list, tuple)):
        registry = PluginRegistry()
        for plugin in obj:
            registry.register(plugin)
        return registry
    if callable(obj) and not _called:
        return _to_registry(obj(), _called=True)
    raise click.BadParameter(
        f"{obj!r} is not a PluginRegistry, ApplicationBuilder or list of plugins",
        param_hint="TARGET",
    )


def load_registry(target: str) -> PluginRegistry:
    """Load the registry named by TARGET, exiting on registration errors."""
    obj = _import_target(target)
    try:
        return _to_registry(obj)
    except RuntimeFault as e:
        error(f"{_CROSS} {e.format_error()}")
        sys.exit(1)


# ============================================================================
# Commands
# ============================================================================

@click.group()
@click.version_option(version=__version__, prog_name=__cli_name__)
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx, verbose: bool):
    """Plugin dependency ordering and lifecycle tooling.

    \b
    TARGET is 'module:attribute' naming a PluginRegistry, an
    ApplicationBuilder, a list of plugins, or a callable returning one.
    """
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")


@cli.command('order')
@click.argument('target')
@click.option('--reverse', is_flag=True, help='Show teardown order instead')
@click.option('--json', 'as_json', is_flag=True, help='Emit JSON')
def order(target: str, reverse: bool, as_json: bool):
    """Print plugin load order."""
    registry = load_registry(target)

    try:
        plugins = (
            registry.get_plugins_in_reverse_order() if reverse
            else registry.get_plugins_in_order()
        )
    except RuntimeFault as e:
        error(f"{_CROSS} {e.format_error()}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps([
            {
                "name": p.metadata.name,
                "version": p.metadata.version,
                "dependencies": list(p.metadata.dependencies),
            }
            for p in plugins
        ], indent=2))
        return

    info("Teardown order:" if reverse else "Load order:")
    for n, plugin in enumerate(plugins, 1):
        meta = plugin.metadata
        deps = f" ({_ARROW} {', '.join(meta.dependencies)})" if meta.dependencies else ""
        step(n, f"{bold(meta.name)} v{meta.version}{deps}")


@cli.command('graph')
@click.argument('target')
def graph(target: str):
    """Export the dependency graph as DOT."""
    registry = load_registry(target)
    click.echo(registry.build_graph().to_dot())


@cli.command('check')
@click.argument('target')
def check(target: str):
    """Validate a plugin set."""
    registry = load_registry(target)

    try:
        plugins = registry.get_plugins_in_order()
    except RuntimeFault as e:
        error(f"{_CROSS} Validation failed")
        error(e.format_error())
        sys.exit(1)

    success(f"{_CHECK} {len(plugins)} plugin(s), dependency order is valid")
    context_modules = registry.get_context_modules()
    if context_modules:
        dim(f"   context modules: {', '.join(m.context_name for m in context_modules)}")


def main():
    """Entry point for `plinth` command."""
    cli(obj={})


if __name__ == '__main__':
    main()
