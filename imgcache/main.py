#!/usr/bin/env python3
'''
Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved. This notice is intended as a precaution against inadvertent publication and does not imply publication or any waiver of confidentiality.
The year included in the foregoing notice is the year of creation of the work.
All code contained here is Property of Advanced Micro Devices, Inc.
'''

import argparse
import importlib
import logging
import os
import pkgutil
import sys

from imgcache import __version__
from imgcache.cli_plugins.base import SubcommandPlugin
from imgcache.core.errors import ImageCacheError

log = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


def _discover_plugins():
    """
    Dynamically discover all subcommand plugins in the cli_plugins/ directory.
    Returns a dict mapping subcommand names to plugin instances.
    """
    plugins = {}

    plugins_dir = os.path.join(os.path.dirname(__file__), 'cli_plugins')

    for module_info in pkgutil.iter_modules([plugins_dir]):
        if module_info.ispkg or module_info.name == 'base':
            continue
        module = importlib.import_module(f"imgcache.cli_plugins.{module_info.name}")

        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if isinstance(attr, type) and issubclass(attr, SubcommandPlugin) and attr is not SubcommandPlugin:
                plugin_instance = attr()
                plugins[plugin_instance.get_name()] = plugin_instance

    return plugins


def build_parser(plugins):
    epilog = ''.join(plugin.get_epilog() for plugin in plugins)
    parser = argparse.ArgumentParser(
        prog='imgcache',
        description='Warm container image caches and run containers on a Slurm cluster',
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--site_file',
                        help='Path to site configuration JSON/YAML file (overrides IMGCACHE_SITE_FILE env var)')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Level of log messages written to stderr (default: WARNING)')

    subparsers = parser.add_subparsers(dest='subcommand', metavar='<subcommand>')
    for plugin in plugins:
        plugin.get_parser(subparsers)
    return parser


# global options that consume the following token
_VALUE_OPTIONS = ('--site_file', '--log-level')


def default_subcommand(argv, names, default='cache'):
    """
    Insert the default subcommand when the first positional is not a known one,
    so `imgcache IMAGE [--nodes N]` behaves like `imgcache cache IMAGE [--nodes N]`.
    """
    argv = list(argv)
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg == '--':
            return argv[:i] + [default] + argv[i:]
        if arg in _VALUE_OPTIONS:
            i += 2
            continue
        if arg.startswith('-'):
            i += 1
            continue
        if arg in names:
            return argv
        return argv[:i] + [default] + argv[i:]
    return argv


def configure_logging(level):
    # stdout is reserved for the job id
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT, stream=sys.stderr)


def main(argv=None):
    """Entry point for the imgcache command. Returns the process exit code."""
    plugins = sorted(_discover_plugins().values(), key=lambda p: p.get_order())
    parser = build_parser(plugins)
    if argv is None:
        argv = sys.argv[1:]
    args = parser.parse_args(default_subcommand(argv, [p.get_name() for p in plugins]))

    plugin = getattr(args, '_plugin', None)
    if plugin is None:
        parser.print_help(sys.stderr)
        return 2

    configure_logging(args.log_level)
    try:
        return plugin.run(args)
    except ImageCacheError as e:
        log.debug(f"{args.subcommand} failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code


if __name__ == '__main__':
    sys.exit(main())
