"""Argument parsing functionality for pyrig."""

import argparse
from constants import Constants


def _add_common_options(parser):
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default=None)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help=f"Path to configuration file (default: <home>/{Constants.CONFIG_FILE})",
                        action="store",
                        type=str)


def build_parser():
    """Build the top-level parser with one subcommand per action."""
    parser = argparse.ArgumentParser(
        prog=Constants.EXECUTABLE_NAME,
        description="pyrig - per-project Python interpreter toolchain manager",
        add_help=True,
    )
    parser.add_argument("-V", "--app-version",
                        action="version",
                        version=f"%(prog)s {Constants.VERSION}")
    _add_common_options(parser)

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    install = subparsers.add_parser("install", help="Install a Python toolchain")
    install.add_argument("SPEC",
                         nargs="?",
                         default=None,
                         help="Version to install: 'latest', '=X.Y.Z' or '~X.Y' "
                              f"(default: the version in {Constants.TOOLCHAIN_FILE}, else latest)")
    install.add_argument("--extra",
                         dest="EXTRA",
                         help=f"Install the packages listed in <home>/{Constants.EXTRA_PACKAGES_FILENAME}",
                         action="store_true")
    install.add_argument("--extra-from",
                         dest="EXTRA_FROM",
                         help="Install the packages listed in FILE",
                         metavar="FILE",
                         action="store",
                         type=str)
    install.add_argument("-f", "--force",
                         dest="FORCE",
                         help="Reinstall even if the version is already installed",
                         action="store_true")
    install.add_argument("-s", "--select",
                         dest="SELECT",
                         help=f"Write the installed version to {Constants.TOOLCHAIN_FILE}",
                         action="store_true")
    install.add_argument("--release",
                         dest="RELEASE",
                         help="Build with optimizations (slower build, faster interpreter)",
                         action="store_true")
    install.add_argument("--refresh",
                         dest="REFRESH",
                         help="Refresh the release index before resolving",
                         action="store_true")
    install.add_argument("--pre",
                         dest="PRERELEASE",
                         help="Allow prereleases for 'latest' and '~X.Y'",
                         action="store_true")

    select = subparsers.add_parser("select", help=f"Write {Constants.TOOLCHAIN_FILE} for an installed toolchain")
    select.add_argument("SPEC", help="Version spec or interpreter path")

    use = subparsers.add_parser("use", help="Install a version if needed and select it")
    use.add_argument("SPEC", help="Version spec: 'latest', '=X.Y.Z' or '~X.Y'")
    use.add_argument("--extra", dest="EXTRA", action="store_true",
                     help=f"Install the packages listed in <home>/{Constants.EXTRA_PACKAGES_FILENAME}")
    use.add_argument("--extra-from", dest="EXTRA_FROM", metavar="FILE", type=str,
                     help="Install the packages listed in FILE")

    subparsers.add_parser("list", help="List installed toolchains and the active one")

    path = subparsers.add_parser("path", help="Print the executables directory of the active toolchain")
    path.add_argument("--version", dest="VERSION_OVERRIDE", type=str,
                      help="Use this version spec or path instead of the version file")

    version = subparsers.add_parser("version", help="Print the version of the active toolchain")
    version.add_argument("--version", dest="VERSION_OVERRIDE", type=str,
                         help="Use this version spec or path instead of the version file")

    run = subparsers.add_parser("run", help="Run a command with the active toolchain")
    run.add_argument("--version", dest="VERSION_OVERRIDE", type=str,
                     help="Use this version spec or path instead of the version file")
    run.add_argument("RUN_COMMAND", nargs=argparse.REMAINDER,
                     help="Command and its arguments (after --)")

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
