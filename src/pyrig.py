"""pyrig - per-project Python interpreter toolchain manager

Installed under its own name it is a command line tool; invoked through a
shim (a link named ``python``, ``pip3``, ...) it runs that command from the
toolchain selected for the current directory.
"""
import logging
import sys

from args import parse_args
from cli_config import load_user_config, setup_logging
from cli_install import run_install, run_select, run_use
from cli_query import run_list, run_path, run_version
from cli_run import run_command, run_shim
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import ExitCodes
from errors import DispatchError, InstallError, ParseError, PyrigError, ResolutionError
from toolchain.shim import is_shim_invocation

logger = logging.getLogger(__name__)

COMMANDS = {
    "install": run_install,
    "use": run_use,
    "select": run_select,
    "list": run_list,
    "path": run_path,
    "version": run_version,
    "run": run_command,
}


def exit_code_for(exc: BaseException) -> int:
    """Map an engine error family onto its exit code."""
    if isinstance(exc, ParseError):
        return ExitCodes.PARSE_ERROR.value
    if isinstance(exc, ResolutionError):
        return ExitCodes.RESOLUTION_ERROR.value
    if isinstance(exc, InstallError):
        return ExitCodes.INSTALL_ERROR.value
    if isinstance(exc, DispatchError):
        return ExitCodes.DISPATCH_ERROR.value
    return ExitCodes.FILE_ERROR.value


def _guarded(func, *call_args) -> int:
    try:
        return func(*call_args)
    except PyrigError as exc:
        logger.error("%s", exc)
        return exit_code_for(exc)
    except OSError as exc:
        logger.error("%s", exc)
        return ExitCodes.FILE_ERROR.value
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return ExitCodes.INTERRUPTED.value


def main(argv=None):
    """Main function of the program."""
    argv = list(sys.argv if argv is None else argv)

    if argv and is_shim_invocation(argv[0]):
        configure_logging()
        load_user_config(None)
        sys.exit(_guarded(run_shim, argv))

    args = parse_args(argv[1:])
    setup_logging(args)
    load_user_config(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.command),
        )

    sys.exit(_guarded(COMMANDS[args.command], args))


if __name__ == "__main__":
    main()
