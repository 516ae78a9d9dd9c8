"""Commands sweeping over the SDK, every tooling and every target."""

import logging

from sdkmanage.cli.utils import build_context, register_args, sweep_exit_code

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run refresh-all or register-all.

    Every instance is attempted; the exit code is 1 if any failed.
    """
    dispatcher = build_context(args).dispatcher

    if args.command == "refresh-all":
        result = dispatcher.refresh_all()
    else:
        result = dispatcher.register_all(register_args(args))
    return sweep_exit_code(result)
