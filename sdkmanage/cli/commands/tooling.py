"""
Tooling commands.

- list: Print installed toolings
- upgradable / update: Show or apply package updates of a tooling
- install / remove: Add or delete a tooling
- refresh: Refresh repositories of selected toolings
- register: Register toolings with the registration service
"""

import logging

from sdkmanage.cli.commands import resource
from sdkmanage.cli.utils import build_context
from sdkmanage.lifecycle.tooling import ToolingManager
from sdkmanage.resources.base import ResourceKind

logger = logging.getLogger(__name__)

KIND = ResourceKind.TOOLING


def run_install(context, kind, args) -> int:
    ToolingManager(context).install(args.name, args.url)
    return 0


def run_remove(context, kind, args) -> int:
    ToolingManager(context).remove(args.name)
    return 0


ACTIONS = {
    "list": resource.run_list,
    "upgradable": resource.run_upgradable,
    "install": run_install,
    "remove": run_remove,
    "refresh": resource.run_refresh,
    "update": resource.run_upgrade,
    "register": resource.run_register,
}


def run(args) -> int:
    """
    Run a tooling command.

    Args:
        args: Parsed arguments with ``action`` naming the sub-command

    Returns:
        Exit code (0 for success, 1 for error)
    """
    context = build_context(args)
    return ACTIONS[args.action](context, KIND, args)
