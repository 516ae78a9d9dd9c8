"""
Target commands.

Besides the commands shared with toolings, targets can be synchronized
with their host view (sync) and updated from it (import) in the
virtualized SDK.
"""

import logging

from sdkmanage.cli.commands import resource
from sdkmanage.cli.utils import build_context, print_rows
from sdkmanage.lifecycle.target import TargetInstallRequest, TargetManager
from sdkmanage.resources.base import ResourceKind

logger = logging.getLogger(__name__)

KIND = ResourceKind.TARGET


def run_list(context, kind, args) -> int:
    if not args.long:
        return resource.run_list(context, kind, args)

    targets = context.registry.target
    print_rows(
        (name, targets.tooling_of(name) or "") for name in targets.enumerate()
    )
    return 0


def run_install(context, kind, args) -> int:
    request = TargetInstallRequest(
        name=args.name,
        url=args.url,
        tooling=args.tooling,
        tooling_url=args.tooling_url,
        toolchain=args.toolchain,
        no_toolchain_check=args.no_toolchain_check,
    )
    TargetManager(context).install(request)
    return 0


def run_remove(context, kind, args) -> int:
    TargetManager(context).remove(args.name)
    return 0


def run_sync(context, kind, args) -> int:
    TargetManager(context).sync(args.name)
    return 0


def run_import(context, kind, args) -> int:
    TargetManager(context).import_(args.name)
    return 0


ACTIONS = {
    "list": run_list,
    "upgradable": resource.run_upgradable,
    "install": run_install,
    "remove": run_remove,
    "refresh": resource.run_refresh,
    "update": resource.run_upgrade,
    "sync": run_sync,
    "import": run_import,
    "register": resource.run_register,
}


def run(args) -> int:
    """Run a target command."""
    context = build_context(args)
    return ACTIONS[args.action](context, KIND, args)
