"""
Commands shared by the tooling, target and sdk command groups.

Each function takes the runtime context, the resource kind and the parsed
arguments, and returns the exit code.
"""

import logging

from sdkmanage.cli.utils import register_args, selection_args, sweep_exit_code
from sdkmanage.context import SdkContext
from sdkmanage.resources.base import ResourceKind

logger = logging.getLogger(__name__)


def run_list(context: SdkContext, kind: ResourceKind, args) -> int:
    for name in context.registry.get(kind).enumerate():
        print(name)
    return 0


def run_refresh(context: SdkContext, kind: ResourceKind, args) -> int:
    names = context.dispatcher.select(
        kind, selection_args(args), usage=getattr(args, "usage", None)
    )
    return sweep_exit_code(context.dispatcher.refresh(kind, names))


def run_upgradable(context: SdkContext, kind: ResourceKind, args) -> int:
    context.dispatcher.upgradable(kind, getattr(args, "name", ""))
    return 0


def run_upgrade(context: SdkContext, kind: ResourceKind, args) -> int:
    context.dispatcher.upgrade(kind, getattr(args, "name", ""))
    return 0


def run_register(context: SdkContext, kind: ResourceKind, args) -> int:
    result = context.dispatcher.register(
        kind, register_args(args), usage=getattr(args, "usage", None)
    )
    return sweep_exit_code(result)
