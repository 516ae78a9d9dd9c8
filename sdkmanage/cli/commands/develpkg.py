"""Development package commands for targets."""

import logging

from sdkmanage.cli.utils import build_context, print_packages
from sdkmanage.lifecycle.develpkg import DevelPackageManager

logger = logging.getLogger(__name__)


def run(args) -> int:
    manager = DevelPackageManager(build_context(args))

    if args.action == "list":
        print_packages(manager.list(args.target, args.pattern))
    elif args.action == "install":
        manager.install(args.target, args.packages)
    elif args.action == "remove":
        manager.remove(args.target, args.packages)
    return 0
