"""
sdk-manage CLI argument parser.

This module implements the command-line interface for sdk-manage using argparse.
"""

import argparse
import importlib
import logging
import sys
import traceback
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import List, Optional

from sdkmanage.cli.utils import print_error
from sdkmanage.core.exceptions import SdkManageError, UsageError
from sdkmanage.core.transaction import install_signal_handlers

try:
    __version__ = version("sdk-manage")
except PackageNotFoundError:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)


class CLI:
    """sdk-manage command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="sdk-manage",
            description="sdk-manage - Manage toolings, targets and the SDK",
            epilog='Use "sdk-manage COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"sdk-manage {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: /etc/sdk-manage.yaml)",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_tooling_command(subparsers)
        self._add_target_command(subparsers)
        self._add_toolchain_command(subparsers)
        self._add_develpkg_command(subparsers)
        self._add_sdk_command(subparsers)
        self._add_sweep_commands(subparsers)

        return parser

    # ========================================================================
    # Shared argument groups
    # ========================================================================

    @staticmethod
    def _add_selection(parser, kind: str):
        parser.add_argument(
            "--all", action="store_true", help=f"Select every installed {kind}"
        )
        parser.add_argument("names", nargs="*", metavar="NAME", help=f"{kind} name")
        parser.set_defaults(usage=parser.format_usage())

    @staticmethod
    def _add_credentials(parser):
        parser.add_argument("--user", metavar="USER", help="Account user name")
        parser.add_argument("--password", metavar="PASSWORD", help="Account password")
        parser.add_argument(
            "--force",
            action="store_true",
            help="Register even if already registered",
        )

    def _add_resource_actions(self, subparsers, kind: str):
        """Add the sub-commands toolings and targets have in common."""
        # list
        subparsers.add_parser("list", help=f"List installed {kind}s")

        # upgradable
        upgradable_parser = subparsers.add_parser(
            "upgradable", help=f"Show available package updates of a {kind}"
        )
        upgradable_parser.add_argument("name", help=f"{kind} name")

        # remove
        remove_parser = subparsers.add_parser("remove", help=f"Remove a {kind}")
        remove_parser.add_argument("name", help=f"{kind} name")

        # refresh
        refresh_parser = subparsers.add_parser(
            "refresh", help=f"Refresh package repositories of {kind}s"
        )
        self._add_selection(refresh_parser, kind)

        # update
        update_parser = subparsers.add_parser(
            "update", help=f"Upgrade all packages of a {kind}"
        )
        update_parser.add_argument("name", help=f"{kind} name")

        # register
        register_parser = subparsers.add_parser(
            "register", help=f"Register {kind}s with the registration service"
        )
        self._add_credentials(register_parser)
        self._add_selection(register_parser, kind)

    # ========================================================================
    # Command groups
    # ========================================================================

    def _add_tooling_command(self, subparsers):
        """Add 'tooling' subcommand with sub-subcommands."""
        parser = subparsers.add_parser(
            "tooling",
            help="Manage toolings",
            description="Manage toolings (chroot compiler environments)",
        )
        tooling_subparsers = parser.add_subparsers(
            dest="action", help="Tooling commands", metavar="ACTION"
        )
        self._add_resource_actions(tooling_subparsers, "tooling")

        install_parser = tooling_subparsers.add_parser(
            "install", help="Install a tooling from an archive"
        )
        install_parser.add_argument("name", help="Tooling name")
        install_parser.add_argument("url", help="Archive URL or local path")

    def _add_target_command(self, subparsers):
        """Add 'target' subcommand with sub-subcommands."""
        parser = subparsers.add_parser(
            "target",
            help="Manage targets",
            description="Manage targets (cross-build root file systems)",
        )
        target_subparsers = parser.add_subparsers(
            dest="action", help="Target commands", metavar="ACTION"
        )
        self._add_resource_actions(target_subparsers, "target")

        list_parser = target_subparsers.choices["list"]
        list_parser.add_argument(
            "--long", action="store_true", help="Also show the tooling of each target"
        )

        install_parser = target_subparsers.add_parser(
            "install", help="Install a target from an archive"
        )
        install_parser.add_argument("name", help="Target name")
        install_parser.add_argument("url", help="Archive URL or local path")
        install_parser.add_argument(
            "--tooling", metavar="NAME", help="Use this tooling (default: by release)"
        )
        install_parser.add_argument(
            "--tooling-url",
            metavar="URL",
            help="Install the tooling from URL first if it does not exist",
        )
        install_parser.add_argument(
            "--toolchain",
            metavar="NAME",
            help="Toolchain to use (default: the one for the target architecture)",
        )
        install_parser.add_argument(
            "--no-toolchain-check",
            action="store_true",
            help="Do not make sure the toolchain is installed in the tooling",
        )

        sync_parser = target_subparsers.add_parser(
            "sync", help="Synchronize a target to its host view"
        )
        sync_parser.add_argument("name", help="Target name")

        import_parser = target_subparsers.add_parser(
            "import", help="Import a target's host view back into the target"
        )
        import_parser.add_argument("name", help="Target name")

    def _add_toolchain_command(self, subparsers):
        """Add 'toolchain' subcommand with sub-subcommands."""
        parser = subparsers.add_parser(
            "toolchain",
            help="Manage toolchains",
            description="Manage the cross toolchains installed in a tooling",
        )
        toolchain_subparsers = parser.add_subparsers(
            dest="action", help="Toolchain commands", metavar="ACTION"
        )

        list_parser = toolchain_subparsers.add_parser(
            "list", help="List toolchains available to a tooling"
        )
        list_parser.add_argument("tooling", help="Tooling name")

        for action, help_text in (
            ("install", "Install a toolchain into a tooling"),
            ("remove", "Remove a toolchain from a tooling"),
        ):
            action_parser = toolchain_subparsers.add_parser(action, help=help_text)
            action_parser.add_argument("tooling", help="Tooling name")
            action_parser.add_argument("name", help="Toolchain name")

    def _add_develpkg_command(self, subparsers):
        """Add 'develpkg' subcommand with sub-subcommands."""
        parser = subparsers.add_parser(
            "develpkg",
            help="Manage development packages",
            description="Search, install and remove packages in a target",
        )
        develpkg_subparsers = parser.add_subparsers(
            dest="action", help="Development package commands", metavar="ACTION"
        )

        list_parser = develpkg_subparsers.add_parser(
            "list", help="Search packages in a target"
        )
        list_parser.add_argument("target", help="Target name")
        list_parser.add_argument(
            "pattern", nargs="?", help="Search pattern (default: *-devel)"
        )

        for action, help_text in (
            ("install", "Install packages into a target"),
            ("remove", "Remove packages from a target"),
        ):
            action_parser = develpkg_subparsers.add_parser(action, help=help_text)
            action_parser.add_argument("target", help="Target name")
            action_parser.add_argument(
                "packages", nargs="+", metavar="PACKAGE", help="Package name"
            )

    def _add_sdk_command(self, subparsers):
        """Add 'sdk' subcommand with sub-subcommands."""
        parser = subparsers.add_parser(
            "sdk",
            help="Manage the SDK host",
            description="Query, update and register the SDK itself",
        )
        sdk_subparsers = parser.add_subparsers(
            dest="action", help="SDK commands", metavar="ACTION"
        )

        sdk_subparsers.add_parser("version", help="Print the SDK release")
        sdk_subparsers.add_parser("refresh", help="Refresh package repositories")
        sdk_subparsers.add_parser("upgradable", help="Show available package updates")
        sdk_subparsers.add_parser("upgrade", help="Upgrade all packages")
        sdk_subparsers.add_parser("status", help="Check SDK mounts and services")

        register_parser = sdk_subparsers.add_parser(
            "register", help="Register the SDK with the registration service"
        )
        self._add_credentials(register_parser)

    def _add_sweep_commands(self, subparsers):
        """Add 'refresh-all' and 'register-all' subcommands."""
        subparsers.add_parser(
            "refresh-all",
            help="Refresh the SDK, all toolings and all targets",
        )
        register_parser = subparsers.add_parser(
            "register-all",
            help="Register the SDK, all toolings and all targets",
        )
        self._add_credentials(register_parser)

    # ========================================================================
    # Running
    # ========================================================================

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, 1 for error, 130 when interrupted)
        """
        try:
            parsed_args = self.parse_args(args)
        except SystemExit as e:
            # argparse exits 0 for --help/--version and 2 for usage errors
            return 0 if not e.code else 1

        # Configure logging
        self._configure_logging(parsed_args)

        # Check if command specified
        if not parsed_args.command:
            self.parser.print_help(sys.stderr)
            return 1
        if getattr(parsed_args, "action", "") is None:
            print_error(
                f"No {parsed_args.command} action specified",
                details=f'Use "sdk-manage {parsed_args.command} --help" for help',
            )
            return 1

        install_signal_handlers()

        # Dispatch to command handler
        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except UsageError as e:
            print_error(str(e), details=e.usage)
            return 1
        except SdkManageError as e:
            logger.error(f"Error: {e}")
            return 1
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            stream=sys.stderr,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        # Command module mapping
        command_map = {
            "tooling": "sdkmanage.cli.commands.tooling",
            "target": "sdkmanage.cli.commands.target",
            "toolchain": "sdkmanage.cli.commands.toolchain",
            "develpkg": "sdkmanage.cli.commands.develpkg",
            "sdk": "sdkmanage.cli.commands.sdk",
            "refresh-all": "sdkmanage.cli.commands.sweep",
            "register-all": "sdkmanage.cli.commands.sweep",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
