"""proctree command-line entry point."""

import argparse
import os
import sys
from collections.abc import Callable

from loguru import logger
from pydantic import ValidationError
from rich.console import Console

from proctree.actuator import SignalActuator, SignalSender
from proctree.config import Settings, describe_invalid_settings, get_settings
from proctree.errors import EnumerationUnavailable, ProcessNotFound
from proctree.logger import setup_logger
from proctree.models import ProcessRecord
from proctree.provider import ProcessInfoProvider, make_provider
from proctree.queries import RelationshipQueries

OPERATIONS = {
    "-dc": "count defunct (zombie) processes in the target's subtree",
    "-ds": "list non-direct descendants of the target",
    "-id": "list immediate descendants of the target",
    "-lg": "list siblings of the target",
    "-lz": "list defunct siblings of the target",
    "-df": "list defunct descendants of the target",
    "-gc": "list grandchildren of the target",
    "-do": "print whether the target is defunct",
    "--pz": "kill the parents of all zombie descendants of the target",
    "-sk": "kill all descendants of the target",
    "-st": "stop all descendants of the target",
    "-dt": "continue all stopped descendants of the target",
    "-rp": "kill the root process",
}


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on bad input."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")


def process_id(value: str) -> int:
    try:
        pid = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid process id: {value!r}") from None
    if pid <= 0:
        raise argparse.ArgumentTypeError(f"Process IDs must be positive integers, got {pid}")
    return pid


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="proctree",
        description="Inspect and signal the processes below a root process.",
        epilog="Example: proctree 1234 5678 -id",
        allow_abbrev=False,
    )
    parser.add_argument("root_process_id", type=process_id, help="Root of the process tree")
    parser.add_argument("target_process_id", type=process_id, help="Process to analyze")

    group = parser.add_mutually_exclusive_group()
    for flag, help_text in OPERATIONS.items():
        group.add_argument(
            flag,
            dest="operation",
            action="store_const",
            const=flag,
            help=help_text,
        )

    parser.add_argument(
        "--source",
        choices=["procfs", "psutil"],
        default=None,
        help="Process record source (default: PROCTREE_SOURCE or procfs)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        default=None,
        help="Diagnostic log level (default: PROCTREE_LOG_LEVEL or WARNING)",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


class CommandRunner:
    """Runs one operation for a validated root/target pair and prints results."""

    def __init__(
        self,
        queries: RelationshipQueries,
        actuator: SignalActuator,
        out: Console,
        err: Console,
    ) -> None:
        self._queries = queries
        self._actuator = actuator
        self._out = out
        self._err = err
        self._handlers: dict[str, Callable[[int, int], None]] = {
            "-dc": self._defunct_count,
            "-ds": lambda root, target: self._list(self._queries.non_direct_descendants(target)),
            "-id": lambda root, target: self._list(self._queries.children(target)),
            "-lg": lambda root, target: self._list_siblings(target, self._queries.siblings),
            "-lz": lambda root, target: self._list_siblings(target, self._queries.zombie_siblings),
            "-df": lambda root, target: self._list(self._queries.zombie_descendants(target)),
            "-gc": lambda root, target: self._list(self._queries.grandchildren(target)),
            "-do": self._status,
            "--pz": self._kill_zombie_parents,
            "-sk": self._kill_descendants,
            "-st": self._stop_descendants,
            "-dt": self._continue_descendants,
            "-rp": self._kill_root,
        }

    def run(self, root: int, target: int, operation: str | None) -> int:
        try:
            self._queries.basic_info(root)
        except ProcessNotFound:
            self._err.print(f"Error: Root process {root} does not exist or is inaccessible")
            return 1

        if not self._queries.is_descendant(root, target):
            if operation:
                self._out.print(
                    f"Notice: Process {target} does not belong to the tree rooted at {root}"
                )
            return 0

        try:
            if operation is None:
                self._basic_info(target)
            else:
                self._handlers[operation](root, target)
        except EnumerationUnavailable as e:
            self._err.print(f"Error: {e}")
        return 0

    def _list(self, records: list[ProcessRecord]) -> None:
        for record in records:
            self._out.print(str(record.pid))

    def _list_siblings(self, target: int, query: Callable[[int], list[ProcessRecord]]) -> None:
        try:
            records = query(target)
        except ProcessNotFound:
            self._err.print(f"Error: Cannot get information for process {target}")
            return
        self._list(records)

    def _basic_info(self, target: int) -> None:
        try:
            record = self._queries.basic_info(target)
        except ProcessNotFound:
            self._err.print(f"Error: Cannot get information for process {target}")
            return
        self._out.print(f"PID: {record.pid}, PPID: {record.parent_pid}")

    def _defunct_count(self, root: int, target: int) -> None:
        count = self._queries.defunct_count(target)
        self._out.print(f"Number of defunct descendants: {count}")

    def _status(self, root: int, target: int) -> None:
        try:
            defunct = self._queries.is_defunct(target)
        except ProcessNotFound:
            self._err.print(f"Error: Cannot get status for process {target}")
            return
        self._out.print(f"Process {target} is {'Defunct' if defunct else 'Not Defunct'}")

    def _kill_zombie_parents(self, root: int, target: int) -> None:
        report = self._actuator.kill_zombie_parents(target)
        for result in report.delivered:
            self._out.print(f"Killed parent {result.pid} of zombie process {result.zombie_pid}")
        if not report.zombies_found:
            self._out.print(f"No zombie processes found among descendants of {target}")

    def _kill_descendants(self, root: int, target: int) -> None:
        report = self._actuator.kill_descendants(target)
        for result in report.results:
            if result.ok:
                self._out.print(f"Killed descendant {result.pid}")
        for result in report.reconciled:
            if result.ok:
                self._out.print(f"Killed missed descendant {result.pid}")

    def _stop_descendants(self, root: int, target: int) -> None:
        for result in self._actuator.stop_descendants(target).delivered:
            self._out.print(f"Stopped descendant {result.pid}")

    def _continue_descendants(self, root: int, target: int) -> None:
        for result in self._actuator.continue_descendants(target).delivered:
            self._out.print(f"Continued descendant {result.pid}")

    def _kill_root(self, root: int, target: int) -> None:
        if self._actuator.kill_root(root).ok:
            self._out.print(f"Root process {root} terminated successfully")


def main(
    argv: list[str] | None = None,
    provider: ProcessInfoProvider | None = None,
    send_signal: SignalSender = os.kill,
) -> int:
    """Entry point for the proctree command."""
    args = parse_args(argv)

    out = Console(highlight=False, markup=False, soft_wrap=True)
    err = Console(stderr=True, highlight=False, markup=False, soft_wrap=True)

    try:
        settings: Settings = get_settings()
    except ValidationError as e:
        err.print(f"Error: invalid setting: {describe_invalid_settings(e)}")
        return 1
    overrides = {}
    if args.source:
        overrides["source"] = args.source
    if args.log_level:
        overrides["log_level"] = args.log_level
    if overrides:
        settings = settings.model_copy(update=overrides)

    setup_logger(settings.log_level, settings.log_file)

    if provider is None:
        provider = make_provider(settings)
    queries = RelationshipQueries(provider, settings.max_hops)
    actuator = SignalActuator(
        provider,
        send_signal=send_signal,
        max_hops=settings.max_hops,
        capacity=settings.descendant_capacity,
        max_rescans=settings.kill_rescans,
    )

    logger.debug(
        f"root={args.root_process_id} target={args.target_process_id} "
        f"operation={args.operation} source={settings.source}"
    )
    runner = CommandRunner(queries, actuator, out, err)
    return runner.run(args.root_process_id, args.target_process_id, args.operation)


def run() -> None:
    """Console-script wrapper around main()."""
    sys.exit(main())


if __name__ == "__main__":
    run()
