"""proctree-view - Textual viewer for a live process subtree."""

from collections.abc import Callable
from queue import Empty, Queue

from pydantic import ValidationError
from rich.text import Text
from textual.app import App, ComposeResult
from textual.widgets import Footer, Static, Tree
from textual.widgets.tree import TreeNode

from proctree.actuator import SignalActuator
from proctree.cli import _ArgumentParser, process_id
from proctree.config import DEFAULT_MAX_HOPS, Settings, describe_invalid_settings, get_settings
from proctree.errors import EnumerationUnavailable
from proctree.logger import setup_logger
from proctree.models import BulkSignalReport, ProcessRecord, ProcessState
from proctree.monitor import SubtreeMonitor, SubtreeSnapshot
from proctree.provider import ProcessInfoProvider, make_provider

STATE_STYLES = {
    ProcessState.RUNNING: "green",
    ProcessState.SLEEPING: "",
    ProcessState.ZOMBIE: "bold red",
    ProcessState.STOPPED: "yellow",
    ProcessState.OTHER: "dim",
}


def process_label(record: ProcessRecord) -> Text:
    """Tree label for a process: pid followed by its state."""
    label = Text(str(record.pid), style="bold")
    label.append(f"  {record.state.value}", style=STATE_STYLES[record.state])
    return label


def _lineage(snapshot: SubtreeSnapshot) -> str:
    if not snapshot.lineage:
        return ""
    return " under " + " < ".join(str(pid) for pid in snapshot.lineage)


class SummaryBar(Static):
    """Header widget showing subtree counts."""

    DEFAULT_CSS = """
    SummaryBar {
        height: auto;
        padding: 0 1;
        background: $surface;
    }
    """

    last_summary: str = ""

    def update_summary(self, snapshot: SubtreeSnapshot) -> None:
        """Update the counts from a subtree snapshot."""
        if not snapshot.root_alive:
            self.last_summary = f"Root {snapshot.root} is gone"
        else:
            self.last_summary = (
                f"Root {snapshot.root}{_lineage(snapshot)}: {snapshot.descendant_count} descendants, "
                f"{snapshot.zombie_count} zombie, {snapshot.stopped_count} stopped "
                f"({snapshot.total_processes} processes visible)"
            )
        self.update(self.last_summary)


class ProcessTree(Tree[int]):
    """Tree widget rebuilt whenever the subtree changes shape or state."""

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTree."""
        super().__init__(*args, **kwargs)
        self._selected_pid: int | None = None
        self._layout: tuple | None = None

    @property
    def selected_pid(self) -> int | None:
        return self._selected_pid

    def on_tree_node_highlighted(self, event: Tree.NodeHighlighted) -> None:
        self._selected_pid = event.node.data

    def show_snapshot(self, snapshot: SubtreeSnapshot) -> None:
        """Rebuild the tree from a snapshot, keeping the selected pid if possible."""
        layout = (snapshot.root, tuple((r.pid, r.parent_pid, r.state) for r in snapshot.records))
        if layout == self._layout:
            return
        self._layout = layout

        self.clear()
        self.root.data = snapshot.root
        root_record = next((r for r in snapshot.records if r.pid == snapshot.root), None)
        if root_record is not None:
            self.root.set_label(process_label(root_record))
        else:
            self.root.set_label(Text(str(snapshot.root), style="dim strike"))
        self._add_children(self.root, snapshot, snapshot.root, seen={snapshot.root})
        self.root.expand_all()

        if self._selected_pid is not None:
            node = self._find(self.root, self._selected_pid)
            if node is None:
                self._selected_pid = None
            else:
                self.call_after_refresh(self.move_cursor, node)

    def _add_children(
        self,
        node: TreeNode[int],
        snapshot: SubtreeSnapshot,
        pid: int,
        seen: set[int],
    ) -> None:
        for child in snapshot.children_of(pid):
            if child.pid in seen:
                continue
            seen.add(child.pid)
            if snapshot.children_of(child.pid):
                branch = node.add(process_label(child), data=child.pid)
                self._add_children(branch, snapshot, child.pid, seen)
            else:
                node.add_leaf(process_label(child), data=child.pid)

    def _find(self, node: TreeNode[int], pid: int) -> TreeNode[int] | None:
        if node.data == pid:
            return node
        for child in node.children:
            found = self._find(child, pid)
            if found is not None:
                return found
        return None


class ProcTreeApp(App):
    """Main proctree viewer application."""

    TITLE = "proctree"
    SUB_TITLE = "Process subtree viewer"

    CSS = """
    Screen {
        layout: vertical;
    }

    #summary {
        dock: top;
    }

    #process-tree {
        height: 1fr;
        border: solid $primary;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("k", "kill_descendants", "Kill subtree"),
        ("s", "stop_descendants", "Stop subtree"),
        ("c", "continue_descendants", "Continue subtree"),
        ("z", "kill_zombie_parents", "Reap zombies"),
    ]

    def __init__(
        self,
        root: int,
        provider: ProcessInfoProvider,
        actuator: SignalActuator,
        poll_rate: float = 2.0,
        max_hops: int = DEFAULT_MAX_HOPS,
    ) -> None:
        """Initialize the ProcTreeApp."""
        super().__init__()
        self._root_pid = root
        self._actuator = actuator
        self._update_queue: Queue[SubtreeSnapshot] = Queue()
        self._monitor = SubtreeMonitor(
            root, provider, self._update_queue, poll_rate=poll_rate, max_hops=max_hops
        )

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield SummaryBar("Loading process tree...", id="summary")
        yield ProcessTree(str(self._root_pid), data=self._root_pid, id="process-tree")
        yield Footer()

    def on_mount(self) -> None:
        """Start the subtree monitor when the app is mounted."""
        self._monitor.start()
        self.set_interval(0.5, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Drain the queue and render the most recent snapshot."""
        snapshot = None
        while True:
            try:
                snapshot = self._update_queue.get_nowait()
            except Empty:
                break

        if snapshot is not None:
            self.show_snapshot(snapshot)

    def show_snapshot(self, snapshot: SubtreeSnapshot) -> None:
        """Update the UI with a new subtree snapshot."""
        self.query_one(SummaryBar).update_summary(snapshot)
        self.query_one(ProcessTree).show_snapshot(snapshot)

    def _selected_pid(self) -> int:
        pid = self.query_one(ProcessTree).selected_pid
        return pid if pid is not None else self._root_pid

    def _signal_subtree(self, verb: str, operation: Callable[[int], BulkSignalReport]) -> None:
        pid = self._selected_pid()
        try:
            report = operation(pid)
        except EnumerationUnavailable as e:
            self.notify(str(e), severity="error")
            return

        message = f"{verb} {len(report.delivered)} below {pid}"
        if report.failed:
            message += f", {len(report.failed)} failed"
        if report.overflowed:
            message += " (truncated)"
        self.notify(message, severity="warning" if report.failed else "information")

    def action_kill_descendants(self) -> None:
        """Kill every descendant of the selected process."""
        self._signal_subtree("Killed", self._actuator.kill_descendants)

    def action_stop_descendants(self) -> None:
        """Stop every descendant of the selected process."""
        self._signal_subtree("Stopped", self._actuator.stop_descendants)

    def action_continue_descendants(self) -> None:
        """Continue stopped descendants of the selected process."""
        self._signal_subtree("Continued", self._actuator.continue_descendants)

    def action_kill_zombie_parents(self) -> None:
        """Kill the parents of zombies below the selected process."""
        self._signal_subtree("Killed zombie parents", self._actuator.kill_zombie_parents)

    def on_unmount(self) -> None:
        """Stop the monitor thread when the app goes away."""
        self._monitor.stop()

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()


def build_app(root: int, settings: Settings) -> ProcTreeApp:
    provider = make_provider(settings)
    actuator = SignalActuator(
        provider,
        max_hops=settings.max_hops,
        capacity=settings.descendant_capacity,
        max_rescans=settings.kill_rescans,
    )
    return ProcTreeApp(
        root,
        provider,
        actuator,
        poll_rate=settings.poll_rate,
        max_hops=settings.max_hops,
    )


def main(argv: list[str] | None = None) -> None:
    """Entry point for the proctree-view application."""
    parser = _ArgumentParser(prog="proctree-view", description="Watch a process subtree.")
    parser.add_argument("root_process_id", type=process_id, help="Root of the process tree")
    parser.add_argument("--poll-rate", type=float, default=None, help="Refresh interval in seconds")
    parser.add_argument("--source", choices=["procfs", "psutil"], default=None)
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        parser.exit(1, f"Error: invalid setting: {describe_invalid_settings(e)}\n")
    overrides = {}
    if args.poll_rate is not None:
        overrides["poll_rate"] = max(0.1, args.poll_rate)
    if args.source:
        overrides["source"] = args.source
    if overrides:
        settings = settings.model_copy(update=overrides)

    # Keep stderr quiet while the terminal is owned by the UI
    setup_logger("CRITICAL", settings.log_file)

    app = build_app(args.root_process_id, settings)
    app.run()


if __name__ == "__main__":
    main()
