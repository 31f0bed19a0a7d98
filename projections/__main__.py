"""CLI entry point for the net-worth projection engine."""

from __future__ import annotations

import argparse
from datetime import date
from pathlib import Path
import sys
import threading

from .engine import run_projection
from .log import configure_logging, get_logger
from .report import render_report, summary_lines, sweep_lines, write_report
from .schema import SchemaError, Snapshot, load_config, load_snapshot
from .sensitivity import parse_sweep_arg, run_sweep
from .server import CALCULATE_PATH, build_server
from .validate import validate_config

logger = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Month-by-month net worth projection")
    parser.add_argument("config", help="Path to projection config JSON (bare config or {\"config\": ...})")
    parser.add_argument("--snapshot", help="Path to accounts/debts snapshot JSON (default: empty snapshot)")
    parser.add_argument("-o", "--output", default="projection.json", help="Output JSON path")
    parser.add_argument("--start", help="Simulation start date YYYY-MM-DD (default: today)")
    parser.add_argument("--validate", action="store_true", help="Validate inputs only")
    parser.add_argument("--summary", action="store_true", help="Print text summary to stdout")
    parser.add_argument("--sweep", help="Sensitivity sweep, e.g. monthly_savings_rate=0.1,0.2,0.3")
    parser.add_argument("--server", action="store_true", help="Serve POST /projections/calculate on a local web server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind local web server (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port for local web server (default: 8000)")
    parser.add_argument("--log-level", default="WARNING", help="Log level (default: WARNING)")
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines")
    return parser


def _print_validation(errors: list[str], warnings: list[str]) -> None:
    for warning in warnings:
        print(f"WARNING: {warning}")
    for error in errors:
        print(f"ERROR: {error}", file=sys.stderr)


def _parse_start(value: str | None) -> date | None:
    if value is None:
        return None
    return date.fromisoformat(value)


class _SnapshotFile:
    """Reload the snapshot when its file changes, keeping the last good copy.

    Called from every server worker thread; the lock makes one thread do each reload.
    """

    def __init__(self, path: str | None, initial: Snapshot) -> None:
        self.path = path
        self.snapshot = initial
        self.last_mtime_ns = self._mtime_ns()
        self._lock = threading.Lock()

    def _mtime_ns(self) -> int | None:
        if self.path is None:
            return None
        try:
            return Path(self.path).stat().st_mtime_ns
        except OSError:
            return None

    def __call__(self) -> Snapshot:
        with self._lock:
            current = self._mtime_ns()
            if current is None or current == self.last_mtime_ns:
                return self.snapshot
            self.last_mtime_ns = current
            try:
                self.snapshot = load_snapshot(self.path)
                print(f"Reloaded snapshot from {self.path}")
            except (SchemaError, OSError, ValueError) as exc:
                print(f"Failed to reload snapshot: {exc}; serving last good snapshot", file=sys.stderr)
            return self.snapshot


def _run_server_mode(args: argparse.Namespace, snapshot: Snapshot) -> int:
    if args.validate or args.sweep:
        print("--validate/--sweep cannot be used with --server", file=sys.stderr)
        return 2

    server = build_server(args.host, args.port, _SnapshotFile(args.snapshot, snapshot))
    print(f"Serving POST http://{args.host}:{server.server_address[1]}{CALCULATE_PATH}")
    print("Press Ctrl+C to stop.")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, json_output=args.log_json)

    try:
        config = load_config(args.config)
        snapshot = load_snapshot(args.snapshot) if args.snapshot else Snapshot()
        start = _parse_start(args.start)
    except (SchemaError, OSError, ValueError) as exc:
        print(f"Failed to load inputs: {exc}", file=sys.stderr)
        return 2

    validation = validate_config(config, snapshot)
    _print_validation(validation.errors, validation.warnings)
    if not validation.is_valid:
        logger.warning("validation_failed", errors=len(validation.errors))
        return 1

    if args.validate:
        print("Config is valid.")
        return 0

    if args.server:
        return _run_server_mode(args, snapshot)

    if args.sweep:
        try:
            field_name, values = parse_sweep_arg(args.sweep)
            sweep = run_sweep(config, snapshot, field_name, values, start=start)
        except ValueError as exc:
            print(f"Invalid sweep: {exc}", file=sys.stderr)
            return 2
        for line in sweep_lines(sweep):
            print(line)
        return 0

    result = run_projection(config, snapshot, start=start)
    write_report(args.output, render_report(config, result))
    if args.summary:
        for line in summary_lines(config, result):
            print(line)
    print(f"Wrote projection to {Path(args.output)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
