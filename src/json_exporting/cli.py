"""CLI interface for json_exporting."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import time

from . import __version__
from .config import ConnectorConfig, ExportingConfig, load_config


def _build_localhost(cfg: ExportingConfig):
    from .collector.base import Host

    return Host(cfg.hostname, history_size=cfg.collector.history_size)


def _cmd_run(args: argparse.Namespace) -> None:
    """Collect local host metrics and export them until interrupted."""
    cfg = load_config(args.config)

    from .collector.manager import CollectorManager
    from .engine import ExportingEngine

    localhost = _build_localhost(cfg)
    manager = CollectorManager(cfg.collector, localhost)
    engine = ExportingEngine(cfg, localhost)

    if not engine.connectors:
        print("No connectors configured; nothing to export.")
        sys.exit(1)

    stop = False

    def _handle_signal(_sig: int, _frame: object) -> None:
        nonlocal stop
        stop = True

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    manager.start()
    engine.start()
    print(f"json_exporting running (hostname={cfg.hostname}, connectors={len(engine.connectors)})")
    print("Press Ctrl+C to stop.\n")
    try:
        while not stop:
            time.sleep(0.5)
    finally:
        engine.stop()
        manager.stop()
    print("\nExporting stopped.")


def _cmd_dump(args: argparse.Namespace) -> None:
    """Collect once and print what each connector would send."""
    cfg = load_config(args.config)
    if not cfg.connectors:
        cfg.connectors = [ConnectorConfig(name="stdout", type=args.type, data_source="as collected")]

    from .collector.manager import CollectorManager
    from .engine import ExportingEngine

    localhost = _build_localhost(cfg)
    manager = CollectorManager(cfg.collector, localhost)
    engine = ExportingEngine(cfg, localhost)

    started = time.time()
    manager.collect_once()
    time.sleep(args.interval)
    manager.collect_once()

    for connector in engine.connectors:
        connector.before = started - 1
        engine.export_connector(connector, time.time())
        for batch in connector.handoff.drain():
            sys.stdout.write(batch.payload().decode("utf-8"))
    sys.stdout.flush()


def _cmd_version(_args: argparse.Namespace) -> None:
    print(f"json_exporting {__version__}")


def main(argv: list[str] | None = None) -> None:
    """Entry point for the json-exporting CLI."""
    parser = argparse.ArgumentParser(
        prog="json-exporting",
        description="Export host metrics to time-series backends as JSON",
    )
    parser.add_argument("--config", "-c", default=None, help="Path to json_exporting.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    # run
    run_p = sub.add_parser("run", help="Collect and export continuously")
    run_p.set_defaults(func=_cmd_run)

    # dump
    dump_p = sub.add_parser("dump", help="Print one export cycle to stdout")
    dump_p.add_argument("--type", default="json", choices=["json", "json:http"],
                        help="Connector type when none is configured")
    dump_p.add_argument("--interval", type=float, default=1.0,
                        help="Seconds between the two collection passes")
    dump_p.set_defaults(func=_cmd_dump)

    # version
    ver_p = sub.add_parser("version", help="Print version")
    ver_p.set_defaults(func=_cmd_version)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
