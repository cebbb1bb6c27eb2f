"""Command line access to the metric registry.

    python -m tool_monitoring.cli sync --delete
    python -m tool_monitoring.cli enable tool_monitoring_registered_metrics
    python -m tool_monitoring.cli export --tag registry
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Iterable, Optional, Sequence

from sqlalchemy.orm import Session

from tool_monitoring.core.logging import configure_logging
from tool_monitoring.db.session import get_sessionmaker, init_db
from tool_monitoring.metrics.builtin import DEFAULT_COLLECTOR_FACTORIES
from tool_monitoring.metrics.collection import CollectorFactory, assemble_collection
from tool_monitoring.services import prometheus
from tool_monitoring.services.metrics_manager import MetricsManager


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage the metric registry")
    parser.add_argument("--actor-id", type=int, default=None, help="User id recorded as modifier")
    commands = parser.add_subparsers(dest="command", required=True)

    sync = commands.add_parser("sync", help="Register collected metrics")
    sync.add_argument("--delete", action="store_true", help="Delete registry rows of metrics no longer collected")

    listing = commands.add_parser("list", help="Show registered metrics")
    state = listing.add_mutually_exclusive_group()
    state.add_argument("--enabled", dest="enabled", action="store_const", const=True, default=None)
    state.add_argument("--disabled", dest="enabled", action="store_const", const=False)
    listing.add_argument("--tag", action="append", default=[], help="Only metrics carrying this tag")

    for command in ("enable", "disable"):
        sub = commands.add_parser(command, help=f"{command.capitalize()} a metric")
        sub.add_argument("qualified_name")

    configure = commands.add_parser("configure", help="Replace the config of a metric")
    configure.add_argument("qualified_name")
    configure.add_argument("config", help="JSON object")

    export = commands.add_parser("export", help="Print enabled metrics in Prometheus text format")
    export.add_argument("--tag", action="append", default=[], help="Only metrics carrying this tag")
    return parser


def run(
    args: argparse.Namespace,
    session: Session,
    collector_factories: Sequence[CollectorFactory] = DEFAULT_COLLECTOR_FACTORIES,
) -> int:
    collection = assemble_collection(session, collector_factories)
    manager = MetricsManager(session, collection, actor_id=args.actor_id)

    if args.command == "sync":
        result = manager.sync(delete_orphans=args.delete)
        print(f"Registered: {len(result.metrics)}, created: {len(result.created)}")
        for name in result.duplicates:
            print(f"Duplicate: {name}")
        for name in result.orphans:
            print(f"{'Deleted' if name in result.deleted else 'Orphan'}: {name}")
        return 0

    if args.command == "list":
        result = manager.fetch(enabled=args.enabled, tags=args.tag)
        for metric in result.metrics.values():
            state = "enabled" if metric.enabled else "disabled"
            config = json.dumps(metric.config) if metric.config is not None else "-"
            print(f"{metric.qualified_name}\t{metric.metric_type.value}\t{state}\t{config}")
        return 0

    if args.command == "export":
        result = manager.fetch(enabled=True, tags=args.tag)
        print(prometheus.export(result.metrics.values()))
        return 0

    metric = manager.get_metric(args.qualified_name)
    if metric is None:
        print(f"Unknown metric: {args.qualified_name}", file=sys.stderr)
        return 1

    if args.command == "enable":
        events = metric.update(enabled=True)
    elif args.command == "disable":
        events = metric.update(enabled=False)
    else:
        try:
            events = metric.update(config=json.loads(args.config))
        except (ValueError, TypeError) as exc:
            print(f"Invalid config: {exc}", file=sys.stderr)
            return 1
    for event in events:
        print(event.description)
    if not events:
        print(f"Metric '{metric.qualified_name}' unchanged")
    return 0


def main(
    argv: Optional[Iterable[str]] = None,
    collector_factories: Sequence[CollectorFactory] = DEFAULT_COLLECTOR_FACTORIES,
) -> int:
    """Entry point; other components pass their collector factories next to the built-in ones."""
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    configure_logging()
    session = get_sessionmaker()()
    try:
        init_db(session.get_bind())
        return run(args, session, collector_factories)
    finally:
        session.close()


if __name__ == "__main__":
    raise SystemExit(main())
