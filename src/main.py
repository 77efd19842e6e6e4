#!/usr/bin/env python3
# --- START OF FILE src/main.py ---
import argparse
import sys
from typing import List, Optional

import constants
import zfs_core
from debug_logging import set_debug_mode, log_error
from models import ExecutionContext, ReceiveOptions, SendOptions, TransferProgress
from utils import format_percent, format_size
from zfs_errors import ZfsClassifiedError, ZfsError
from zfs_runner import CommandRunner
from zfs_transfer import ZfsTransfer


def _print_progress(event: TransferProgress):
    if not event.has_report:
        base = f" from {event.base_name}" if event.base_name else ""
        print(f"{event.kind} send of {event.source_name}{base}: "
              f"~{format_size(event.estimated_size)} to transfer", file=sys.stderr)
    elif event.error is not None:
        print(f"progress: {event.error}", file=sys.stderr)
    else:
        report = event.report
        print(f"{report.timestamp} {report.current_unit}: {format_size(report.bytes_sent)} "
              f"({format_percent(report.bytes_sent, event.estimated_size)})", file=sys.stderr)


def cmd_list(runner: CommandRunner, args) -> int:
    for dataset in zfs_core.list_datasets(runner, root=args.root, types=args.types):
        if args.verbose:
            used = dataset.get_property('used')
            size = format_size(used.as_size()) if used.value.isdigit() else used.value or '-'
            print(f"{dataset.name}\t{size}\t{dataset.mountpoint().value or '-'}")
        else:
            print(dataset.name)
    return 0


def cmd_get(runner: CommandRunner, args) -> int:
    if args.property:
        prop = zfs_core.get_property(runner, args.name, args.property)
        print(f"{args.name}\t{prop.name}\t{prop.value}\t{prop.source.value}")
        return 0
    dataset = zfs_core.get_dataset(runner, args.name)
    for name in sorted(dataset.properties):
        prop = dataset.properties[name]
        source = f"inherited from {prop.inherited_from}" if prop.inherited_from else prop.source.value
        print(f"{dataset.name}\t{name}\t{prop.value}\t{source}")
    return 0


def cmd_snapshot(runner: CommandRunner, args) -> int:
    print(zfs_core.create_snapshot(runner, args.dataset, args.name, recursive=args.recursive))
    return 0


def cmd_send(runner: CommandRunner, args) -> int:
    transfer = ZfsTransfer(runner)
    options = SendOptions(
        incremental=args.incremental,
        include_intermediary=args.intermediary,
        replication_stream=args.replicate,
        compressed=args.compressed,
        include_properties=args.props,
    )
    callback = _print_progress if args.progress else None

    if args.receive:
        receive_options = ReceiveOptions(force_rollback=args.force, not_mount=args.no_mount)
        transfer.send_to(args.snapshot, args.receive, options, receive_options, callback)
        return 0

    if args.output:
        with open(args.output, 'wb') as sink:
            transfer.send(args.snapshot, sink, options, callback)
        return 0

    if sys.stdout.isatty():
        log_error("MAIN", "Refusing to write a send stream to a terminal; use --output or redirect stdout.")
        return 2
    sys.stdout.flush()
    transfer.send(args.snapshot, sys.stdout.buffer, options, callback)
    return 0


def cmd_serve(runner: CommandRunner, args) -> int:
    from web_api import run_web_api
    run_web_api(runner, host=args.host, port=args.port, debug=args.debug)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='zfsflow', description="Inspect and transfer ZFS datasets.")
    parser.add_argument('--zfs', metavar='PATH', help="zfs binary to run (default: from config or PATH)")
    parser.add_argument('--sudo', action='store_true', default=None, help="run zfs through sudo")
    parser.add_argument('--debug', action='store_true', help="print debug logging to stderr")
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('list', help="list datasets")
    p.add_argument('root', nargs='?')
    p.add_argument('-t', '--types', default=constants.DEFAULT_LIST_TYPES)
    p.add_argument('-v', '--verbose', action='store_true')
    p.set_defaults(func=cmd_list)

    p = sub.add_parser('get', help="show dataset properties")
    p.add_argument('name')
    p.add_argument('property', nargs='?')
    p.set_defaults(func=cmd_get)

    p = sub.add_parser('snapshot', help="create a snapshot")
    p.add_argument('dataset')
    p.add_argument('name')
    p.add_argument('-r', '--recursive', action='store_true')
    p.set_defaults(func=cmd_snapshot)

    p = sub.add_parser('send', help="send a snapshot to a file, stdout or another dataset")
    p.add_argument('snapshot')
    target = p.add_mutually_exclusive_group()
    target.add_argument('-o', '--output', metavar='FILE')
    target.add_argument('--receive', metavar='DATASET')
    p.add_argument('-i', '--incremental', metavar='BASE')
    p.add_argument('-I', '--intermediary', action='store_true', help="include intermediary snapshots")
    p.add_argument('-R', '--replicate', action='store_true')
    p.add_argument('-c', '--compressed', action='store_true')
    p.add_argument('-p', '--props', action='store_true')
    p.add_argument('-F', '--force', action='store_true', help="receive: roll back the target first")
    p.add_argument('-u', '--no-mount', action='store_true', help="receive: do not mount the target")
    p.add_argument('-P', '--progress', action='store_true', help="report progress on stderr")
    p.set_defaults(func=cmd_send)

    p = sub.add_parser('serve', help="serve the JSON API")
    p.add_argument('--host', default=constants.DEFAULT_WEB_HOST)
    p.add_argument('--port', type=int, default=constants.DEFAULT_WEB_PORT)
    p.set_defaults(func=cmd_serve)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    set_debug_mode(args.debug)
    runner = CommandRunner(ExecutionContext.from_config(binary=args.zfs, sudo=args.sudo))
    try:
        return args.func(runner, args)
    except ZfsClassifiedError as e:
        log_error("MAIN", f"{e.kind.value}: {e.diagnostic.strip() or e}")
        return 1
    except ZfsError as e:
        log_error("MAIN", str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())

# --- END OF FILE src/main.py ---
