from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from collections.abc import Sequence

from celldump.core.errors import ArgumentError, CelldumpError, ScanConfigurationError
from celldump.core.import_spec import IMPORT_OPTIONS, build_import_spec
from celldump.core.scan_spec import EXPORT_OPTIONS, build_scan_spec
from celldump.engine.errors import EngineError
from celldump.engine.local import LocalStore
from celldump.io.config import DumpSettings
from celldump.io.errors import IoError
from celldump.jobs.export import ExportJob
from celldump.jobs.importer import ImportJob
from celldump.jobs.state import JobResult

EXPORT_USAGE = (
    "Usage: celldump export [-D <property=value>]* <tablename> <outputdir> "
    "[<versions> [<starttime> [<endtime>]] [^[regex pattern] or [Prefix] to filter]]"
)
IMPORT_USAGE = "Usage: celldump import [-D <property=value>]* <tablename> <inputdir>"
BULKLOAD_USAGE = "Usage: celldump bulkload <tablename> <bulkoutputdir>"


def _options_text(options: dict[str, str]) -> str:
    lines = ["", "By default the tool runs with these -D options, all optional:"]
    for key, example in options.items():
        lines.append(f"  -D {key}={example}")
    return "\n".join(lines)


def _usage(error: str, usage: str, options: dict[str, str] | None = None) -> None:
    """Print an error line followed by usage text to stderr."""
    print(error, file=sys.stderr)
    print(usage, file=sys.stderr)
    if options:
        print(_options_text(options), file=sys.stderr)


def _parse_defines(defines: Sequence[str] | None) -> dict[str, str]:
    conf: dict[str, str] = {}
    for item in defines or ():
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ArgumentError(f"malformed -D option {item!r}; expected key=value")
        conf[key.strip()] = value
    return conf


def _parser(prog: str, description: str) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog=prog, description=description, add_help=True)
    p.add_argument(
        "-D",
        dest="defines",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Job option (repeatable).",
    )
    p.add_argument("--store", type=str, default=None, help="Local store root directory.")
    p.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level.",
    )
    p.add_argument("args", nargs="*", help="Positional arguments.")
    return p


def _setup(ns: argparse.Namespace) -> DumpSettings:
    logging.basicConfig(
        level=getattr(logging, ns.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = DumpSettings.load()
    if ns.store:
        settings = dataclasses.replace(settings, root_dir=ns.store)
    return settings


def _report(result: JobResult, what: str) -> int:
    c = result.counters
    if result.ok:
        print(f"[INFO] {what}: {c.get('rows', 0)} rows, {c.get('cells', 0)} cells")
        for name in ("rows_filtered", "rows_empty", "storefiles"):
            if c.get(name):
                print(f"[INFO] {name}: {c[name]}")
        return 0
    print(f"[ERROR] {what} failed: {result.error}", file=sys.stderr)
    for t in result.failed_tasks:
        print(f"[ERROR] partition {t.partition}: {t.error}", file=sys.stderr)
    return 1


def _cmd_export(argv: list[str]) -> int:
    p = _parser("celldump export", "Export a table's versioned cells to a dump.")
    ns = p.parse_intermixed_args(argv)
    try:
        conf = _parse_defines(ns.defines)
        build_scan_spec(ns.args, conf)
    except (ArgumentError, ScanConfigurationError) as exc:
        _usage(str(exc), EXPORT_USAGE, EXPORT_OPTIONS)
        return 2
    settings = _setup(ns)
    table_name, dump_dir = ns.args[0], ns.args[1]
    try:
        table = LocalStore(settings).open_table(table_name)
        result = ExportJob(table, ns.args, conf, settings).run()
    except (CelldumpError, EngineError, IoError) as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1
    return _report(result, f"exported {table_name} to {dump_dir}")


def _cmd_import(argv: list[str]) -> int:
    p = _parser("celldump import", "Import a dump into a table.")
    ns = p.parse_intermixed_args(argv)
    try:
        conf = _parse_defines(ns.defines)
        spec = build_import_spec(ns.args, conf)
    except ArgumentError as exc:
        _usage(str(exc), IMPORT_USAGE, IMPORT_OPTIONS)
        return 2
    settings = _setup(ns)
    store = LocalStore(settings)
    try:
        table = None if spec.bulk_output else store.open_table(spec.table)
        result = ImportJob(table, ns.args, conf, settings).run()
        if table is not None:
            store.save(table)
    except (CelldumpError, EngineError, IoError) as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1
    if spec.bulk_output and result.ok:
        print(f"[INFO] store files written under {spec.bulk_output}")
    return _report(result, f"imported {spec.source_location} into {spec.table}")


def _cmd_bulkload(argv: list[str]) -> int:
    p = _parser("celldump bulkload", "Load bulk-output store files into a table.")
    ns = p.parse_intermixed_args(argv)
    if len(ns.args) != 2:
        _usage(f"Wrong number of arguments: {len(ns.args)}", BULKLOAD_USAGE)
        return 2
    settings = _setup(ns)
    table_name, bulk_dir = ns.args
    store = LocalStore(settings)
    try:
        loaded = store.bulk_load(table_name, bulk_dir)
        store.save(store.open_table(table_name))
    except (EngineError, IoError) as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1
    print(f"[INFO] loaded {loaded} cells into {table_name}")
    return 0


COMMANDS = {
    "export": _cmd_export,
    "import": _cmd_import,
    "bulkload": _cmd_bulkload,
}


def _print_commands() -> None:
    print("Commands:", file=sys.stderr)
    for usage in (EXPORT_USAGE, IMPORT_USAGE, BULKLOAD_USAGE):
        print(f"  {usage}", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        _print_commands()
        raise SystemExit(2)
    cmd, rest = argv[0], argv[1:]
    handler = COMMANDS.get(cmd)
    if handler is None:
        print(f"Unknown command: {cmd}", file=sys.stderr)
        _print_commands()
        raise SystemExit(2)
    raise SystemExit(handler(rest))


if __name__ == "__main__":
    main()
