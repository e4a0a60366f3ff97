from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace

from pydantic import ValidationError

from tabtoon.core.errors import SchemaError, ToonError
from tabtoon.core.types import Table, TableSchema
from tabtoon.io.config import ToonSettings
from tabtoon.io.errors import IoError
from tabtoon.io.files import read_toon, write_toon
from tabtoon.io.frames import frame_from_table
from tabtoon.io.parquet import read_parquet, write_parquet

log = logging.getLogger("tabtoon.cli")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )


def _load_settings(args: argparse.Namespace) -> ToonSettings:
    settings = ToonSettings.load(args.config or None)
    if getattr(args, "on_row_error", None):
        settings = replace(settings, on_row_error=args.on_row_error)
    if getattr(args, "strict_row_count", False):
        settings = replace(settings, strict_row_count=True)
    return settings


def _common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", type=str, default="", help="TOML settings file.")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")


def _cmd_encode(argv: list[str]) -> int:
    p = argparse.ArgumentParser(prog="encode", description="Encode a Parquet table as .toon text.")
    p.add_argument("--input", type=str, required=True, help="Path to input parquet.")
    p.add_argument("--output", type=str, required=True, help="Path to output .toon file.")
    p.add_argument("--schema-name", type=str, default="", help="Override the schema name.")
    p.add_argument("--label", type=str, default="", help="Dataset label.")
    _common(p)
    args = p.parse_args(argv)
    _configure_logging(args.verbose)

    settings = _load_settings(args)
    table = read_parquet(args.input, schema_name=args.schema_name or None)
    if args.label:
        try:
            schema = TableSchema.model_validate({**table.schema.model_dump(), "dataset_label": args.label})
        except ValidationError as exc:
            raise SchemaError(f"invalid --label {args.label!r}: {exc}") from exc
        table = Table(schema, table.rows)
    write_toon(table, args.output, settings)
    log.info("encoded %d rows x %d columns", len(table), len(table.column_names))
    return 0


def _cmd_decode(argv: list[str]) -> int:
    p = argparse.ArgumentParser(prog="decode", description="Decode .toon text into a Parquet table.")
    p.add_argument("--input", type=str, required=True, help="Path to input .toon file.")
    p.add_argument("--output", type=str, required=True, help="Path to output parquet.")
    p.add_argument(
        "--on-row-error",
        choices=["raise", "collect"],
        default=None,
        help="Abort on the first bad row, or skip and report bad rows.",
    )
    p.add_argument(
        "--strict-row-count",
        action="store_true",
        help="Fail when the declared row count disagrees with the data.",
    )
    _common(p)
    args = p.parse_args(argv)
    _configure_logging(args.verbose)

    settings = _load_settings(args)
    result = read_toon(args.input, settings)
    for err in result.errors:
        log.warning("%s", err)
    write_parquet(result.table, args.output, settings)
    return 0 if result.ok else 1


def _cmd_inspect(argv: list[str]) -> int:
    p = argparse.ArgumentParser(prog="inspect", description="Show the schema and head of a .toon file.")
    p.add_argument("--input", type=str, required=True, help="Path to .toon file.")
    p.add_argument("--n", type=int, default=5, help="Rows to display.")
    _common(p)
    args = p.parse_args(argv)
    _configure_logging(args.verbose)

    settings = _load_settings(args)
    table = read_toon(args.input, settings).table
    schema = table.schema
    print(f"{schema.schema_name}: {len(table)} rows x {len(schema.columns)} columns")
    if schema.dataset_label:
        print(f"  label: {schema.dataset_label}")
    for col in schema.columns:
        extras = [f"length={col.character_length}"] if col.character_length is not None else []
        if col.display_format:
            extras.append(f"format={col.display_format}")
        if col.label:
            extras.append(f"label={col.label!r}")
        print(f"  {col.name}: {col.effective_kind.value} {' '.join(extras)}".rstrip())
    print(frame_from_table(table).head(args.n))
    return 0


_COMMANDS = {
    "encode": _cmd_encode,
    "decode": _cmd_decode,
    "inspect": _cmd_inspect,
}


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="tabtoon", description="Typed tables <-> .toon text.")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("encode", help="Parquet -> .toon")
    sub.add_parser("decode", help=".toon -> Parquet")
    sub.add_parser("inspect", help="Print schema and first rows of a .toon file")
    return p


def run(argv: list[str]) -> int:
    """Dispatch one command and map library errors to exit code 1."""
    if not argv:
        build_argparser().print_help()
        return 2
    cmd, rest = argv[0], argv[1:]
    handler = _COMMANDS.get(cmd)
    if handler is None:
        print(f"Unknown command: {cmd}", file=sys.stderr)
        return 2
    try:
        return handler(rest)
    except (ToonError, IoError) as exc:
        log.error("%s", exc)
        return 1


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    raise SystemExit(run(argv))


if __name__ == "__main__":
    main()
