from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, DistributeConfig, load_config, resolve_dsn
from ..db.schema import ensure_schema
from ..errors import DistributionError
from ..logging.init import log_summary, setup_logging
from ..models.processing_result import ProcessingResult
from ..services.pipeline import ProcessingError, Upload, process_all, scan_input_files
from ..services.recorder import DistributionRecorder, InMemoryDistributionRecorder, PostgresDistributionRecorder
from ..services.roster import ConfigRosterSelector, PostgresRosterSelector, RosterSelector
from ..services.summary import page_to_dict, render_summary_line, stored_to_dict, summarize_plan
from ..tabular.reader import parse_table

"""CLI entrypoint.

Flow:
- Load .env (override) and the YAML config
- Collect input files (arguments, or the configured source directory)
- Live mode: roster + recorder in PostgreSQL, one transaction per file
- Mock mode (DISABLE_DB_CONNECT=1 or connection failure): roster from the
  config, plans kept in memory
- Print one SUMMARY line; exit code reflects the batch outcome
- --history / --show read recorded distributions back instead of processing
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

DEFAULT_UPLOADED_BY = "cli"
DEFAULT_HISTORY_LIMIT = 10


def _connect(cfg: DistributeConfig) -> Any:
    """Open a psycopg2 connection in autocommit mode.

    Transactions are explicit: the pipeline issues BEGIN/COMMIT/ROLLBACK per file.
    """
    conn = psycopg2.connect(resolve_dsn(cfg.database))
    conn.autocommit = True
    return conn


def _load_env_file(path: Path, override: bool = True) -> None:
    """.env の値で既存の環境変数を上書きする (接続情報を最優先にするため)."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return n


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="contact-distributor",
        description="Split contact spreadsheets evenly across the five active agents",
    )
    p.add_argument("files", nargs="*", type=Path, help=".csv / .xlsx files (default: source_directory from config)")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--uploaded-by", default=DEFAULT_UPLOADED_BY, help="Uploading principal recorded with each plan")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print headers & first rows then exit")
    p.add_argument("--json", action="store_true", help="Print per-file distribution summaries as JSON")
    review = p.add_mutually_exclusive_group()
    review.add_argument("--history", action="store_true", help="List recorded distributions (newest first) then exit")
    review.add_argument("--show", metavar="PLAN_ID", help="Print one recorded distribution as JSON then exit")
    p.add_argument("--page", type=_positive_int, default=1, help="History page (with --history)")
    p.add_argument("--limit", type=_positive_int, default=DEFAULT_HISTORY_LIMIT, help="History page size (with --history)")
    return p.parse_args(argv)


def _inspect_data(paths: list[Path]) -> int:
    if not paths:
        print("inspect: no .csv/.xlsx files")
        return EXIT_SUCCESS_ALL
    for path in paths:
        print(f"FILE: {path.name}")
        try:
            upload = Upload.from_path(path)
            table = parse_table(upload.content, upload.table_format)
        except (DistributionError, OSError) as e:
            print(f"  read_error: {e}")
            continue
        print(f"  cols={table.columns} rows={len(table.rows)}")
        print("  sample_rows=", table.rows[:3])
    return EXIT_SUCCESS_ALL


def _print_json(result: ProcessingResult, recorder: DistributionRecorder) -> None:
    out = []
    for stat in result.file_stats or []:
        entry: dict[str, Any] = {"file": stat.file_name, "status": stat.status}
        if stat.plan_id is not None:
            stored = recorder.get(stat.plan_id)
            entry["id"] = stat.plan_id
            if stored is not None:
                entry["summary"] = summarize_plan(stored.plan)
        else:
            entry["errorType"] = stat.error_type
            entry["error"] = stat.error
        out.append(entry)
    print(json.dumps(out, ensure_ascii=False, indent=2))


def _review(args: argparse.Namespace, recorder: DistributionRecorder, logger: logging.Logger) -> int:
    """--history / --show: read recorded distributions back, nothing is processed."""
    if args.show is not None:
        stored = recorder.get(args.show)
        if stored is None:
            logger.error(f"distribution not found: {args.show}")
            return EXIT_FATAL
        print(json.dumps(stored_to_dict(stored), ensure_ascii=False, indent=2))
        return EXIT_SUCCESS_ALL

    page = recorder.list_recent(page=args.page, limit=args.limit)
    print(json.dumps(page_to_dict(page), ensure_ascii=False, indent=2))
    logger.info(f"history page={page.page}/{page.pages} total={page.total}")
    return EXIT_SUCCESS_ALL


def _dispatch(
    args: argparse.Namespace,
    cfg: DistributeConfig,
    files: list[Path] | None,
    selector: RosterSelector,
    recorder: DistributionRecorder,
    logger: logging.Logger,
    mode: str,
    cursor: Any = None,
) -> int:
    if args.history or args.show is not None:
        if mode == "mock":
            # mock の recorder はプロセス内のみ: 過去の実行は見えない
            logger.warning("mock mode: history only contains distributions recorded by this process")
        return _review(args, recorder, logger)

    result = process_all(cfg, selector, recorder, args.uploaded_by, files=files, cursor=cursor)
    if args.json:
        _print_json(result, recorder)

    logger.info(f"mode={mode} accepted={result.total_accepted} rejected={result.total_rejected}")

    summary_line = render_summary_line(result.total_files, result)
    log_summary(summary_line.removeprefix("SUMMARY "))

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    # [] が渡された場合に sys.argv (pytest の引数) を読まないよう None のみ判定
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    reviewing = args.history or args.show is not None
    files: list[Path] | None = list(args.files) or None
    if files is None and not reviewing:
        directory = Path(cfg.source_directory)
        if not directory.is_dir():
            logger.error(f"directory not found: {directory}")
            return EXIT_FATAL
        logger.info(f"Processing files from: {directory}")

    if args.inspect_data:
        try:
            return _inspect_data(files if files is not None else scan_input_files(Path(cfg.source_directory)))
        except ProcessingError as e:
            logger.error(f"inspect: {e}")
            return EXIT_FATAL

    mode = "mock"
    try:
        if os.getenv("DISABLE_DB_CONNECT") == "1":
            logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
            return _dispatch(
                args, cfg, files, ConfigRosterSelector(cfg.roster), InMemoryDistributionRecorder(), logger, mode
            )
        try:
            conn = _connect(cfg)
        except psycopg2.Error as db_e:
            logger.info(f"DB connection failed -> fallback to mock mode: {db_e}")
            return _dispatch(
                args, cfg, files, ConfigRosterSelector(cfg.roster), InMemoryDistributionRecorder(), logger, mode
            )
        mode = "live"
        try:
            with conn.cursor() as cur:
                ensure_schema(cur)
                return _dispatch(
                    args, cfg, files,
                    PostgresRosterSelector(cur), PostgresDistributionRecorder(cur),
                    logger, mode, cursor=cur,
                )
        finally:
            conn.close()
    except ProcessingError as e:
        logger.error(f"processing({mode}): {e}")
        return EXIT_FATAL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
