import argparse
import logging
import re
import sys
from typing import Dict, List, Optional, Tuple

from proofer.controllers.run_controller import RunController
from proofer.errors import ProoferError
from proofer.options import ProoferOptions, SORT_MODES
from proofer.services.export_service import ExportService
from fetcher.services.generate_default_user_agent_service import generate_default_user_agent
from proofer_cli.core.managers.config_manager import config_manager
from proofer_cli.core.utils.configure_logging import configure_logger
from proofer_cli.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


def _csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _csv_ints(value: str) -> List[int]:
    try:
        return [int(item) for item in _csv(value)]
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected comma-separated status codes, got '{value}'")


def _url_swaps(value: str) -> Dict[str, str]:
    """Parses 'pattern:replacement,...'; a literal colon in a pattern is written as '\\:'."""
    swaps = {}
    for item in _csv(value):
        parts = re.split(r'(?<!\\):', item, maxsplit=1)
        if len(parts) != 2:
            raise argparse.ArgumentTypeError(f"expected 'pattern:replacement', got '{item}'")
        pattern, replacement = (part.replace("\\:", ":") for part in parts)
        swaps[pattern] = replacement
    return swaps


def _assignment(value: str) -> Tuple[str, str]:
    """Parses 'section.key=value' for --set."""
    key_path, sep, raw = value.partition("=")
    if not sep or not key_path.strip():
        raise argparse.ArgumentTypeError(f"expected 'section.key=value', got '{value}'")
    return key_path.strip(), raw.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pydproofer",
        description="Validate the links, images and scripts of a set of HTML files."
    )
    parser.add_argument("paths", nargs="+", help="HTML files or directories (URLs with --links).")
    parser.add_argument("--links", action="store_true", help="Treat the positional arguments as external URLs.")
    parser.add_argument(
        "--set", action="append", type=_assignment, metavar="KEY=VALUE",
        help="Override a settings.json value for this run, e.g. link_checker.concurrency=10."
    )

    selection = parser.add_argument_group("selection")
    selection.add_argument("--checks-to-ignore", type=_csv, help="Comma-separated check names to skip.")
    selection.add_argument("--file-ignore", type=_csv, help="Files to skip (paths or /regex/).")
    selection.add_argument("--url-ignore", type=_csv, help="URLs to skip (strings or /regex/).")
    selection.add_argument("--alt-ignore", type=_csv, help="Image sources whose alt text is not checked.")
    selection.add_argument("--url-swap", type=_url_swaps, help="URL rewrites 'pattern:replacement,...'.")
    selection.add_argument("--extension", help="Extension of the files to check (default .html).")

    checks = parser.add_argument_group("checks")
    checks.add_argument("--allow-hash-href", action="store_true", default=None, help="Accept href=\"#\".")
    checks.add_argument("--empty-alt-ignore", action="store_true", default=None, help="Accept alt=\"\".")
    checks.add_argument("--enforce-https", action="store_true", default=None, help="Fail http:// links.")
    checks.add_argument("--check-img-http", action="store_true", default=None, help="Fail http:// images.")
    checks.add_argument("--check-favicon", action="store_true", default=None, help="Require a favicon.")
    checks.add_argument("--check-opengraph", action="store_true", default=None, help="Check og:url/og:image.")
    checks.add_argument("--assume-extension", help="Extension tried for extensionless links (e.g. .html).")
    checks.add_argument("--directory-index-file", help="Index file of linked directories.")
    checks.add_argument("--root-dir", help="Directory root-relative links (/x) resolve against.")

    external = parser.add_argument_group("external links")
    external.add_argument("--disable-external", action="store_true", default=None, help="Skip external URLs.")
    external.add_argument("--external-only", action="store_true", default=None, help="Report external failures only.")
    external.add_argument("--http-status-ignore", type=_csv_ints, help="HTTP statuses treated as success.")
    external.add_argument("--concurrency", type=int, help="Concurrent external requests.")
    external.add_argument("--timeout", type=float, help="Per-request timeout in seconds.")
    external.add_argument("--retries", type=int, help="Retries for transient failures.")
    external.add_argument("--no-follow-redirects", action="store_true", help="Report 3xx statuses as failures.")
    external.add_argument("--user-agent", help="User-Agent header for external requests.")

    cache = parser.add_argument_group("cache")
    cache.add_argument("--no-cache", action="store_true", help="Do not read or write the link cache.")
    cache.add_argument("--cache-timeframe", help="Cache lifetime, e.g. 30d, 2w, 6h.")
    cache.add_argument("--cache-path", help="Location of the cache database.")

    output = parser.add_argument_group("output")
    output.add_argument("--error-sort", choices=SORT_MODES, help="Grouping of the report.")
    output.add_argument("--export", help="Write the failures to a .csv or .json file.")
    output.add_argument("--workers", type=int, help="Threads used to check documents.")
    output.add_argument("--no-progress", action="store_true", help="Hide the progress bar.")
    output.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR.")
    return parser


def build_options(args: argparse.Namespace) -> ProoferOptions:
    """Merges settings.json with the command line; flags win over settings."""
    settings = config_manager.get_all()

    user_agent = args.user_agent or generate_default_user_agent(
        config_manager.get_nested("user_agent.chrome_version", "120.0.0.0")
    )
    cache_path = args.cache_path or config_manager.get_nested("cache.path") or PathUtils.get_cache_db_path()

    return ProoferOptions.from_settings(
        settings,
        checks_to_ignore=args.checks_to_ignore,
        file_ignore=args.file_ignore,
        url_ignore=args.url_ignore,
        alt_ignore=args.alt_ignore,
        url_swap=args.url_swap,
        extension=args.extension,
        allow_hash_href=args.allow_hash_href,
        empty_alt_ignore=args.empty_alt_ignore,
        enforce_https=args.enforce_https,
        check_img_http=args.check_img_http,
        check_favicon=args.check_favicon,
        check_opengraph=args.check_opengraph,
        assume_extension=args.assume_extension,
        directory_index_file=args.directory_index_file,
        root_dir=args.root_dir,
        disable_external=args.disable_external,
        external_only=args.external_only,
        http_status_ignore=args.http_status_ignore,
        external_concurrency=args.concurrency,
        timeout=args.timeout,
        retries=args.retries,
        follow_redirects=False if args.no_follow_redirects else None,
        user_agent=user_agent,
        cache_enabled=False if args.no_cache else None,
        cache_ttl=args.cache_timeframe,
        cache_path=cache_path,
        error_sort=args.error_sort,
        document_workers=args.workers,
        show_progress=False if args.no_progress else None,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    for key_path, value in args.set or []:
        if not config_manager.set_nested(key_path, value):
            print(f"❌ Cannot set {key_path}", file=sys.stderr)
            return 1

    configure_logger(
        args.log_level or config_manager.get_nested("debug.level", "WARNING"),
        silenced_loggers=config_manager.get_nested("debug.silenced_loggers", {"aiohttp": "WARNING", "asyncio": "WARNING"})
    )

    try:
        options = build_options(args)
        controller = RunController(options)
        result = controller.run_links(args.paths) if args.links else controller.run_paths(args.paths)

        if args.export:
            output_path = ExportService().export(result.failures, args.export)
            print(f"✅ Exported {len(result.failures)} failures to {output_path}", file=sys.stderr)
    except ProoferError as e:
        logger.debug("Run aborted", exc_info=True)
        print(f"❌ {e}", file=sys.stderr)
        return 1

    print(result.report())
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
