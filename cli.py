from __future__ import annotations

import argparse
import shutil
import sys
import tempfile
from dataclasses import replace
from typing import Mapping

from bcu import __version__
from bcu.errors import UpdaterError, UsageError
from bcu.events import configure_logging, log_event
from bcu.reconciler import build_reconciler
from bcu.settings import Settings


class UsageErrorParser(argparse.ArgumentParser):
    """Reports bad flags as UsageError so they exit like missing settings."""

    def error(self, message: str):
        raise UsageError(message)


def build_parser(defaults: Settings) -> argparse.ArgumentParser:
    p = UsageErrorParser(
        prog="beekeeper-updater-docker-compose",
        description="Keep docker-compose images in a git repository in sync with beekeeper",
    )
    p.add_argument("-b", "--beekeeper-uri", default=defaults.beekeeper_uri, help="Beekeeper base URL (env: BEEKEEPER_URI)")
    p.add_argument(
        "-f",
        "--docker-compose-file",
        default=defaults.compose_file,
        help="Compose file path inside the repository (env: DOCKER_COMPOSE_FILE)",
    )
    p.add_argument(
        "-r",
        "--repository-url",
        default=defaults.repository_url,
        help="Git URL of the manifest repository, may embed credentials (env: REPOSITORY_URL)",
    )
    p.add_argument("-t", "--tags", default=defaults.tags, help="Comma-separated beekeeper tag filter (env: BEEKEEPER_TAGS)")
    p.add_argument("-i", "--interval", type=int, default=defaults.interval_s, help="Seconds between passes (env: INTERVAL)")
    p.add_argument(
        "-s",
        "--single-run",
        action="store_true",
        default=defaults.single_run,
        help="Run one pass and exit (env: SINGLE_RUN)",
    )
    p.add_argument("-w", "--work-dir", default=defaults.work_dir, help="Clone destination, must be empty (env: WORK_DIR)")
    p.add_argument("--debug", action="store_true", default=defaults.debug, help="Log debug events (env: DEBUG)")
    p.add_argument(
        "--log-format",
        choices=["console", "json"],
        default=defaults.log_format if defaults.log_format in {"console", "json"} else "console",
        help="Log renderer (env: LOG_FORMAT)",
    )
    p.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    return p


def main(argv: list[str] | None = None, env: Mapping[str, str] | None = None) -> int:
    defaults = Settings.from_env(env)
    p = build_parser(defaults)
    try:
        args = p.parse_args(argv)
        settings = replace(
            defaults,
            beekeeper_uri=args.beekeeper_uri,
            compose_file=args.docker_compose_file,
            repository_url=args.repository_url,
            tags=args.tags,
            interval_s=args.interval,
            single_run=args.single_run,
            work_dir=args.work_dir,
            debug=args.debug,
            log_format=args.log_format,
        ).validate()
    except UsageError as e:
        p.print_usage(sys.stderr)
        print(f"{p.prog}: error: {e}", file=sys.stderr)
        return 1

    configure_logging(debug=settings.debug, log_format=settings.log_format)
    tmp_dir = None
    if settings.work_dir is None:
        tmp_dir = tempfile.mkdtemp(prefix="beekeeper-updater-")
        settings = replace(settings, work_dir=tmp_dir)

    reconciler, vcs = build_reconciler(settings)
    try:
        vcs.ensure_clone()
        reconciler.run(settings.interval_s, single_run=settings.single_run)
    except UpdaterError as e:
        log_event("ERROR", str(e), error_type=type(e).__name__)
        return 1
    finally:
        reconciler.close()
        if tmp_dir is not None:
            shutil.rmtree(tmp_dir, ignore_errors=True)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
