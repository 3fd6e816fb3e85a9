from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from pydantic import ValidationError

from apache_check import __version__
from apache_check.check.config import (
    OUTPUT_FORMATS,
    CheckConfig,
    check_config_from_payload,
    load_config_payload,
)
from apache_check.check.render import exit_code, render
from apache_check.check.service import CheckRunner, failure_verdict
from apache_check.core.logging import bind_check_context, configure_logging
from apache_check.core.metrics import write_textfile
from apache_check.core.settings import (
    LOG_LEVELS,
    Settings,
    describe_settings_error,
    get_settings,
)
from apache_check.store.samples import FileSampleStore
from apache_check.utils.errors import CheckError, ConfigError


UNKNOWN_EXIT_CODE = 3

logger = logging.getLogger(__name__)


class CheckArgumentParser(argparse.ArgumentParser):
    # Monitoring systems read exit code 2 as CRITICAL; usage errors are UNKNOWN.
    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        self.exit(UNKNOWN_EXIT_CODE, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = CheckArgumentParser(
        prog="check-apache",
        description="Check Apache mod_status workers and request rates",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML or JSON file with check options; command line values take precedence",
    )
    parser.add_argument("--url", help="Status page URL, '?auto' is appended without a query")
    parser.add_argument("--username", help="User name for basic authentication")
    parser.add_argument("--password", help="Password for basic authentication")
    parser.add_argument(
        "--address",
        help="Connect to this address and send the URL host as Host header",
    )
    parser.add_argument(
        "--ipv6", action="store_true", default=None, help="Connect over IPv6"
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        default=None,
        help="Skip TLS certificate verification",
    )
    parser.add_argument("--timeout", type=float, help="Fetch timeout in seconds")
    parser.add_argument(
        "--warning",
        action="append",
        metavar="METRIC:OP:VALUE",
        help="Warning threshold, repeatable (e.g. idleworker:lt:10)",
    )
    parser.add_argument(
        "--critical",
        action="append",
        metavar="METRIC:OP:VALUE",
        help="Critical threshold, repeatable (e.g. idleworker:lt:3)",
    )
    parser.add_argument("--state-dir", type=Path, help="Directory for persisted samples")
    parser.add_argument("--output", choices=OUTPUT_FORMATS, help="Result format")
    parser.add_argument("--textfile", type=Path, help="Write Prometheus textfile metrics")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Log level for stderr JSON logs",
    )
    return parser


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    values = {
        "url": args.url,
        "username": args.username,
        "password": args.password,
        "address": args.address,
        "ipv6": args.ipv6,
        "insecure": args.insecure,
        "timeout": args.timeout,
        "warning": args.warning,
        "critical": args.critical,
        "state_dir": args.state_dir,
        "output": args.output,
        "textfile": args.textfile,
    }
    return {key: value for key, value in values.items() if value is not None}


def build_config(args: argparse.Namespace, settings: Settings) -> CheckConfig:
    payload = load_config_payload(args.config) if args.config else {}
    payload.update(_overrides(args))
    return check_config_from_payload(payload, settings)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = get_settings()
    except ValidationError as exc:
        configure_logging(args.log_level or "WARNING")
        verdict = failure_verdict(
            ConfigError(f"invalid settings: {describe_settings_error(exc)}")
        )
        print(render(verdict, args.output or "text"))
        return exit_code(verdict.status)

    configure_logging(args.log_level or settings.log_level)
    bind_check_context()

    try:
        config = build_config(args, settings)
    except CheckError as exc:
        verdict = failure_verdict(exc)
        print(render(verdict, args.output or "text"))
        return exit_code(verdict.status)

    runner = CheckRunner(
        config,
        FileSampleStore(config.state_dir),
        bootstrap_wait_seconds=settings.bootstrap_wait_seconds,
    )
    verdict = runner.run()
    if config.textfile is not None:
        try:
            write_textfile(verdict, config.textfile)
        except OSError as exc:
            logger.error(
                "textfile_write_failed",
                extra={"path": str(config.textfile), "detail": str(exc)},
            )
    print(render(verdict, config.output))
    return exit_code(verdict.status)


if __name__ == "__main__":
    raise SystemExit(main())
