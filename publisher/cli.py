"""Command line interface for publisher package."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Tuple

from rich.logging import RichHandler

from .cli_progress import (
    PublishProgressDisplay,
    render_configuration_summary,
    render_manifest,
    render_run_result,
)
from .errors import PublishError
from .models import PublishConfig, RemoteConfig, RunState


DEFAULT_STORE_APP_NAME = "tutorial-publisher"

EXIT_CODES = {
    RunState.COMPLETED: 0,
    RunState.PARTIALLY_FAILED: 1,
    RunState.REJECTED: 2,
}


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug, --log-level or LOG_LEVEL is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    env_level = os.getenv("LOG_LEVEL")
    if silent or (not debug and not log_level and not env_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, (log_level or env_level).upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _parse_env_line(line: str) -> Optional[Tuple[str, str]]:
    """KEY=VALUE from one .env line; comments, blanks and malformed lines give None."""
    line = line.strip()
    if line.startswith("export "):
        line = line[len("export "):].lstrip()
    if not line or line.startswith("#") or "=" not in line:
        return None

    key, _, value = line.partition("=")
    key, value = key.strip(), value.strip()
    if value[:1] in ("'", '"') and len(value) > 1 and value.endswith(value[0]):
        value = value[1:-1]
    return (key, value) if key else None


def _load_env_file(path: Path, override: bool = False) -> Dict[str, str]:
    """
    Export the publisher endpoints and credentials from a .env file.

    Variables already set in the environment win unless override is True.
    Returns the variables that were applied.
    """
    if not path.is_file():
        raise CLIError(f"--env-file {path} is missing or not a regular file")
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as exc:
        raise CLIError(f"cannot load endpoints from {path}: {exc}") from exc

    applied: Dict[str, str] = {}
    for parsed in filter(None, map(_parse_env_line, lines)):
        key, value = parsed
        if override or key not in os.environ:
            os.environ[key] = applied[key] = value
    return applied


def _default_env_file() -> Optional[Path]:
    """.env of the working directory (usually the tutorials checkout), if any."""
    candidate = Path.cwd() / ".env"
    return candidate if candidate.is_file() else None


def _require_env(environ: Mapping[str, str], name: str) -> str:
    value = (environ.get(name) or "").strip()
    if not value:
        raise CLIError(f"{name} environment variable is not set")
    return value


def _remote_config_from_env(environ: Mapping[str, str]) -> RemoteConfig:
    return RemoteConfig(
        package_api_url=_require_env(environ, "PACKAGE_API_URL"),
        metadata_node_url=_require_env(environ, "METADATA_NODE_URL"),
        store_url=_require_env(environ, "STORE_URL"),
        store_app_name=environ.get("STORE_APP_NAME") or DEFAULT_STORE_APP_NAME,
        store_wallet=_require_env(environ, "STORE_WALLET"),
    )


def _concurrency_from_env(environ: Mapping[str, str]) -> int:
    raw = environ.get("PUBLISH_CONCURRENCY")
    if not raw:
        return PublishConfig.concurrency
    try:
        value = int(raw)
    except ValueError as exc:
        raise CLIError(f"PUBLISH_CONCURRENCY must be an integer, got {raw!r}") from exc
    if value < 1:
        raise CLIError("PUBLISH_CONCURRENCY must be at least 1")
    return value


def _resolve_package_root(package: Optional[str], environ: Mapping[str, str]) -> Path:
    """Package argument is a path, or a slug under TUTORIALS_DIR; default is cwd."""
    if not package:
        return Path.cwd()
    candidate = Path(package).expanduser()
    if candidate.is_dir():
        return candidate
    tutorials_dir = environ.get("TUTORIALS_DIR")
    if tutorials_dir and (Path(tutorials_dir) / package).is_dir():
        return Path(tutorials_dir) / package
    raise CLIError(f"package folder does not exist: {package}")


async def _run_publish(root: Path, remote: RemoteConfig, config: PublishConfig) -> int:
    from .orchestrator import PublishOrchestrator

    display = PublishProgressDisplay()
    async with PublishOrchestrator(remote, config) as orchestrator:
        orchestrator.on_file_start(display.on_file_start)
        orchestrator.on_file_complete(display.on_file_complete)
        orchestrator.on_file_fail(display.on_file_fail)
        result = await orchestrator.publish(root)

    render_run_result(result)
    return EXIT_CODES[result.state]


async def _run_prepublish(
    root: Path,
    package_api_url: Optional[str],
    skip_reviewers: bool,
    force: bool,
    config: PublishConfig,
) -> int:
    from .orchestrator import PublishOrchestrator
    from .services import HTTPAPIClient, HTTPPackageStateAuthority

    if package_api_url is None:
        manifest = await PublishOrchestrator(config=config).prepublish(root, skip_reviewers=True)
    else:
        async with HTTPAPIClient(package_api_url) as client:
            orchestrator = PublishOrchestrator(
                config=config,
                package_authority=HTTPPackageStateAuthority(client),
            )
            manifest = await orchestrator.prepublish(root, skip_reviewers=skip_reviewers, force=force)

    render_manifest(manifest)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tutorial-publish",
        description="Publish tutorial packages to immutable storage and the metadata store.",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument("--version", action="version", version="tutorial-publish (from publisher)")

    commands = parser.add_subparsers(dest="command")

    publish = commands.add_parser("publish", help="Upload changed files and reconcile metadata")
    publish.add_argument("package", nargs="?", help="Package folder or slug (default: current folder)")
    publish.add_argument("--skip-images", action="store_true", help="Skip uploading images")

    prepublish = commands.add_parser("prepublish", help="Sync proposal fields and refresh digests")
    prepublish.add_argument("package", nargs="?", help="Package folder or slug (default: current folder)")
    prepublish.add_argument("--skip-reviewers", action="store_true", help="Skip reviewer sync")
    prepublish.add_argument("--force", action="store_true", help="Rewrite proposal id and creator from the slug")
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.command is None:
        parser.print_help()
        return 0

    environ = os.environ
    try:
        root = _resolve_package_root(args.package, environ)
        config = PublishConfig(
            concurrency=_concurrency_from_env(environ),
            skip_images=getattr(args, "skip_images", False),
        )

        if args.command == "publish":
            remote = _remote_config_from_env(environ)
            render_configuration_summary(
                {
                    "Command": "publish",
                    "Package": str(root),
                    "Package API": remote.package_api_url,
                    "Metadata Node": remote.metadata_node_url,
                    "Store": remote.store_url,
                    "App Name": remote.store_app_name,
                    "Concurrency": config.concurrency,
                    "Skip Images": "yes" if config.skip_images else "no",
                    "Env File": str(used_env_file) if used_env_file else "-",
                    "Logging": effective_log_mode,
                }
            )
            return asyncio.run(_run_publish(root, remote, config))

        needs_authority = not args.skip_reviewers or args.force
        package_api_url = _require_env(environ, "PACKAGE_API_URL") if needs_authority else None
        render_configuration_summary(
            {
                "Command": "prepublish",
                "Package": str(root),
                "Package API": package_api_url or "-",
                "Skip Reviewers": "yes" if args.skip_reviewers else "no",
                "Force": "yes" if args.force else "no",
                "Env File": str(used_env_file) if used_env_file else "-",
                "Logging": effective_log_mode,
            }
        )
        return asyncio.run(_run_prepublish(root, package_api_url, args.skip_reviewers, args.force, config))
    except (CLIError, PublishError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
