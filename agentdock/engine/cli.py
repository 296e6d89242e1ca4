"""CLI entry point for workspace sessions.

Usage:
    agentdock check [--claude-bin PATH]
    agentdock path [--claude-bin PATH]
    agentdock home [--config agentdock.yaml --workspace ID | --cwd DIR]
    agentdock send [--config agentdock.yaml --workspace ID | --cwd DIR] "message"
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys

import yaml

from .claude_home import resolve_default_claude_home, resolve_workspace_claude_home
from .config import SessionConfig
from .environment import build_path_env, check_installation
from .errors import WorkspaceSessionError
from .models import WorkspaceEntry
from .session import spawn_workspace_session
from .yaml_config import WorkspacesConfig, load_yaml_config


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agentdock",
        description="Per-workspace Claude CLI sessions",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Verify the claude CLI and print its version")
    check.add_argument("--claude-bin", default=None, help="Explicit claude binary")

    path = sub.add_parser("path", help="Print the augmented PATH used for claude")
    path.add_argument("--claude-bin", default=None, help="Explicit claude binary")

    for name, help_text in (
        ("home", "Print the .claude directory for a workspace"),
        ("send", "Send one message through a persistent session"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--config", "-c", default=None, help="Workspaces YAML file")
        cmd.add_argument("--workspace", "-w", default=None, help="Workspace id from --config")
        cmd.add_argument("--cwd", default=None, help="Workspace directory (default: current dir)")
        if name == "send":
            cmd.add_argument("message", help="The message to send")
    return parser


def _resolve_workspace(
    args: argparse.Namespace,
    config: WorkspacesConfig | None,
) -> WorkspaceEntry:
    if args.workspace:
        if config is None:
            raise SystemExit("Error: --workspace requires --config.")
        try:
            return config.get(args.workspace)
        except KeyError as exc:
            raise SystemExit(f"Error: {exc.args[0]}") from None
    cwd = os.path.abspath(args.cwd or os.getcwd())
    name = os.path.basename(cwd) or cwd
    return WorkspaceEntry(id=name, name=name, path=cwd)


async def _send(
    entry: WorkspaceEntry,
    message: str,
    config: SessionConfig,
) -> int:
    session = await spawn_workspace_session(entry, config=config)
    async with session:
        await session.ensure_persistent_session()
        await session.send_message(message)
        while True:
            event = await session.read_event()
            if event is None:
                print("Error: claude exited before returning a result.")
                return 1
            print(json.dumps(event, ensure_ascii=False))
            if event.get("type") == "result":
                return 1 if event.get("is_error") else 0


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)

    env_config = SessionConfig.from_env()
    level = logging.DEBUG if args.verbose else getattr(
        logging, env_config.log_level.upper(), logging.INFO
    )
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.command == "path":
        print(build_path_env(args.claude_bin or env_config.claude_bin) or "")
        return

    try:
        code = _run_command(args, env_config)
    except (WorkspaceSessionError, OSError, yaml.YAMLError, ValueError) as exc:
        print(f"Error: {exc}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(1)
    if code is not None:
        sys.exit(code)


def _run_command(
    args: argparse.Namespace,
    env_config: SessionConfig,
) -> int | None:
    """Run check, home or send. Returns an exit code for send."""
    if args.command == "check":
        version = asyncio.run(check_installation(
            args.claude_bin or env_config.claude_bin,
            timeout=env_config.version_timeout_seconds,
        ))
        print(version or "claude (version unknown)")
        return None

    config = load_yaml_config(args.config, env_config) if args.config else None
    session_config = config.engine if config else env_config
    entry = _resolve_workspace(args, config)

    if args.command == "home":
        parent_path = config.parent_path(entry) if config else None
        home = (
            resolve_workspace_claude_home(entry, parent_path)
            or resolve_default_claude_home()
        )
        if home is None:
            print("Error: could not resolve a .claude directory.")
            return 1
        print(home)
        return None

    return asyncio.run(_send(entry, args.message, session_config))


if __name__ == "__main__":
    main()
