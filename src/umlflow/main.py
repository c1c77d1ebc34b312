"""Command-line driver for the UML specification workflow."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
import sys

from umlflow import __version__
from umlflow.config.env import load_environment, validate_keys
from umlflow.config.settings import WorkflowSettings, load_settings
from umlflow.engine import CancellationToken
from umlflow.errors import ToolInvocationFailure
from umlflow.models.registry import Provider, resolve_provider
from umlflow.reference import build_dry_run_workflow, build_uml_workflow
from umlflow.reference.uml_specification import UMLWorkflow, aexecute
from umlflow.tools import MCPToolProvider
from umlflow.utilities.logger_manager import LoggerConfig, LoggerManager

EXIT_CONVERGED = 0
EXIT_FAILURE = 1
EXIT_NOT_CONVERGED = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="umlflow",
        description="Design, review and materialize a UML model from requirements.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--version",
        "-V",
        action="version",
        version=__version__,
        help="Show the version and exit.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a YAML settings file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run", help="Run the UML specification workflow for one requirement."
    )
    run_parser.add_argument(
        "requirement",
        nargs="?",
        default=None,
        help="Business requirement text.",
    )
    run_parser.add_argument(
        "--requirement-file",
        type=str,
        default=None,
        help="Read the business requirement from this file.",
    )
    run_parser.add_argument("--max-iterations", type=int, default=None)
    run_parser.add_argument("--threshold", type=float, default=None)
    run_parser.add_argument("--mcp-url", type=str, default=None)
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Use scripted models and in-process tools instead of real services.",
    )
    run_parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Write the outcome as JSON to this file.",
    )

    tools_parser = subparsers.add_parser(
        "tools", help="List the tools offered by the MCP endpoint."
    )
    tools_parser.add_argument("--mcp-url", type=str, default=None)
    return parser.parse_args(argv)


def _read_requirement(args: argparse.Namespace) -> str | None:
    if args.requirement_file:
        return Path(args.requirement_file).read_text(encoding="utf-8").strip()
    if args.requirement:
        return str(args.requirement).strip()
    return None


def _providers_needing_keys(settings: WorkflowSettings) -> list[str]:
    providers = {
        resolve_provider(name)
        for name in (
            settings.designer_model,
            settings.critic_model,
            settings.scorer_model,
        )
    }
    return sorted(
        provider.value for provider in providers if provider is not Provider.SCRIPTED
    )


def _build_logger_manager(settings: WorkflowSettings) -> LoggerManager:
    logging_settings = settings.logging
    log_dir = logging_settings.log_dir
    return LoggerManager(
        "umlflow",
        LoggerConfig(
            log_dir=Path(log_dir) if log_dir else None,
            log_level=logging_settings.log_level,
            log_file_name=logging_settings.log_file_name,
            structured_logging=logging_settings.structured_logging,
        ),
    )


async def _run(
    requirement: str,
    workflow: UMLWorkflow,
    out: str | None,
) -> int:
    cancellation = CancellationToken()
    with cancellation.watch_sigint():
        outcome = await aexecute(
            requirement, workflow=workflow, cancellation=cancellation
        )
    print(outcome.text)
    print(outcome.message, file=sys.stderr)
    if out:
        out_path = Path(out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(
            json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
    if outcome.failure is not None:
        return EXIT_FAILURE
    return EXIT_CONVERGED if outcome.success else EXIT_NOT_CONVERGED


def _command_run(args: argparse.Namespace, settings: WorkflowSettings) -> int:
    requirement = _read_requirement(args)
    if not requirement:
        print("A requirement text or --requirement-file is required.", file=sys.stderr)
        return EXIT_FAILURE
    try:
        settings = settings.with_overrides(
            max_iterations=args.max_iterations,
            score_threshold=args.threshold,
            mcp_url=args.mcp_url,
        )
    except ValueError as exc:
        print(f"Invalid option: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    if not args.dry_run:
        try:
            validate_keys(_providers_needing_keys(settings))
        except (RuntimeError, ValueError) as exc:
            print(f"API key validation failed: {exc}", file=sys.stderr)
            return EXIT_FAILURE
    logger_manager = _build_logger_manager(settings)
    if args.dry_run:
        workflow = build_dry_run_workflow(settings, logger_manager=logger_manager)
    else:
        workflow = build_uml_workflow(settings, logger_manager=logger_manager)
    try:
        return asyncio.run(_run(requirement, workflow, args.out))
    finally:
        close = getattr(workflow.tool_provider, "close", None)
        if callable(close):
            close()
        logger_manager.close()


def _command_tools(args: argparse.Namespace, settings: WorkflowSettings) -> int:
    provider = MCPToolProvider(
        args.mcp_url or settings.mcp_url,
        client_key=settings.mcp_client_key,
        timeout=settings.mcp_timeout,
    )
    try:
        tools = provider.list_tools()
    except ToolInvocationFailure as exc:
        print(f"Could not list tools: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    finally:
        provider.close()
    for tool in tools:
        print(f"{tool.name}: {tool.description}" if tool.description else tool.name)
    return EXIT_CONVERGED


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return its exit code."""
    args = parse_args(argv)
    load_environment()
    try:
        settings = load_settings(args.config)
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    if args.command == "tools":
        return _command_tools(args, settings)
    return _command_run(args, settings)


def cli() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
