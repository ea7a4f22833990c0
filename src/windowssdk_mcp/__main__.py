"""Entry point for windowssdk-mcp server."""

import argparse
import asyncio
import logging
import os
import sys

from .server import REMOTE_HOST_ENV, create_server
from .utils.project import configure_project_root, find_dotnet_project_root


def configure_logging() -> None:
    """Configure logging based on environment."""
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Windows SDK MCP Server - build, publish and test .NET projects via MCP"
    )
    parser.add_argument(
        "--project",
        type=str,
        default=None,
        help="Project root path. Relative paths in tool arguments resolve against it.",
    )
    parser.add_argument(
        "--project-from-cwd",
        action="store_true",
        default=False,
        help="Auto-detect the project root from the current working directory. "
        "Searches upward for .sln, .csproj/.vbproj/.fsproj, or .git markers. "
        "Cannot be used with --project.",
    )
    parser.add_argument(
        "--remote-host",
        type=str,
        default=None,
        help=f"Run tools on this Windows host over ssh (default: ${REMOTE_HOST_ENV}).",
    )
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    configure_logging()
    logger = logging.getLogger(__name__)

    args = parse_args(argv)

    if args.project_from_cwd:
        if args.project is not None:
            logger.error("--project-from-cwd cannot be used with --project")
            sys.exit(1)
        project_path = str(find_dotnet_project_root())
        logger.info(f"Auto-detected project root: {project_path}")
    else:
        project_path = args.project or os.getcwd()

    configure_project_root(
        use_project_from_cwd=args.project_from_cwd,
        explicit_project_path=args.project,
        startup_cwd=os.getcwd(),
    )

    logger.info(f"Starting Windows SDK MCP Server (project: {project_path})...")
    mcp = create_server(project_path, remote_host=args.remote_host)

    try:
        await mcp.run_stdio_async()
    except Exception:
        logger.exception("Server error")
        raise
    finally:
        logger.info("Server stopped")


def run() -> None:
    """Run the server."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
