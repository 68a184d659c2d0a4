#!/usr/bin/env python3
"""
Hazard MCP Server - Entry Point

Starts the MCP server for hazard map sampling and DEM tile elevation
lookup over stdio (for Claude Desktop) or HTTP (for API access).
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .constants import EnvVar, ServerConfig, SessionProvider, StorageProvider

# Load environment variables from .env file
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8004


def _resolve_provider() -> str | None:
    """Pick the storage provider, or None when the configured one cannot start."""
    provider = os.environ.get(EnvVar.ARTIFACTS_PROVIDER, StorageProvider.MEMORY)

    if provider == StorageProvider.S3:
        required = {
            EnvVar.BUCKET_NAME: os.environ.get(EnvVar.BUCKET_NAME),
            EnvVar.AWS_ACCESS_KEY_ID: os.environ.get(EnvVar.AWS_ACCESS_KEY_ID),
            EnvVar.AWS_SECRET_ACCESS_KEY: os.environ.get(EnvVar.AWS_SECRET_ACCESS_KEY),
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            logger.warning(f"S3 provider configured but missing: {', '.join(missing)}")
            return None
        logger.info(
            f"Artifact store: S3 bucket {required[EnvVar.BUCKET_NAME]} "
            f"(endpoint {os.environ.get(EnvVar.AWS_ENDPOINT_URL_S3)})"
        )

    elif provider == StorageProvider.FILESYSTEM:
        artifacts_path = os.environ.get(EnvVar.ARTIFACTS_PATH)
        if not artifacts_path:
            logger.warning(
                f"Filesystem provider configured but {EnvVar.ARTIFACTS_PATH} not set. "
                "Falling back to memory provider."
            )
            return StorageProvider.MEMORY
        Path(artifacts_path).mkdir(parents=True, exist_ok=True)
        logger.info(f"Artifact store: filesystem at {artifacts_path}")

    return provider


def _init_artifact_store() -> bool:
    """
    Initialize the artifact store used for GeoJSON grid artifacts.

    Returns:
        True if artifact store was initialized, False otherwise
    """
    provider = _resolve_provider()
    if provider is None:
        return False

    redis_url = os.environ.get(EnvVar.REDIS_URL)
    store_kwargs: dict[str, Any] = {
        "storage_provider": provider,
        "session_provider": SessionProvider.REDIS if redis_url else SessionProvider.MEMORY,
    }
    if provider == StorageProvider.S3:
        store_kwargs["bucket"] = os.environ.get(EnvVar.BUCKET_NAME)
    elif provider == StorageProvider.FILESYSTEM:
        store_kwargs["bucket"] = os.environ.get(EnvVar.ARTIFACTS_PATH)

    try:
        from chuk_artifacts import ArtifactStore
        from chuk_mcp_server import set_global_artifact_store

        set_global_artifact_store(ArtifactStore(**store_kwargs))
        logger.info(f"Artifact store initialized (provider: {provider})")
        return True

    except Exception as e:
        logger.error(f"Failed to initialize artifact store: {e}")
        return False


# Import mcp instance and all registered tools from async server
from .async_server import mcp  # noqa: F401, E402


def _use_stdio(mode: str | None) -> bool:
    if mode is not None:
        return mode == "stdio"
    return bool(os.environ.get(EnvVar.MCP_STDIO)) or not sys.stdin.isatty()


def main() -> None:
    """Main entry point for the MCP server."""
    import argparse

    parser = argparse.ArgumentParser(description=ServerConfig.DESCRIPTION)
    parser.add_argument(
        "mode",
        nargs="?",
        choices=["stdio", "http"],
        default=None,
        help="Transport mode (auto-detected when omitted)",
    )
    parser.add_argument("--host", default=DEFAULT_HOST, help=f"HTTP host (default: {DEFAULT_HOST})")
    parser.add_argument(
        "--port", type=int, default=DEFAULT_PORT, help=f"HTTP port (default: {DEFAULT_PORT})"
    )
    args = parser.parse_args()

    # Initialize artifact store at startup, not at import time
    _init_artifact_store()

    if _use_stdio(args.mode):
        print(f"{ServerConfig.NAME} starting in STDIO mode", file=sys.stderr)
        mcp.run(stdio=True)
    else:
        print(
            f"{ServerConfig.NAME} starting in HTTP mode on {args.host}:{args.port}",
            file=sys.stderr,
        )
        mcp.run(host=args.host, port=args.port, stdio=False)


if __name__ == "__main__":
    main()
