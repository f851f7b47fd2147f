import argparse
import sys
from urllib.parse import urlsplit

from .config import BackendType, VecmemConfig
from .registry import available_models


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="vecmem: MCP memory server with semantic and fulltext search over Qdrant or PostgreSQL/pgvector"
    )
    parser.add_argument(
        "--backend",
        choices=[b.value for b in BackendType],
        help="Datastore to use (env: VECMEM_BACKEND, default: qdrant)",
    )
    parser.add_argument(
        "--host",
        help="Datastore host (Qdrant host or PostgreSQL host)",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Datastore port (Qdrant HTTP port or PostgreSQL port)",
    )
    parser.add_argument(
        "--database",
        help="PostgreSQL database name",
    )
    parser.add_argument(
        "--collection",
        help="Fixed collection name (if not provided, must be specified per tool call)",
    )
    parser.add_argument(
        "--embedding-model",
        help=f"Embedding model, one of: {', '.join(available_models())}",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> VecmemConfig:
    """Environment configuration with command-line overrides applied."""
    config = VecmemConfig.from_env()
    if args.backend:
        config.backend = args.backend
    if args.host or args.port:
        if config.backend == BackendType.POSTGRES.value:
            config.pg_host = args.host or config.pg_host
            config.pg_port = args.port or config.pg_port
        else:
            current = urlsplit(config.qdrant_url)
            scheme = current.scheme or "http"
            host = args.host or current.hostname or "localhost"
            port = args.port or current.port or 6333
            config.qdrant_url = f"{scheme}://{host}:{port}"
    if args.database:
        config.pg_database = args.database
    if args.collection:
        config.collection_name = args.collection
    if args.embedding_model:
        config.embedding_model = args.embedding_model
    if args.debug:
        config.debug = True
    return config


def main(argv=None) -> int:
    """
    vecmem entry point.

    Builds configuration from the environment plus command-line flags and runs
    the MCP server over stdio.
    """
    args = parse_args(argv)
    config = config_from_args(args)

    from .server import main as run_server

    return run_server(config)


if __name__ == "__main__":
    sys.exit(main())
