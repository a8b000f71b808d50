"""CLI entry point for docrag."""

import argparse
import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from docrag.engine import RagEngine
from docrag.errors import RagError
from docrag.protocols import EmbeddingProvider, RerankProvider

logger = logging.getLogger(__name__)

API_KEY_ENV = "DOCRAG_API_KEY"


def build_embedder(args: argparse.Namespace) -> EmbeddingProvider:
    """Create the embedding provider selected on the command line."""
    if args.embedder == "http":
        from docrag.embedders import OpenAIEmbedder

        return OpenAIEmbedder(
            base_url=args.embedding_url,
            model=args.embedding_model,
            api_key=os.environ.get(API_KEY_ENV),
        )

    # Import here to avoid loading torch unless needed
    from docrag.embedders.sentence_transformer import SentenceTransformerEmbedder

    return SentenceTransformerEmbedder(args.embedding_model)


def build_reranker(args: argparse.Namespace) -> Optional[RerankProvider]:
    if not args.rerank_url:
        return None

    from docrag.rerankers import HttpReranker

    return HttpReranker(
        base_url=args.rerank_url,
        model=args.rerank_model,
        api_key=os.environ.get(API_KEY_ENV),
    )


def open_engine(args: argparse.Namespace) -> RagEngine:
    folder = Path(args.folder)
    if not folder.is_dir():
        logger.error(f"Not a folder: {args.folder}")
        sys.exit(1)

    engine = RagEngine.open(folder, build_embedder(args), build_reranker(args))
    engine.initialize()
    return engine


def index(args: argparse.Namespace) -> None:
    """Reindex every note in the folder."""
    engine = open_engine(args)
    if not engine.state.vector_db_enabled:
        engine.set_vector_db_enabled(True)

    logger.info(f"Indexing {args.folder}")
    result = engine.process_all_documents()
    if result is None:
        logger.info("A reindex is already running")
        return

    logger.info("")
    logger.info(f"Indexed {result.success} documents, {result.failed} failed")
    if result.pruned:
        logger.info(f"Removed {len(result.pruned)} deleted documents")
    if result.error:
        logger.error(f"Stopped early: {result.error}")
        sys.exit(1)


def query(args: argparse.Namespace) -> None:
    """Print the context retrieved for some query terms."""
    engine = open_engine(args)
    if not engine.state.rag_enabled:
        logger.error("RAG is disabled. Enable it with: docrag enable <folder> --feature rag")
        sys.exit(1)

    context = engine.retrieve(args.terms)
    if not context:
        logger.info("No relevant context found")
        return
    print(context)


def status(args: argparse.Namespace) -> None:
    """Show engine state and settings."""
    engine = open_engine(args)
    state = engine.state
    settings = engine.settings

    last = "never"
    if state.last_process_time is not None:
        last = datetime.fromtimestamp(state.last_process_time / 1000).isoformat(timespec="seconds")

    print(f"Corpus: {Path(args.folder).absolute()}")
    print(f"")
    print(f"State:")
    print(f"  Vector database: {'enabled' if state.vector_db_enabled else 'disabled'}")
    print(f"  RAG: {'enabled' if state.rag_enabled else 'disabled'}")
    print(f"  Rerank model: {'available' if state.has_rerank_model else 'none'}")
    print(f"  Documents indexed: {state.document_count}")
    print(f"  Last full index: {last}")
    print(f"")
    print(f"Settings:")
    for key, value in settings.to_dict().items():
        print(f"  {key}: {value}")


def toggle(args: argparse.Namespace, enabled: bool) -> None:
    engine = open_engine(args)
    if args.feature == "rag":
        state = engine.set_rag_enabled(enabled)
    else:
        state = engine.set_vector_db_enabled(enabled)
    print(json.dumps(state.to_dict(), indent=2))


def configure(args: argparse.Namespace) -> None:
    """Change chunking and retrieval settings."""
    engine = open_engine(args)
    changes = {
        key: value
        for key, value in {
            "chunk_size": args.chunk_size,
            "chunk_overlap": args.chunk_overlap,
            "result_count": args.result_count,
            "similarity_threshold": args.threshold,
        }.items()
        if value is not None
    }
    settings = engine.update_settings(**changes) if changes else engine.settings
    print(json.dumps(settings.to_dict(), indent=2))
    if {"chunk_size", "chunk_overlap"} & changes.keys():
        logger.info("Chunking changed: run 'docrag index' to rechunk existing notes")


def serve(args: argparse.Namespace) -> None:
    """Start MCP server for a notes folder."""
    # Import here to avoid loading MCP unless needed
    from typing import Literal, cast

    from docrag.server import create_mcp_server

    engine = open_engine(args)
    logger.info(f"Serving {args.folder} via {args.transport}")
    mcp = create_mcp_server(engine)
    mcp.run(transport=cast(Literal["stdio", "sse", "streamable-http"], args.transport))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docrag",
        description="docrag - semantic index and retrieval for a folder of notes",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    providers = argparse.ArgumentParser(add_help=False)
    providers.add_argument("folder", help="Notes folder")
    providers.add_argument(
        "--embedder",
        choices=["local", "http"],
        default="local",
        help="Embedding provider (default: local sentence-transformers)",
    )
    providers.add_argument("--embedding-url", help="Base URL of an OpenAI-compatible API")
    providers.add_argument("--embedding-model", help="Embedding model name")
    providers.add_argument("--rerank-url", help="Base URL of a /rerank API")
    providers.add_argument("--rerank-model", help="Rerank model name")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "index",
        parents=[providers],
        help="Reindex every note in the folder",
    )

    query_parser = subparsers.add_parser(
        "query",
        parents=[providers],
        help="Print the context retrieved for query terms",
    )
    query_parser.add_argument("terms", nargs="+", help="Query keywords")

    subparsers.add_parser(
        "status",
        parents=[providers],
        help="Show engine state and settings",
    )

    for name in ("enable", "disable"):
        toggle_parser = subparsers.add_parser(
            name,
            parents=[providers],
            help=f"{name.capitalize()} the vector database or RAG",
        )
        toggle_parser.add_argument(
            "--feature",
            choices=["vector", "rag"],
            default="rag",
            help="Feature to toggle (default: rag)",
        )

    config_parser = subparsers.add_parser(
        "config",
        parents=[providers],
        help="Change chunking and retrieval settings",
    )
    config_parser.add_argument("--chunk-size", type=int)
    config_parser.add_argument("--chunk-overlap", type=int)
    config_parser.add_argument("--result-count", type=int)
    config_parser.add_argument("--threshold", type=float, help="Similarity threshold in [0, 1]")

    serve_parser = subparsers.add_parser(
        "serve",
        parents=[providers],
        help="Start MCP server for a notes folder",
    )
    serve_parser.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )

    try:
        if args.command == "index":
            index(args)
        elif args.command == "query":
            query(args)
        elif args.command == "status":
            status(args)
        elif args.command == "enable":
            toggle(args, True)
        elif args.command == "disable":
            toggle(args, False)
        elif args.command == "config":
            configure(args)
        elif args.command == "serve":
            serve(args)
    except RagError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
