"""FastMCP server exposing the engine's retrieval tools."""

import json

from mcp.server.fastmcp import FastMCP

from docrag.engine import RagEngine
from docrag.errors import ModelUnavailable


def create_mcp_server(engine: RagEngine) -> FastMCP:
    """Create an MCP server for an initialized engine.

    Design: 1 process = 1 corpus. The engine keeps one index and one
    settings store for the folder it was opened on.

    Args:
        engine: Engine to serve

    Returns:
        Configured FastMCP server instance
    """
    mcp = FastMCP(
        name="docrag",
    )

    @mcp.tool()
    def context(query: str) -> str:
        """Retrieve note passages relevant to a question.

        Returns the same context a chat request would receive: passages above
        the similarity threshold, best first. Empty when RAG is disabled or
        nothing relevant was found.

        Args:
            query: Keywords or a natural language question
        """
        result = engine.retrieve([query])
        return result or f"No context found for: {query}"

    @mcp.tool()
    def recall(query: str, limit: int = 10) -> str:
        """Semantic search across the notes, with similarity scores.

        Args:
            query: Natural language description of what you're looking for
            limit: Maximum number of results to return (default: 10); may
                exceed the result count used for chat context

        Returns:
            Ranked list of relevant note chunks with similarity scores
        """
        results = engine.search([query], limit=limit)

        if not results:
            return f"No results found for: {query}"

        lines = []
        for i, hit in enumerate(results, 1):
            # Truncate long text snippets
            text = hit.entry.text[:200].replace("\n", " ")
            if len(hit.entry.text) > 200:
                text += "..."

            lines.append(f"{i}. [{hit.score:.3f}] {hit.entry.document_path}")
            lines.append(f"   {text}")
            lines.append("")

        return "\n".join(lines)

    @mcp.tool()
    def reindex() -> str:
        """Rebuild the index from every note in the folder.

        Returns:
            Success and failure counts, or why the reindex did not run
        """
        try:
            result = engine.process_all_documents()
        except ModelUnavailable as e:
            return f"Error: {e}"
        if result is None:
            return "A reindex is already running"
        summary = f"Processed {result.success} documents, {result.failed} failed."
        if result.pruned:
            summary += f" Removed {len(result.pruned)} deleted documents."
        if result.error:
            summary += f" Stopped early: {result.error}"
        return summary

    @mcp.tool()
    def status() -> str:
        """Show feature flags, indexing status and retrieval settings."""
        return json.dumps(
            {"state": engine.state.to_dict(), "settings": engine.settings.to_dict()},
            indent=2,
        )

    return mcp
