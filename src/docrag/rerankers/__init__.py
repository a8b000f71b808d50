"""Reranking providers."""

from docrag.rerankers.http_reranker import HttpReranker

__all__ = ["HttpReranker"]
