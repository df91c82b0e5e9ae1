"""Source indexer: directory walking, PHP tokenization, symbol extraction."""

from __future__ import annotations

from classmap.indexer.builder import ClassMap, MappingBuilder
from classmap.indexer.classifier import is_static_file
from classmap.indexer.extractor import FileSymbols, SymbolExtractor
from classmap.indexer.tokenizer import Token, tokenize
from classmap.indexer.walker import TreeWalker

__all__ = [
    "ClassMap",
    "FileSymbols",
    "MappingBuilder",
    "SymbolExtractor",
    "Token",
    "TreeWalker",
    "is_static_file",
    "tokenize",
]
