from .tree import ArenaWriter, SyntaxNode, SyntaxTree, TreeBuilder

__all__ = [
    "ArenaWriter",
    "SyntaxNode",
    "SyntaxTree",
    "TreeBuilder",
]
