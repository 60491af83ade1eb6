from .definition_names import resolve_name
from .document_outline_service import OutlineSymbol, build_document_outline, group_outline
from .indent_rules import IndentRule, NodeMatch, RuleMatcher

__all__ = [
    "IndentRule",
    "NodeMatch",
    "OutlineSymbol",
    "RuleMatcher",
    "build_document_outline",
    "group_outline",
    "resolve_name",
]
