from .code_formatting import CodeFormattingRegistry, CodeFormattingProvider, FormatRequest, FormatResult

__all__ = [
    "CodeFormattingRegistry",
    "CodeFormattingProvider",
    "FormatRequest",
    "FormatResult",
]
