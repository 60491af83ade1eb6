from .terraform_format_provider import (
    TERRAFORM_FORMAT_EXTENSIONS,
    TERRAFORM_FORMAT_LANGUAGE_IDS,
    TerraformFormatProvider,
)

__all__ = [
    "TERRAFORM_FORMAT_EXTENSIONS",
    "TERRAFORM_FORMAT_LANGUAGE_IDS",
    "TerraformFormatProvider",
]
