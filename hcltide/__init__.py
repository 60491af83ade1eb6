"""Tree-sitter driven editing support for HCL and Terraform files."""

__version__ = "0.1.0"
