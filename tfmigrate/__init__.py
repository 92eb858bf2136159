"""Migration history tracking for Terraform state migrations."""

__version__ = "0.2.7"