"""Grant a regional AOBO security group Owner access to Azure subscriptions."""

__version__ = "0.1.0"
