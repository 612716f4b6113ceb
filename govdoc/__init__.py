"""Government document verification & issuance decision pipeline."""

__version__ = "1.0.0"
