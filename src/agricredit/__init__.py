"""AgriCredit backend: farming activity verification and credit scoring."""

__version__ = "1.0.0"
