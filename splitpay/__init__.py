"""splitpay — payment webhook ingestion and split reconciliation."""

__version__ = "0.1.0"
