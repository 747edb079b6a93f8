"""Prometheus metrics for Midnight Lace."""

from prometheus_client import CollectorRegistry, Counter, Gauge

registry = CollectorRegistry()

purchase_counter = Counter(
    "midnight_lace_purchases_total",
    "Purchase workflow outcomes",
    ["outcome"],
    registry=registry,
)
transfer_counter = Counter(
    "midnight_lace_transfers_total",
    "Transfers submitted to the wallet collaborator",
    ["outcome"],
    registry=registry,
)
ledger_accounts = Gauge(
    "midnight_lace_ledger_accounts",
    "Number of fan accounts in the ledger",
    registry=registry,
)
