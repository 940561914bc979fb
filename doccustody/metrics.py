from prometheus_client import Counter

CUSTODY_OPERATIONS = Counter(
    "custody_operations_total",
    "Custody operations by outcome",
    ["operation", "outcome"],
)
