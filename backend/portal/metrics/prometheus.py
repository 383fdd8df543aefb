from prometheus_client import Counter, Histogram

api_request_latency_seconds = Histogram(
    "api_request_latency_seconds",
    "API request latency in seconds",
    ["route", "method", "status"],
)

store_request_latency_seconds = Histogram(
    "store_request_latency_seconds",
    "Latency of calls to the remote report service",
    ["operation"],
)

status_transitions_total = Counter(
    "status_transitions_total",
    "Accepted report status transitions",
    ["from_status", "to_status"],
)

reports_exported_total = Counter(
    "reports_exported_total",
    "CSV exports produced",
)

report_rows_exported_total = Counter(
    "report_rows_exported_total",
    "Report rows written to CSV exports",
)

role_resolution_fallback_total = Counter(
    "role_resolution_fallback_total",
    "Role lookups that failed closed to the least-privileged role",
    ["reason"],
)
