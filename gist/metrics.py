from prometheus_client import Counter, Gauge, Histogram

REQS = Counter("gist_requests_total", "Total requests", ["path", "method", "status"])
LAT = Histogram("gist_request_latency_seconds", "Latency", ["path", "method"])
TRANSITIONS = Counter("gist_transitions_total", "State transitions by outcome", ["outcome"])
ROOTS = Gauge("gist_root_history_length", "Committed gist roots")
