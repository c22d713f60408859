from prometheus_client import Counter, Histogram, make_asgi_app

# 低基数标签：使用路由模板（如 /oss/bucket/{bucket}），避免桶名/对象名导致高基数
REQUESTS = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "route", "status"],
)

LATENCY = Histogram(
    "http_request_duration_seconds",
    "Request latency in seconds",
    ["method", "route"],
)

STORAGE_OPERATIONS = Counter(
    "oss_storage_operations_total",
    "Object storage SDK calls",
    ["operation", "outcome"],
)

STORAGE_LATENCY = Histogram(
    "oss_storage_operation_duration_seconds",
    "Object storage SDK call latency in seconds",
    ["operation"],
)

# /metrics 端点 ASGI 应用
metrics_app = make_asgi_app()
