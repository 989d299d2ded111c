import logging
import sys


class NamespaceFilter(logging.Filter):
    def __init__(self, allowed_namespaces=None):
        super().__init__()
        self.allowed_namespaces = allowed_namespaces if allowed_namespaces is not None else []

    def filter(self, record):
        if not self.allowed_namespaces:
            return True  # If no namespaces are specified, allow all records
        # Allow record if its name starts with any of the allowed namespaces
        return any(record.name.startswith(ns) for ns in self.allowed_namespaces)


log_formatter = logging.Formatter(
    fmt="%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

app_logger = logging.getLogger("backoffice")
app_logger.setLevel(logging.INFO)

console_handler = logging.StreamHandler(sys.stdout)
console_handler.setFormatter(log_formatter)

# --- Namespace-based Filter (Optional) ---
# To only see logs from the order workflow and the application entrypoint:
#
# allowed_log_namespaces = ["backoffice.features.orders", "backoffice.main"]
# console_handler.addFilter(NamespaceFilter(allowed_log_namespaces))
#
# If `allowed_log_namespaces` is empty or None, the filter will allow all logs.
app_logger.addHandler(console_handler)

# Stock and ledger movements are logged at DEBUG by the order workflow
logging.getLogger("backoffice.features.orders").setLevel(logging.DEBUG)

# The change feed logs every published event at DEBUG; keep it quiet by default
logging.getLogger("backoffice.features.changes").setLevel(logging.INFO)

# Modules use logging.getLogger(__name__), so loggers such as
# "backoffice.features.orders.service" inherit the levels set above, or the
# "backoffice" logger's level when nothing more specific is configured.
