"""depaudit - dependency extraction and vulnerability aggregation."""

__version__ = "0.1.0"

from depaudit.engine.scan import scan_path  # noqa: E402
from depaudit.models import ScanOptions, ScanResult  # noqa: E402

__all__ = ["__version__", "scan_path", "ScanOptions", "ScanResult"]
