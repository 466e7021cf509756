"""
Order submission for the copy trader.

- Dry-run mode for safe testing
- Live CLOB submission via py_clob_client
- Optional cancel-all on shutdown
"""

from polycopy.execution.gateway import (
    OrderSubmissionGateway,
    DryRunGateway,
    ClobOrderGateway,
    SubmissionResult,
    SubmissionError,
    create_gateway,
)

__all__ = [
    "OrderSubmissionGateway",
    "DryRunGateway",
    "ClobOrderGateway",
    "SubmissionResult",
    "SubmissionError",
    "create_gateway",
]
