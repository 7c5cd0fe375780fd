"""Business ID generation.

IDs are prefixed, URL-safe strings so a bare id in a log line or an API
payload tells you what it refers to: txn_..., bet_..., mkt_..., opt_...
"""

import uuid


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"
