"""Timeline entry — append-only audit record of one lifecycle transition."""
from dataclasses import dataclass
from datetime import datetime


@dataclass
class TimelineEntry:
    id: int                 # BIGSERIAL, ascending with insert order
    order_id: str
    event: str              # TimelineEvent value
    content: str
    operator: str           # OperatorRole value
    created_at: datetime | None = None
