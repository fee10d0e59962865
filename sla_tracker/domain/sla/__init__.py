from sla_tracker.domain.sla.classify import (
    band,
    classify_breach_severity,
    classify_sla,
    classify_stage_crossing,
    next_deadline_stage,
)
from sla_tracker.domain.sla.engine import Classification, classify_order, classify_timeline, stage_analysis
from sla_tracker.domain.sla.enums import (
    ALL_STAGES,
    CROSSING_STAGES,
    BreachSeverity,
    PendingStatus,
    SlaStatus,
    Stage,
)
from sla_tracker.domain.sla.pending import PendingResult, detect_pending
from sla_tracker.domain.sla.stage import resolve_stage
from sla_tracker.domain.sla.tat import elapsed_hours, elapsed_minutes, format_tat, parse_tat_minutes
from sla_tracker.domain.sla.types import OrderTimeline, TatPolicy

__all__ = [
    "ALL_STAGES",
    "CROSSING_STAGES",
    "BreachSeverity",
    "Classification",
    "OrderTimeline",
    "PendingResult",
    "PendingStatus",
    "SlaStatus",
    "Stage",
    "TatPolicy",
    "band",
    "classify_breach_severity",
    "classify_order",
    "classify_sla",
    "classify_stage_crossing",
    "classify_timeline",
    "detect_pending",
    "elapsed_hours",
    "elapsed_minutes",
    "format_tat",
    "next_deadline_stage",
    "parse_tat_minutes",
    "resolve_stage",
    "stage_analysis",
]
