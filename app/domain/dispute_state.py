"""Dispute and representment state machines.

Transaction dispute status (``transactions.dispute_status``):
    chargeback_filed → representment_received
    representment_received → closed_lost | awaiting_customer_info | representment_contested
    awaiting_customer_info → evidence_submitted
    evidence_submitted → closed_lost | merchant_won | rebuttal_submitted
    rebuttal_submitted → pre_arbitration_filed

Representment status follows the same path on the representment row, with
``accepted_by_bank`` and ``customer_evidence_rejected`` as its terminal states.
"""

from enum import Enum

from app.core.exceptions import InvalidDisputeStatus


class DisputeStatus(str, Enum):
    """Status of a dispute case and of the transaction it covers."""

    # Intake
    STARTED = "started"
    ELIGIBILITY_CHECKED = "eligibility_checked"
    DOCUMENTS_UPLOADED = "documents_uploaded"

    # Filing outcomes
    CHARGEBACK_FILED = "chargeback_filed"
    UNDER_INVESTIGATION = "under_investigation"
    AWAITING_MERCHANT_REFUND = "awaiting_merchant_refund"
    MANUAL_REVIEW = "manual_review"
    WRITTEN_OFF = "written_off"

    # Representment cycle
    REPRESENTMENT_RECEIVED = "representment_received"
    AWAITING_CUSTOMER_INFO = "awaiting_customer_info"
    EVIDENCE_SUBMITTED = "evidence_submitted"
    REPRESENTMENT_CONTESTED = "representment_contested"
    REBUTTAL_SUBMITTED = "rebuttal_submitted"
    PRE_ARBITRATION_FILED = "pre_arbitration_filed"

    # Final
    CLOSED_WON = "closed_won"
    CLOSED_LOST = "closed_lost"
    MERCHANT_WON = "merchant_won"
    WITHDRAWN = "withdrawn"


class RepresentmentStatus(str, Enum):
    """Status of a merchant representment."""

    NO_REPRESENTMENT = "no_representment"
    REPRESENTMENT_RECEIVED = "representment_received"
    AWAITING_CUSTOMER_INFO = "awaiting_customer_info"
    EVIDENCE_SUBMITTED = "evidence_submitted"
    ACCEPTED_BY_BANK = "accepted_by_bank"
    CUSTOMER_EVIDENCE_REJECTED = "customer_evidence_rejected"
    CONTESTED_BY_BANK = "contested_by_bank"
    REBUTTAL_SUBMITTED = "rebuttal_submitted"
    PREARBITRATION_FILED = "prearbitration_filed"


DISPUTE_TRANSITIONS: dict[str, set[str]] = {
    DisputeStatus.STARTED: {
        DisputeStatus.ELIGIBILITY_CHECKED,
        DisputeStatus.DOCUMENTS_UPLOADED,
        DisputeStatus.WITHDRAWN,
    },
    DisputeStatus.ELIGIBILITY_CHECKED: {
        DisputeStatus.DOCUMENTS_UPLOADED,
        DisputeStatus.WITHDRAWN,
    },
    DisputeStatus.DOCUMENTS_UPLOADED: {
        DisputeStatus.CHARGEBACK_FILED,
        DisputeStatus.UNDER_INVESTIGATION,
        DisputeStatus.AWAITING_MERCHANT_REFUND,
        DisputeStatus.MANUAL_REVIEW,
        DisputeStatus.WRITTEN_OFF,
        DisputeStatus.WITHDRAWN,
    },
    # Waiting and manual review cases are filed again once the hold clears
    DisputeStatus.AWAITING_MERCHANT_REFUND: {
        DisputeStatus.CHARGEBACK_FILED,
        DisputeStatus.UNDER_INVESTIGATION,
        DisputeStatus.AWAITING_MERCHANT_REFUND,
        DisputeStatus.MANUAL_REVIEW,
        DisputeStatus.WRITTEN_OFF,
        DisputeStatus.CLOSED_WON,
        DisputeStatus.WITHDRAWN,
    },
    DisputeStatus.MANUAL_REVIEW: {
        DisputeStatus.CHARGEBACK_FILED,
        DisputeStatus.UNDER_INVESTIGATION,
        DisputeStatus.AWAITING_MERCHANT_REFUND,
        DisputeStatus.MANUAL_REVIEW,
        DisputeStatus.WRITTEN_OFF,
        DisputeStatus.WITHDRAWN,
    },
    DisputeStatus.CHARGEBACK_FILED: {
        DisputeStatus.REPRESENTMENT_RECEIVED,
        DisputeStatus.CLOSED_WON,
    },
    DisputeStatus.UNDER_INVESTIGATION: {
        DisputeStatus.CLOSED_WON,
        DisputeStatus.CLOSED_LOST,
    },
    DisputeStatus.REPRESENTMENT_RECEIVED: {
        DisputeStatus.CLOSED_LOST,
        DisputeStatus.AWAITING_CUSTOMER_INFO,
        DisputeStatus.REPRESENTMENT_CONTESTED,
    },
    DisputeStatus.AWAITING_CUSTOMER_INFO: {DisputeStatus.EVIDENCE_SUBMITTED},
    DisputeStatus.EVIDENCE_SUBMITTED: {
        DisputeStatus.CLOSED_LOST,
        DisputeStatus.MERCHANT_WON,
        DisputeStatus.REBUTTAL_SUBMITTED,
    },
    DisputeStatus.REPRESENTMENT_CONTESTED: {
        DisputeStatus.CLOSED_WON,
        DisputeStatus.CLOSED_LOST,
    },
    DisputeStatus.REBUTTAL_SUBMITTED: {
        DisputeStatus.PRE_ARBITRATION_FILED,
        DisputeStatus.CLOSED_WON,
    },
    DisputeStatus.PRE_ARBITRATION_FILED: {
        DisputeStatus.CLOSED_WON,
        DisputeStatus.CLOSED_LOST,
    },
    DisputeStatus.WRITTEN_OFF: set(),
    DisputeStatus.CLOSED_WON: set(),  # Terminal
    DisputeStatus.CLOSED_LOST: set(),  # Terminal
    DisputeStatus.MERCHANT_WON: set(),  # Terminal
    DisputeStatus.WITHDRAWN: set(),  # Terminal
}

REPRESENTMENT_TRANSITIONS: dict[str, set[str]] = {
    RepresentmentStatus.NO_REPRESENTMENT: {RepresentmentStatus.REPRESENTMENT_RECEIVED},
    RepresentmentStatus.REPRESENTMENT_RECEIVED: {
        RepresentmentStatus.ACCEPTED_BY_BANK,
        RepresentmentStatus.AWAITING_CUSTOMER_INFO,
        RepresentmentStatus.CONTESTED_BY_BANK,
    },
    RepresentmentStatus.AWAITING_CUSTOMER_INFO: {RepresentmentStatus.EVIDENCE_SUBMITTED},
    RepresentmentStatus.EVIDENCE_SUBMITTED: {
        RepresentmentStatus.ACCEPTED_BY_BANK,
        RepresentmentStatus.CUSTOMER_EVIDENCE_REJECTED,
        RepresentmentStatus.REBUTTAL_SUBMITTED,
    },
    RepresentmentStatus.REBUTTAL_SUBMITTED: {RepresentmentStatus.PREARBITRATION_FILED},
    RepresentmentStatus.CONTESTED_BY_BANK: set(),
    RepresentmentStatus.PREARBITRATION_FILED: set(),
    RepresentmentStatus.ACCEPTED_BY_BANK: set(),  # Terminal
    RepresentmentStatus.CUSTOMER_EVIDENCE_REJECTED: set(),  # Terminal
}

# Dispute statuses during which the bank owes the case a decision
NEEDS_ATTENTION_STATUSES = {
    DisputeStatus.REPRESENTMENT_RECEIVED,
    DisputeStatus.AWAITING_CUSTOMER_INFO,
    DisputeStatus.EVIDENCE_SUBMITTED,
}

FILEABLE_STATUSES = {
    DisputeStatus.DOCUMENTS_UPLOADED,
    DisputeStatus.AWAITING_MERCHANT_REFUND,
    DisputeStatus.MANUAL_REVIEW,
}


def _value(status: str | Enum | None) -> str:
    if status is None:
        return "none"
    return status.value if isinstance(status, Enum) else str(status)


def can_transition_dispute(current_status: str | None, new_status: str) -> bool:
    """Check whether a dispute status move is allowed."""
    if current_status is None:
        return False
    return new_status in DISPUTE_TRANSITIONS.get(current_status, set())


def assert_dispute_transition(current_status: str | None, new_status: str) -> None:
    """Validate dispute state transition."""
    if not can_transition_dispute(current_status, new_status):
        raise InvalidDisputeStatus(_value(current_status))


def can_transition_representment(current_status: str | None, new_status: str) -> bool:
    """Check whether a representment status move is allowed."""
    if current_status is None:
        return False
    return new_status in REPRESENTMENT_TRANSITIONS.get(current_status, set())


def assert_representment_transition(current_status: str | None, new_status: str) -> None:
    """Validate representment state transition."""
    if not can_transition_representment(current_status, new_status):
        raise InvalidDisputeStatus(_value(current_status))


def is_terminal(status: str) -> bool:
    """Terminal dispute statuses have no outgoing transitions."""
    return not DISPUTE_TRANSITIONS.get(status, set())
