from enum import Enum


class ConversationStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    HANDED_OFF = "handed-off"
    EXPIRED = "expired"


VALID_TRANSITIONS = {
    ConversationStatus.ACTIVE: [
        ConversationStatus.HANDED_OFF,
        ConversationStatus.EXPIRED,
        ConversationStatus.COMPLETED,
    ],
    ConversationStatus.COMPLETED: [],
    ConversationStatus.HANDED_OFF: [],
    ConversationStatus.EXPIRED: [],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_status: ConversationStatus, to_status: ConversationStatus):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Invalid transition: {from_status.value} -> {to_status.value}")


def can_transition(from_status: ConversationStatus, to_status: ConversationStatus) -> bool:
    """Check if transition is valid."""
    allowed = VALID_TRANSITIONS.get(from_status, [])
    return to_status in allowed


def transition(from_status: ConversationStatus, to_status: ConversationStatus) -> ConversationStatus:
    """Perform status transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_status, to_status):
        raise InvalidTransitionError(from_status, to_status)
    return to_status


def hand_off(current: ConversationStatus) -> ConversationStatus:
    """Bot gives the conversation to a human operator."""
    return transition(current, ConversationStatus.HANDED_OFF)


def expire(current: ConversationStatus) -> ConversationStatus:
    """Active conversation outlived the bot's timeout."""
    return transition(current, ConversationStatus.EXPIRED)


def complete(current: ConversationStatus) -> ConversationStatus:
    """Operator closes the conversation."""
    return transition(current, ConversationStatus.COMPLETED)
