"""Message delivery-status transitions.

Expected path: sent -> delivered -> read, with failed as terminal.
Status webhooks carry no reliable sequence number across providers, so the
only ordering available is the status rank itself. With enforce_order the
store refuses to move a message backwards (e.g. read -> sent when webhooks
arrive out of order). Without it every update overwrites, which regresses
state on out-of-order delivery.
"""

from inboxly.whatsapp.models import StatusUpdate

from .ports import Stores

STATUS_RANK: dict[str, int] = {
    "sent": 1,
    "delivered": 2,
    "read": 3,
    "failed": 4,
}


def is_forward(current: str | None, new: str) -> bool:
    """Return True if moving from current to new advances the status."""
    if current is None:
        return True
    return STATUS_RANK.get(new, 0) > STATUS_RANK.get(current, 0)


def apply(stores: Stores, event: StatusUpdate, *, enforce_order: bool = True) -> bool:
    """Apply a status update to the stored message.

    Returns:
        True if a row changed. False if the message is unknown or the
        update would move status backwards under enforce_order.
    """
    return stores.messages.update_status(
        event.provider_message_id,
        event.new_status,
        enforce_order=enforce_order,
    )
