"""Waitlist promotion policy.

FIFO with head-of-line skip: a head entry that needs more seats than are free
is rotated to the tail so smaller requests behind it can be confirmed. A large
request can therefore be skipped indefinitely by smaller ones.
"""

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from admissions.domain.models import WaitlistSlot


@dataclass(frozen=True)
class PromotionPlan:
    promoted: tuple[WaitlistSlot, ...]
    remaining: tuple[WaitlistSlot, ...]
    capacity: int

    @property
    def changed(self) -> bool:
        # a pass that promotes nobody stops after a full rotation, back in the original order
        return bool(self.promoted)


def plan_promotions(capacity: int, waitlist: Iterable[WaitlistSlot]) -> PromotionPlan:
    """Decide which waitlisted registrations fit into `capacity`, in queue order.

    Terminates after one full rotation that confirms nobody.
    """
    if capacity < 0:
        raise ValueError("Capacity cannot be negative")

    queue = deque(waitlist)
    promoted: list[WaitlistSlot] = []
    skipped = 0

    while capacity > 0 and queue:
        head = queue[0]
        if head.quantity > capacity:
            queue.rotate(-1)
            skipped += 1
            if skipped >= len(queue):
                break
            continue
        queue.popleft()
        skipped = 0
        capacity -= head.quantity
        promoted.append(head)

    return PromotionPlan(
        promoted=tuple(promoted),
        remaining=tuple(queue),
        capacity=capacity,
    )
