"""
Order State Machine for validating order status transitions and maintaining consistency.

This module implements a finite state machine to ensure valid order status transitions
and provide audit logging for all status changes.

Lifecycle:
    PENDING -> APPROVED -> PROCESSING -> SHIPPED -> DELIVERED
    any non-final status -> CANCELLED

Forward moves may skip steps (PENDING -> SHIPPED is accepted), backward moves
are rejected, DELIVERED and CANCELLED are final.
"""

import logging
from typing import Dict, List, Optional

from enums.order_status import OrderStatus
from exceptions.order import InvalidOrderStateException, InvalidStatusTransitionException

logger = logging.getLogger(__name__)


class OrderStatusTransition:
    """Represents a documented status transition"""

    def __init__(self, from_status: OrderStatus, to_status: OrderStatus, description: str = ""):
        self.from_status = from_status
        self.to_status = to_status
        self.description = description

    def __repr__(self):
        return f"{self.from_status.value} -> {self.to_status.value}"


class OrderStateMachine:
    """
    Finite state machine for order status transitions with validation and audit logging.

    Every status change is performed by an admin (see OrderService.update_status).
    """

    # Position in the fulfilment pipeline; CANCELLED is outside the pipeline
    FORWARD_SEQUENCE: List[OrderStatus] = [
        OrderStatus.PENDING,
        OrderStatus.APPROVED,
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
    ]

    FINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

    # The regular one-step path, used for audit descriptions
    DOCUMENTED_TRANSITIONS: List[OrderStatusTransition] = [
        OrderStatusTransition(OrderStatus.PENDING, OrderStatus.APPROVED, "Order approved by admin"),
        OrderStatusTransition(OrderStatus.APPROVED, OrderStatus.PROCESSING, "Order is being prepared"),
        OrderStatusTransition(OrderStatus.PROCESSING, OrderStatus.SHIPPED, "Order handed over to carrier"),
        OrderStatusTransition(OrderStatus.SHIPPED, OrderStatus.DELIVERED, "Order delivered to customer"),
    ]

    _transition_descriptions: Dict[tuple, str] = {
        (t.from_status, t.to_status): t.description for t in DOCUMENTED_TRANSITIONS
    }

    @classmethod
    def rank(cls, status: OrderStatus) -> int:
        """Pipeline position of a status. CANCELLED has no rank and returns -1."""
        if status in cls.FORWARD_SEQUENCE:
            return cls.FORWARD_SEQUENCE.index(status)
        return -1

    @classmethod
    def is_final_status(cls, status: OrderStatus) -> bool:
        return status in cls.FINAL_STATUSES

    @classmethod
    def is_valid_transition(cls, from_status: OrderStatus, to_status: OrderStatus) -> bool:
        """
        Check if a status transition is valid according to the state machine.

        Args:
            from_status: Current order status
            to_status: Desired new status

        Returns:
            True if transition is valid, False otherwise
        """
        if cls.is_final_status(from_status):
            return False

        # Allow staying in same status (no-op)
        if from_status == to_status:
            return True

        if to_status == OrderStatus.CANCELLED:
            return True

        return cls.rank(to_status) > cls.rank(from_status)

    @classmethod
    def get_valid_transitions(cls, from_status: OrderStatus) -> List[OrderStatus]:
        return [status for status in OrderStatus
                if status != from_status and cls.is_valid_transition(from_status, status)]

    @classmethod
    def get_transition_description(cls, from_status: OrderStatus, to_status: OrderStatus) -> str:
        if to_status == OrderStatus.CANCELLED:
            return "Order cancelled, stock restored"
        return cls._transition_descriptions.get(
            (from_status, to_status),
            f"Transition from {from_status.value} to {to_status.value}"
        )

    @classmethod
    def validate_transition(cls, order_id: int, from_status: OrderStatus, to_status: OrderStatus) -> None:
        """
        Raise if the transition is not allowed.

        Raises:
            InvalidOrderStateException: current status is final
            InvalidStatusTransitionException: backward move that is not a cancellation
        """
        if cls.is_final_status(from_status):
            logger.warning(f"Rejected status change for order {order_id}: {from_status.value} is final")
            raise InvalidOrderStateException(order_id, from_status.value)

        if not cls.is_valid_transition(from_status, to_status):
            logger.warning(f"Invalid status transition for order {order_id}: "
                           f"{from_status.value} -> {to_status.value}")
            raise InvalidStatusTransitionException(order_id, from_status.value, to_status.value)

    @classmethod
    def log_transition(cls, order_id: int, from_status: OrderStatus, to_status: OrderStatus,
                       admin_id: Optional[int] = None) -> None:
        """Write the audit log entry for an applied transition."""
        transition_desc = cls.get_transition_description(from_status, to_status)
        performer = f"admin {admin_id}" if admin_id is not None else "system"
        logger.info(f"ORDER_STATUS_TRANSITION: Order {order_id} {from_status.value} -> {to_status.value} "
                    f"by {performer}: {transition_desc}")
