from enum import Enum


class OrderStatus(Enum):
    PENDING = "PENDING"        # Created at checkout, awaiting admin approval
    APPROVED = "APPROVED"      # Accepted by admin
    PROCESSING = "PROCESSING"  # Being picked and packed
    SHIPPED = "SHIPPED"        # Handed over to the carrier
    DELIVERED = "DELIVERED"    # Final: received by the customer
    CANCELLED = "CANCELLED"    # Final: stock returned to the catalog
