"""Business logic services for BarberQ."""

# Service modules are imported individually where needed
# to avoid circular imports

__all__ = [
    "catalog",
    "availability",
    "queue",
    "scheduling",
    "alternatives",
    "barber",
    "locking",
    "events",
    "notifications",
    "errors",
]
