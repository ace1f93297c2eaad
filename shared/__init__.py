"""
Shared Kernel

Base classes and utilities shared by the reservation engine apps:
value objects, domain events, the exception taxonomy, the unit of work
and the message bus used to publish events after commit.
"""
