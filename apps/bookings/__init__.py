"""Bookings app package.

This app encapsulates the booking domain: a booking binds one billboard
to one client over a time window. The allocator enforces the
no-double-booking rule inside a database transaction, locking the
billboard row where the database supports it, and owns every write to
the booking table, including the bookings materialized from proposals.
"""
