"""Bi-week calendar app package.

Every company works with a fixed calendar of 26 fourteen-day slots per
year ("bi-weeks"). This app generates those slots and turns raw period
input (slot ids or a date range) into the canonical ``Period`` stored on
bookings and proposals.
"""
