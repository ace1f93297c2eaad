"""Proposals app package.

A proposal ("proposta interna") bundles several billboards under one
period for one client. Creating a proposal materializes one booking per
billboard; the bookings carry the proposal code instead of a foreign
key, and a periodic reconciliation job repairs any drift between a
proposal and its bookings.
"""
