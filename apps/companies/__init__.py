"""Companies app package.

Directory records owned by a company: the company itself, its clients
and its billboards. Their lifecycle is managed elsewhere; the
reservation engine only needs scoped existence checks.
"""
