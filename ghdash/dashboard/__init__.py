"""Interactive pull request dashboard.

Launch with: python -m ghdash.dashboard [slug ...]
"""
