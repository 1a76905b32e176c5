"""Core domain package for teleguard.

Core contains word filters, topic ordering, the oracle verdict contract and
the batch moderation pipeline without any Telegram, HTTP or storage-specific
code, keeping the business logic portable.
"""
