"""Core domain package for feedmailer.

Core contains feed parsing, keyword matching, and notification dedup logic
without any HTTP, SMTP, or storage-specific code, keeping the business logic
portable.
"""
