"""Shared HTTP helpers for provider clients."""

import ssl

import certifi

USER_AGENT = "stakewire/0.1"


def create_ssl_context(verify: bool = True) -> ssl.SSLContext:
    """Create SSL context with optional certificate verification.

    Args:
        verify: If True, verify certificates against the certifi bundle.
                If False, disable verification (local test servers only).

    Returns:
        Configured SSL context
    """
    if verify:
        return ssl.create_default_context(cafile=certifi.where())
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx
