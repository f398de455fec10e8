"""Email address canonicalization used as the roster/group join key."""

from __future__ import annotations

# Gmail ignores dots in the local part, so "jo.hn@gmail.com" and
# "john@gmail.com" reach the same inbox.
DOT_INSENSITIVE_DOMAIN = "@gmail.com"


def canonicalize_email(raw: str) -> str:
    """Return the comparison key for *raw*.

    The whole address is lower-cased.  For Gmail addresses every ``.`` in
    the local part is removed as well.  Anything without an ``@`` is
    treated as an opaque string and only lower-cased.

    Never persist or display the result; it is a lookup key only.
    """
    email = raw.lower()
    if not email.endswith(DOT_INSENSITIVE_DOMAIN):
        return email

    local, _, domain = email.rpartition("@")
    return f"{local.replace('.', '')}@{domain}"
