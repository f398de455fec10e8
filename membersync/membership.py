"""Membership sign-up: validate the form, take payment, record the member."""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

from .models import MemberRecord
from .paypal_client import PayPalClient, order_amount
from .roster import get_display_name
from .sheets_client import MissingColumnError

log = logging.getLogger(__name__)


class SignupError(Exception):
    """A sign-up failure with the HTTP status to report."""

    def __init__(self, message: str, status: int = 500) -> None:
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class MembershipType:
    amount: int
    months: int


MEMBERSHIP_TYPES = {
    "student": MembershipType(amount=20, months=12),
    "regular": MembershipType(amount=30, months=12),
    "family": MembershipType(amount=40, months=12),
    "summer": MembershipType(amount=10, months=4),
}


def resolve_membership_type(key) -> MembershipType | None:
    """Look up a membership type, also accepting legacy keys like ``student-20$``."""
    if not isinstance(key, str):
        return None
    return MEMBERSHIP_TYPES.get(key.split("-", 1)[0].strip().lower())


def validate_signup(form: dict) -> MembershipType:
    """Check the submitted form and return its membership type.

    Raises SignupError(400) when the order id, membership type or email is
    missing or invalid.
    """
    if not isinstance(form.get("orderID"), str) or not form["orderID"]:
        raise SignupError("No orderID contained in request.", 400)

    membership = resolve_membership_type(form.get("membership_type"))
    if membership is None:
        raise SignupError("No valid membership_type contained in request.", 400)

    email = form.get("email")
    if not isinstance(email, str) or "@" not in email:
        raise SignupError("No valid email contained in request.", 400)

    return membership


def add_months(moment: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the end of the target month."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def build_roster_row(form: dict, membership: MembershipType, now: datetime) -> dict:
    """Roster row for a new member: the form fields plus bookkeeping columns.

    ``creationTime`` and ``expiry`` are seconds since the epoch.
    """
    row = {key: value for key, value in form.items()}
    row["email"] = row["email"].strip()
    row["creationTime"] = now.timestamp()
    row["expiry"] = add_months(now, membership.months).timestamp()
    row["inGoogleGroup"] = False
    return row


def verify_and_capture(paypal: PayPalClient, order_id: str, membership: MembershipType) -> None:
    """Check the authorized amount matches the price, then capture it."""
    try:
        order = paypal.get_order(order_id)
    except httpx.HTTPError as exc:
        log.error("Failed to retrieve PayPal order %s: %s", order_id, exc)
        raise SignupError(
            "Failed to retrieve your PayPal Order given the provided ID.", 500,
        ) from exc

    try:
        authorized = order_amount(order)
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise SignupError("PayPal order has no purchase amount.", 400) from exc

    if authorized != membership.amount:
        log.warning(
            "Received payment (%d$) doesn't match expected payment (%d$)",
            authorized, membership.amount,
        )
        raise SignupError("Received payment doesn't match expected payment.", 400)

    try:
        paypal.capture_order(order_id)
    except httpx.HTTPError as exc:
        log.error("Failed to capture PayPal order %s: %s", order_id, exc)
        raise SignupError("Failed to accept (capture) your payment.", 500) from exc


def _add_to_group(directory, email: str) -> bool:
    try:
        result = directory.add_member(email)
    except Exception:
        log.exception("Could not add %s to the mailing list", email)
        return False
    if not result.ok:
        log.error("Could not add %s to the mailing list: %s", email, result.detail)
    return result.ok


def process_signup(
    form: dict,
    *,
    paypal: PayPalClient,
    roster,
    directory,
    notifier=None,
    welcome_template_id: str = "",
    now: datetime | None = None,
) -> dict:
    """Run the whole sign-up and return the roster row that was written.

    Payment problems and roster write failures raise SignupError.  Adding
    to the group, flagging the row ``inGoogleGroup`` and the welcome email
    are best effort; the synchronizer adds anyone the group is missing on
    its next run.
    """
    membership = validate_signup(form)
    log.info("Request is valid.")

    verify_and_capture(paypal, form["orderID"], membership)
    log.info("Payment captured")

    row = build_roster_row(form, membership, now or datetime.now(timezone.utc))
    try:
        row_number = roster.append_row(row)
    except MissingColumnError as exc:
        raise SignupError(str(exc), 500) from exc
    log.info("Account added to database")

    if _add_to_group(directory, row["email"]) and row_number is not None:
        try:
            roster.update_field(row_number, "inGoogleGroup", True)
            row["inGoogleGroup"] = True
        except Exception:
            log.exception("Could not mark roster row %d as in the group", row_number)

    if notifier is not None and welcome_template_id:
        name = get_display_name(MemberRecord.from_row(row))
        notifier.send(row["email"], welcome_template_id, {"email": row["email"], "name": name})

    return row
