"""Order domain exceptions.

Raised by the Service Layer when a status change or tracking update
cannot be carried out.  The API layer (Views) catches these and
translates them into appropriate HTTP responses.
"""

from __future__ import annotations


class InvalidStatus(Exception):
    """The requested status is not part of the order status domain."""


class OrderNotFound(Exception):
    """The requested order does not exist."""


class MissingTrackingInfo(Exception):
    """A tracking update carried neither a tracking URL nor a tracking ID."""


class PersistenceFailure(Exception):
    """The order could not be read or written; the transaction was rolled back."""


class NotificationFailure(Exception):
    """A customer notification could not be enqueued or delivered.

    Always recovered: logged and never propagated to the caller.
    """
