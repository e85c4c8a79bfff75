# services/renewal.py
"""
Membership renewal.

The caller supplies the new end date (the UI pre-fills it from
`compute_end_date` but an admin may override it). The client update and
the renewal log entry are written in one transaction: both persist or
neither does.
"""
import logging
from datetime import date

from fitdesk.errors import InvalidPlanType, NotFound, RenewalTransactionFailed, ValidationError
from fitdesk.utils.helpers import parse_price
from fitdesk.utils.membership import compute_status, parse_date, parse_plan_type

logger = logging.getLogger(__name__)


def validate_renewal(plan_type, start_date, new_end_date, price):
    """Return (plan, start, end, price) normalised, or raise ValidationError naming the bad field."""
    if plan_type is None or (isinstance(plan_type, str) and not plan_type.strip()):
        raise ValidationError('membershipType', 'Membership type is required.')
    try:
        plan = parse_plan_type(plan_type)
    except InvalidPlanType as e:
        raise ValidationError('membershipType', e.message) from e

    start = parse_date(start_date)
    if start is None:
        raise ValidationError('renewalStartDate', 'A valid renewal start date (YYYY-MM-DD) is required.')

    end = parse_date(new_end_date)
    if end is None:
        raise ValidationError('newEndDate', 'A valid new end date (YYYY-MM-DD) is required.')

    amount = parse_price(price)
    if amount is None:
        raise ValidationError('pricePaid', 'Price must be a number greater than or equal to 0.')

    return plan, start, end, amount


def renew(store, client_id, plan_type, start_date, new_end_date, price, today=None):
    """
    Renew a client's membership.

    Raises ValidationError, NotFound or RenewalTransactionFailed. On success
    returns the new window and its status.
    """
    plan, start, end, amount = validate_renewal(plan_type, start_date, new_end_date, price)
    today = parse_date(today) or date.today()

    client = store.get_client_by_id(client_id)
    if client is None:
        raise NotFound()

    new_status = compute_status(end, today)

    def apply(tx):
        # Re-read under the write lock: the client may have been deleted or renamed meanwhile
        current = tx.get_client_by_id(client_id)
        if current is None:
            raise NotFound()
        tx.update_client(client_id, {
            'membership_start': start.isoformat(),
            'membership_end': end.isoformat(),
            'membership_type': plan,
            'status': new_status,
        })
        return tx.insert_renewal({
            'client_id': current.id,
            'client_name': current.name or 'Unknown Client',
            'membership_type': plan,
            'new_end_date': end.isoformat(),
            'renewal_date': today.isoformat(),
            'price_paid': amount,
        })

    try:
        renewal_id = store.with_transaction(apply)
    except NotFound:
        raise
    except Exception as e:
        logger.exception("Renewal of client %s rolled back", client_id)
        raise RenewalTransactionFailed() from e

    logger.info("Client %s renewed: %s, %s -> %s (%s), paid %.2f",
                client_id, plan, start, end, new_status, amount)
    return {
        'clientId': client.id,
        'renewalId': renewal_id,
        'membershipType': plan,
        'membershipStart': start.isoformat(),
        'membershipEnd': end.isoformat(),
        'status': new_status,
    }
