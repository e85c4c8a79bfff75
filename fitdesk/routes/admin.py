from datetime import date

from flask import Blueprint, current_app, jsonify, request

from fitdesk.errors import NotFound, NotificationDispatchFailed, ValidationError
from fitdesk.models.renewal import RenewalRecord
from fitdesk.services import clients as client_service
from fitdesk.services.reminders import sweep_and_notify
from fitdesk.services.renewal import renew
from fitdesk.utils.decorators import admin_required
from fitdesk.utils.email_utils import mail_configured, send_welcome_email
from fitdesk.utils.membership import (
    STATUS_ACTIVE, STATUS_EXPIRED, STATUS_EXPIRING_SOON, STATUS_UNKNOWN, STATUSES,
    parse_date, preview,
)

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def _store():
    return current_app.store


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('body', 'Expected a JSON object.')
    return data


def _hash_password(password):
    return current_app.bcrypt.generate_password_hash(password).decode('utf-8')


def _optional_date_arg(name):
    value = request.args.get(name)
    if not value:
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError(name, f"'{name}' must be a valid date (YYYY-MM-DD).")
    return parsed.isoformat()


# -------------------- Clients --------------------
@admin_bp.route('/clients')
@admin_required
def list_clients():
    """All clients with their current status. Optional ?status= and ?search= filters."""
    today = date.today()
    status_filter = (request.args.get('status') or '').strip().lower()
    if status_filter and status_filter not in STATUSES:
        raise ValidationError('status', f"Unknown status filter: {status_filter}")
    search = (request.args.get('search') or '').strip().lower()

    results = []
    for client in _store().list_clients():
        data = client.to_dict(today)
        if status_filter and data['status'] != status_filter:
            continue
        if search and not any(
            search in str(data.get(k) or '').lower() for k in ('name', 'email', 'phone', 'rollno')
        ):
            continue
        results.append(data)
    return jsonify(results)


@admin_bp.route('/clients/<int:client_id>')
@admin_required
def get_client(client_id):
    client = _store().get_client_by_id(client_id)
    if client is None:
        raise NotFound()
    return jsonify(client.to_dict())


@admin_bp.route('/clients', methods=['POST'])
@admin_required
def create_client():
    client, temporary_password = client_service.create_client(_store(), _json_body(), _hash_password)

    welcome_sent = False
    if client.email and mail_configured():
        try:
            welcome_sent = send_welcome_email(client.email, client.name, client.rollno, temporary_password)
        except NotificationDispatchFailed as e:
            current_app.logger.error("Failed to send welcome email to %s: %s", client.email, e.reason)

    data = client.to_dict()
    return jsonify({
        'message': 'User created successfully.',
        'client': data,
        'membershipStart': data['membershipStart'],
        'membershipEnd': data['membershipEnd'],
        'status': data['status'],
        'temporaryPassword': temporary_password,
        'welcomeEmailSent': welcome_sent,
    }), 201


@admin_bp.route('/clients/<int:client_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_client(client_id):
    client = client_service.update_client(_store(), client_id, _json_body())
    return jsonify({'message': 'Client updated successfully', 'client': client.to_dict()})


@admin_bp.route('/clients/<int:client_id>', methods=['DELETE'])
@admin_required
def delete_client(client_id):
    client_service.delete_client(_store(), client_id)
    return jsonify({'message': 'Client and all related data deleted successfully'})


# -------------------- Renewals --------------------
@admin_bp.route('/clients/<int:client_id>/renew', methods=['PUT', 'POST'])
@admin_required
def renew_membership(client_id):
    data = _json_body()
    result = renew(
        _store(),
        client_id,
        data.get('membershipType'),
        data.get('renewalStartDate'),
        data.get('newEndDate'),
        data.get('pricePaid'),
    )
    return jsonify({'message': 'Membership renewed successfully!', **result})


@admin_bp.route('/clients/<int:client_id>/history')
@admin_required
def client_history(client_id):
    """Most recent renewals for one client (empty once the client is deleted)."""
    limit = request.args.get('limit', 5, type=int)
    if limit is None or limit < 1:
        raise ValidationError('limit', "'limit' must be a positive integer.")
    records = _store().list_renewals_for_client(client_id, min(limit, 100))
    return jsonify([r.to_dict() for r in records])


@admin_bp.route('/renewal-history')
@admin_required
def renewal_history():
    """Renewal revenue log, optionally limited to a renewal-date range."""
    start_date = _optional_date_arg('startDate')
    end_date = _optional_date_arg('endDate')
    records = _store().list_renewals(start_date, end_date)
    return jsonify({
        'startDate': start_date,
        'endDate': end_date,
        'count': len(records),
        'totalRevenue': RenewalRecord.total_revenue(records),
        'renewals': [r.to_dict() for r in records],
    })


@admin_bp.route('/membership/preview')
@admin_required
def membership_preview():
    """Projected end date and status for a plan, so the UI never computes its own."""
    membership_type = request.args.get('membershipType')
    if not membership_type:
        raise ValidationError('membershipType', 'Membership type is required.')
    start_date = parse_date(request.args.get('startDate'))
    if start_date is None:
        raise ValidationError('startDate', 'A valid start date (YYYY-MM-DD) is required.')
    return jsonify(preview(start_date, membership_type))


# -------------------- Dashboard --------------------
@admin_bp.route('/dashboard/stats')
@admin_required
def dashboard_stats():
    today = date.today()
    counts = {status: 0 for status in STATUSES}
    clients = _store().list_clients()
    for client in clients:
        counts[client.current_status(today)] += 1

    month_start = today.replace(day=1).isoformat()
    monthly = _store().list_renewals(month_start, today.isoformat())

    return jsonify({
        'totalClients': len(clients),
        # "expiring soon" memberships are still valid
        'activeClients': counts[STATUS_ACTIVE] + counts[STATUS_EXPIRING_SOON],
        'expiringSoon': counts[STATUS_EXPIRING_SOON],
        'expiredClients': counts[STATUS_EXPIRED],
        'unknownStatus': counts[STATUS_UNKNOWN],
        'monthlyRevenue': RenewalRecord.total_revenue(monthly),
        'monthlyRenewals': len(monthly),
    })


# -------------------- Renewal Reminders --------------------
@admin_bp.route('/run-reminders', methods=['POST'])
@admin_required
def run_reminders():
    """Run the reminder sweep now (the scheduler also runs it daily)."""
    attention = sweep_and_notify(_store())
    return jsonify({'count': len(attention), 'clients': attention})
