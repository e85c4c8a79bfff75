from datetime import datetime

from flask import current_app
from flask_mail import Message

from fitdesk.errors import NotificationDispatchFailed
from fitdesk.models.database import execute_query


def _log_email(to_email, subject, body, email_type, status, error_message=None):
    db_path = current_app.config['DATABASE_PATH']
    execute_query(
        '''INSERT INTO email_logs (recipient_email, subject, body, email_type, status, sent_at, error_message)
           VALUES (?, ?, ?, ?, ?, ?, ?)''',
        (to_email, subject, body, email_type, status,
         datetime.now().isoformat(timespec='seconds') if status == 'sent' else None,
         error_message),
        db_path,
    )


def mail_configured():
    return bool(current_app.config.get('MAIL_USERNAME') and current_app.config.get('MAIL_PASSWORD'))


def send_email(to_email, subject, body, html_body=None, email_type=None):
    """Send email using Flask-Mail. Raises NotificationDispatchFailed if the send fails."""
    try:
        msg = Message(
            subject=subject,
            recipients=[to_email],
            body=body,
            html=html_body
        )
        current_app.mail.send(msg)
    except Exception as e:
        current_app.logger.error("Error sending email to %s: %s", to_email, e)
        _log_email(to_email, subject, body, email_type, 'failed', str(e))
        raise NotificationDispatchFailed(to_email, str(e)) from e

    _log_email(to_email, subject, body, email_type, 'sent')
    current_app.logger.info("Email '%s' sent to %s", email_type or subject, to_email)
    return True


def send_membership_reminder(email, full_name, days_left):
    """
    Reminder for a membership ending in 3 days or today.

    Returns False without sending for any other day count, or when mail
    credentials are not configured.
    """
    if not mail_configured():
        current_app.logger.warning("Mailer skipped: MAIL_USERNAME or MAIL_PASSWORD is not set.")
        return False

    gym_name = current_app.config.get('GYM_NAME', 'Our Gym')

    if days_left == 3:
        subject = "Your Gym Membership is Expiring in 3 Days!"
        body = f"""
    Hello {full_name},

    This is a friendly reminder that your gym membership is set to expire in 3 days.

    Please visit the front desk to renew your membership and continue enjoying all our facilities!

    Thank you for being a valued member of {gym_name}.
    """
        html_body = f"""
    <html>
    <body style="font-family: Arial, sans-serif;">
        <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="color: #1a73e8;">Membership Expiring Soon</h2>
            <p>Hello <strong>{full_name}</strong>,</p>
            <div style="background-color: #fff3cd; border: 1px solid #ffeaa7; padding: 15px; border-radius: 5px; margin: 20px 0;">
                <p>Your gym membership is set to expire in <strong>3 days</strong>.</p>
            </div>
            <p>Please visit the front desk to renew your membership and continue enjoying all our facilities!</p>
            <p>Thank you for being a valued member of <strong>{gym_name}</strong>.</p>
        </div>
    </body>
    </html>
    """
        email_type = 'reminder_3_days'
    elif days_left == 0:
        subject = "Action Required: Your Gym Membership Ends Today!"
        body = f"""
    Hello {full_name},

    Your gym membership ends today.

    Please renew your membership to keep your access to the gym.

    We look forward to seeing you back soon!
    {gym_name}
    """
        html_body = f"""
    <html>
    <body style="font-family: Arial, sans-serif;">
        <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="color: #d63031;">Membership Ends Today</h2>
            <p>Hello <strong>{full_name}</strong>,</p>
            <p>Your gym membership <strong>ends today</strong>.</p>
            <p>Please renew your membership to keep your access to the gym.</p>
            <p>We look forward to seeing you back soon!<br>
            <strong>{gym_name}</strong></p>
        </div>
    </body>
    </html>
    """
        email_type = 'reminder_today'
    else:
        return False

    return send_email(email, subject, body, html_body, email_type=email_type)


def send_welcome_email(email, full_name, rollno, temporary_password):
    """Send welcome email to a newly registered client"""
    gym_name = current_app.config.get('GYM_NAME', 'Our Gym')
    subject = f"Welcome to {gym_name}!"
    body = f"""
    Dear {full_name},

    Welcome to {gym_name}! We're excited to have you as part of our fitness community.

    Your account has been created with the following credentials:
    Roll No: {rollno if rollno is not None else '-'}
    Temporary Password: {temporary_password}

    Please change your password at your next visit.

    Best regards,
    {gym_name} Team
    """

    html_body = f"""
    <html>
    <body style="font-family: Arial, sans-serif;">
        <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="color: #1a73e8;">Welcome to {gym_name}!</h2>
            <p>Dear <strong>{full_name}</strong>,</p>
            <div style="background-color: #e3f2fd; border: 1px solid #2196f3; padding: 15px; border-radius: 5px; margin: 20px 0;">
                <p><strong>Roll No:</strong> {rollno if rollno is not None else '-'}</p>
                <p><strong>Temporary Password:</strong> {temporary_password}</p>
            </div>
            <p>Best regards,<br>
            <strong>{gym_name} Team</strong></p>
        </div>
    </body>
    </html>
    """

    return send_email(email, subject, body, html_body, email_type='welcome')
