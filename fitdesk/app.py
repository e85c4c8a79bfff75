import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_bcrypt import Bcrypt
from flask_mail import Mail
from werkzeug.exceptions import HTTPException

from fitdesk.errors import MembershipError
from fitdesk.models.database import init_db
from fitdesk.models.store import MembershipStore
from fitdesk.routes.admin import admin_bp
from fitdesk.routes.auth import auth_bp
from fitdesk.services.scheduler import start_reminder_scheduler


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def create_app(config=None):
    load_dotenv()
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.environ.get(
        'SECRET_KEY',
        'your-secret-key-change-in-production'
    )
    app.config['DATABASE_PATH'] = os.environ.get(
        'DATABASE_PATH',
        'gym_management.sqlite'
    )
    app.config['DATABASE_TIMEOUT'] = float(os.environ.get('DATABASE_TIMEOUT', '5'))
    app.config['GYM_NAME'] = os.environ.get('GYM_NAME', 'AAYSHMAA Fitness Center')

    # Mail configuration
    app.config['MAIL_SERVER'] = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    app.config['MAIL_PORT'] = int(os.environ.get('MAIL_PORT', '587'))
    app.config['MAIL_USE_TLS'] = _env_bool('MAIL_USE_TLS', True)
    app.config['MAIL_USERNAME'] = os.environ.get('MAIL_USERNAME')
    app.config['MAIL_PASSWORD'] = os.environ.get('MAIL_PASSWORD')
    app.config['MAIL_DEFAULT_SENDER'] = os.environ.get(
        'MAIL_DEFAULT_SENDER',
        f"{app.config['GYM_NAME']} <{app.config['MAIL_USERNAME'] or 'noreply@example.com'}>"
    )

    # Default admin, created on first start
    app.config['DEFAULT_ADMIN_EMAIL'] = os.environ.get('DEFAULT_ADMIN_EMAIL', 'admin@example.com')
    app.config['DEFAULT_ADMIN_PASSWORD'] = os.environ.get('DEFAULT_ADMIN_PASSWORD', 'password123')

    # Reminder sweep
    app.config['SCHEDULER_ENABLED'] = _env_bool('SCHEDULER_ENABLED', True)
    app.config['REMINDER_HOUR'] = int(os.environ.get('REMINDER_HOUR', '9'))
    app.config['REMINDER_MINUTE'] = int(os.environ.get('REMINDER_MINUTE', '0'))
    app.config['REMINDER_RUN_ON_START'] = _env_bool('REMINDER_RUN_ON_START', False)

    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO')

    if config:
        app.config.update(config)

    level = getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO)
    app.logger.setLevel(level)
    logging.getLogger('fitdesk').setLevel(level)

    # Initialize Mail
    mail = Mail(app)
    app.mail = mail

    # Initialize Bcrypt and attach to app for convenience
    bcrypt = Bcrypt(app)
    app.bcrypt = bcrypt

    with app.app_context():
        admin_hash = bcrypt.generate_password_hash(app.config['DEFAULT_ADMIN_PASSWORD']).decode('utf-8')
        init_db(app.config['DATABASE_PATH'], app.config['DEFAULT_ADMIN_EMAIL'], admin_hash)

    app.store = MembershipStore(app.config['DATABASE_PATH'], app.config['DATABASE_TIMEOUT'])

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(admin_bp, url_prefix='/admin')

    @app.route('/api/health')
    def health():
        return jsonify({'status': 'ok', 'service': app.config['GYM_NAME']})

    # Error handlers
    @app.errorhandler(MembershipError)
    def membership_error(error):
        if error.status_code >= 500:
            app.logger.error("%s: %s", type(error).__name__, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'error': error.description}), error.code

    @app.errorhandler(Exception)
    def internal_server_error(error):
        app.logger.exception("Unhandled error")
        return jsonify({'error': 'Internal server error'}), 500

    # Avoid a second scheduler in the Flask reloader's parent process
    if (app.config['SCHEDULER_ENABLED'] and not app.config.get('TESTING')
            and (os.environ.get('WERKZEUG_RUN_MAIN') == 'true' or not app.debug)):
        start_reminder_scheduler(app)

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(debug=True, host='0.0.0.0', port=int(os.environ.get('PORT', '5000')))
