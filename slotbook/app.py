import logging
import sys
from datetime import date, datetime, timedelta, timezone
from functools import wraps

import click
from flask import Blueprint, Flask, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from .allocator import ReservationAllocator
from .errors import Conflict, InvalidInput, ReservationError, Unauthorized, Unavailable
from .models import db
from .sessions import SessionRegistry
from .settings import Config

logger = logging.getLogger(__name__)

NOT_AUTHORIZED = 'Not authorized. Admin access required.'

api = Blueprint('api', __name__, url_prefix='/api')


def setup_logging(level='INFO'):
    logging.basicConfig(
        level=level.upper(),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def _allocator():
    return current_app.extensions['allocator']


def _registry():
    return current_app.extensions['session_registry']


def _now_iso():
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def bearer_token():
    header = request.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        return None
    return header[len('Bearer '):].strip() or None


def admin_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if not _registry().authorize(bearer_token()):
            raise Unauthorized(NOT_AUTHORIZED)
        return f(*args, **kwargs)
    return wrapper


def _json_body():
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise InvalidInput('Request body must be a JSON object')
    return body


# Autenticación del operador
@api.route('/admin/login', methods=['POST'])
def admin_login():
    token = _registry().login(_json_body().get('password'))
    return jsonify({'success': True, 'token': token})


@api.route('/admin/logout', methods=['POST'])
def admin_logout():
    token = bearer_token()
    if token:
        _registry().logout(token)
    return jsonify({'success': True})


@api.route('/admin/check')
@admin_required
def admin_check():
    return jsonify({'authenticated': True})


# Turnos
@api.route('/available-slots', methods=['GET'])
def available_slots():
    try:
        slots = _allocator().list_all_slots()
    except Unavailable:
        return jsonify([])
    return jsonify([slot.to_dict() for slot in slots])


@api.route('/available-slots', methods=['POST'])
@admin_required
def add_slot():
    body = _json_body()
    slot = _allocator().create_slot(body.get('date'), body.get('time'))
    return jsonify(slot.to_dict())


@api.route('/available-slots/<slot_id>', methods=['DELETE'])
@admin_required
def delete_slot(slot_id):
    _allocator().delete_slot(slot_id)
    return jsonify({'message': 'Slot deleted'})


@api.route('/bookable-slots')
def bookable_slots():
    try:
        return jsonify(_allocator().list_bookable_slots())
    except Unavailable:
        return jsonify([])


@api.route('/all-slots-status')
def all_slots_status():
    try:
        return jsonify(_allocator().list_all_slots_with_status())
    except Unavailable:
        return jsonify([])


# Reservas
@api.route('/bookings', methods=['GET'])
@admin_required
def list_bookings():
    try:
        bookings = _allocator().list_bookings()
    except Unavailable:
        return jsonify({'error': 'Could not fetch bookings'}), 500
    return jsonify([booking.to_dict() for booking in bookings])


@api.route('/bookings', methods=['POST'])
def create_booking():
    body = _json_body()
    booking = _allocator().create_booking(
        body.get('slotId'),
        body.get('clientName'),
        body.get('clientEmail'),
        body.get('clientPhone'),
    )
    return jsonify(booking.to_dict())


@api.route('/bookings/<booking_id>', methods=['DELETE'])
@admin_required
def cancel_booking(booking_id):
    _allocator().cancel_booking(booking_id)
    return jsonify({'message': 'Booking cancelled'})


@api.route('/health')
def health():
    return jsonify({
        'status': 'ok',
        'storeConnected': _allocator().store_connected(),
        'timestamp': _now_iso(),
    })


@api.route('/test')
def liveness():
    return jsonify({
        'status': 'ok',
        'message': 'Server is running!',
        'timestamp': _now_iso(),
    })


@api.errorhandler(ReservationError)
def handle_reservation_error(error):
    return jsonify(error.to_dict()), error.status_code


def _allow_cors(response):
    response.headers['Access-Control-Allow-Origin'] = current_app.config['CORS_ORIGIN']
    response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PUT, DELETE, OPTIONS'
    response.headers['Access-Control-Allow-Headers'] = 'Content-Type, Authorization'
    return response


def _handle_unexpected(error):
    logger.exception(f"Server error: {error}")
    return jsonify({'error': 'Internal server error'}), 500


# Publicar los turnos de un rango de días (por defecto lunes a viernes, 8:00 a 14:00)
def seed_slots(allocator, start, days, first_hour=8, last_hour=14, weekends=False):
    horarios = [f"{h:02d}:00" for h in range(first_hour, last_hour + 1)]
    created = skipped = 0

    fecha = start
    for _ in range(days):
        if weekends or fecha.weekday() < 5:
            for hora in horarios:
                try:
                    allocator.create_slot(fecha.isoformat(), hora)
                    created += 1
                except Conflict:
                    skipped += 1
        fecha += timedelta(days=1)
    return created, skipped


def register_commands(app):
    @app.cli.command('init-db')
    def init_db_command():
        """Create the slot and booking tables."""
        db.create_all()
        click.echo('Tables created')

    @app.cli.command('seed-slots')
    @click.option('--start', type=click.DateTime(formats=['%Y-%m-%d']), default=None,
                  help='First day to publish (default: today).')
    @click.option('--days', type=click.IntRange(min=1), default=14, show_default=True)
    @click.option('--first-hour', type=click.IntRange(0, 23), default=8, show_default=True)
    @click.option('--last-hour', type=click.IntRange(0, 23), default=14, show_default=True)
    @click.option('--weekends/--no-weekends', default=False, show_default=True)
    def seed_slots_command(start, days, first_hour, last_hour, weekends):
        """Publish one slot per hour for a range of days."""
        if first_hour > last_hour:
            raise click.BadParameter('--first-hour must not be after --last-hour')
        start_day = start.date() if start else date.today()
        try:
            created, skipped = seed_slots(
                app.extensions['allocator'], start_day, days,
                first_hour=first_hour, last_hour=last_hour, weekends=weekends,
            )
        except ReservationError as e:
            raise click.ClickException(e.message)
        click.echo(f'{created} slots created, {skipped} already existed')


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    setup_logging(app.config['LOG_LEVEL'])

    db.init_app(app)
    app.extensions['session_registry'] = SessionRegistry.from_password(app.config['ADMIN_PASSWORD'])
    app.extensions['allocator'] = ReservationAllocator(db)

    app.register_blueprint(api)
    app.after_request(_allow_cors)
    app.register_error_handler(500, _handle_unexpected)
    register_commands(app)

    @app.route('/')
    def index():
        return 'Backend is running...'

    # The service still starts when the store is down; reads degrade, writes answer 503
    with app.app_context():
        logger.info(f"Connecting to database: {db.engine.url.render_as_string(hide_password=True)}")
        try:
            db.create_all()
            logger.info("Tables created successfully")
        except SQLAlchemyError as e:
            logger.error(f"Failed to create tables: {e}")

    return app


def main():
    app = create_app()
    app.run(host=app.config['HOST'], port=app.config['PORT'],
            debug=app.config['DEBUG'], threaded=True)


if __name__ == '__main__':
    main()
