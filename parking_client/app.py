from datetime import date
from functools import wraps
from urllib.parse import urlencode
import logging
import os
import secrets
from flask import Blueprint, Flask, current_app, flash, g, redirect, render_template, request, session, url_for
from flask_debugtoolbar import DebugToolbarExtension
from parking_client.reservations import admin_view, booking_view, owner_view
from parking_client.reservations import booking_utils as util
from parking_client.reservations.admin_service import AdminService
from parking_client.reservations.api_client import ApiClient, error_message
from parking_client.reservations.auth_service import AuthService
from parking_client.reservations.calendar import DAY_HEADERS, MonthCalendar
from parking_client.reservations.error_utils import ApiError, FormValidationError, TransportError
from parking_client.reservations.models import LotType, Role
from parking_client.reservations.owner_service import OwnerService
from parking_client.reservations.parking_service import ParkingService
from parking_client.reservations.session import SessionHolder, SessionStore
from parking_client.reservations.toast import ToastService

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

TRUTHY = ("1", "true", "yes", "on")

bp = Blueprint("parking", __name__)


def create_app(test_config=None):
    app = Flask(__name__)
    app.secret_key = os.environ.get('SECRET_KEY') or secrets.token_hex(32) #256 bit
    app.config['SECRET_KEY'] = app.secret_key
    app.config['API_BASE_URL'] = os.environ.get('API_BASE_URL', 'http://localhost:8080')
    app.config['API_TIMEOUT'] = float(os.environ.get('API_TIMEOUT', 10))
    app.config['ADMIN_PAGE_SIZE'] = int(os.environ.get('ADMIN_PAGE_SIZE', 10))
    app.config['SEARCH_DEBOUNCE_SECONDS'] = float(os.environ.get('SEARCH_DEBOUNCE_SECONDS', 0.3))
    app.config['DEMO_DATA'] = os.environ.get('PARKING_DEMO_DATA', '').lower() in TRUTHY
    app.config['PRODUCTION'] = os.environ.get('FLASK_ENV') == 'production'
    if not app.config['PRODUCTION']:
        app.config["DEBUG_TB_INTERCEPT_REDIRECTS"] = False  # Prevents redirect issues
    if test_config:
        app.config.update(test_config)
    # Demo data must never stand in for real availability in production
    if app.config['PRODUCTION'] and app.config['DEMO_DATA']:
        logger.warning("PARKING_DEMO_DATA ignored in production")
        app.config['DEMO_DATA'] = False

    app.register_blueprint(bp)
    app.register_error_handler(ApiError, handle_api_error)
    app.register_error_handler(TransportError, handle_transport_error)
    app.register_error_handler(404, error_handler)
    logger.info(f"Parking client configured for API {app.config['API_BASE_URL']} (demo data: {app.config['DEMO_DATA']})")
    return app


# Use decorator to build the per-request session holder and API services within the request context.
# The session lives in the signed Flask session cookie, which plays the role of the browser's local storage.
def instantiate_services(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.store = SessionStore(session)
        g.session_holder = SessionHolder.from_store(g.store)
        g.api = ApiClient(current_app.config['API_BASE_URL'], g.session_holder, timeout=current_app.config['API_TIMEOUT'])
        g.auth = AuthService(g.api, g.session_holder, g.store)
        g.toast = ToastService()
        g.toast.subscribe(lambda message: flash(message.text, message.type))
        return f(*args, **kwargs)
    return decorated_function


def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.session_holder.current is None:
            flash("Please sign in first.", "error")
            return redirect(url_for('parking.login', next=request.full_path.rstrip('?')))
        return f(*args, **kwargs)
    return decorated_function


def role_required(role: Role):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if g.session_holder.current.role != role:
                flash(f"{role.value.title()} access required.", "error")
                return redirect(url_for('parking.dashboard'))
            return f(*args, **kwargs)
        return decorated_function
    return decorator


@bp.app_context_processor
def inject_current_user():
    holder = g.get('session_holder')
    return {"current_user": holder.current if holder else None}


def _safe_return_url(target):
    # Only same-site relative paths, so the login form can't be used as an open redirect
    if target and target.startswith('/') and not target.startswith('//'):
        return target
    return url_for('parking.dashboard')


def _date_arg(value, default: date) -> date:
    if not value:
        return default
    try:
        return util.parse_date(value)
    except ValueError:
        flash(f"{value} is not a valid date.", "error")
        return default


@bp.route('/')
@instantiate_services
def home():
    if g.session_holder.current:
        return redirect(url_for('parking.dashboard'))
    return redirect(url_for('parking.login'))


@bp.route('/login', methods=['GET', 'POST'])
@instantiate_services
def login():
    return_url = _safe_return_url(request.args.get('next'))
    if g.session_holder.current:
        return redirect(url_for('parking.dashboard'))
    if request.method == 'GET':
        return render_template('login.html', form={}, errors={}, error=None)

    try:
        credentials = util.validate_login_form(request.form)
    except FormValidationError as e:
        return render_template('login.html', form=request.form, errors=e.errors, error=None), 422
    try:
        user = g.auth.login(credentials)
    except (ApiError, TransportError) as e:
        logger.info(f"Login failed for {credentials['email']}: {e}")
        error = error_message(e, "Login failed. Please try again.")
        return render_template('login.html', form=request.form, errors={}, error=error), 422
    flash(f"Welcome, {user.display_name}!", "success")
    return redirect(return_url)


@bp.route('/register', methods=['GET', 'POST'])
@instantiate_services
def register():
    if g.session_holder.current:
        return redirect(url_for('parking.dashboard'))
    if request.method == 'GET':
        return render_template('register.html', form={}, errors={}, error=None)

    try:
        user_data = util.validate_registration_form(request.form)
    except FormValidationError as e:
        return render_template('register.html', form=request.form, errors=e.errors, error=None), 422
    try:
        user = g.auth.register(user_data)
    except (ApiError, TransportError) as e:
        error = error_message(e, "Registration failed. Please try again.")
        return render_template('register.html', form=request.form, errors={}, error=error), 422
    flash(f"Welcome, {user.display_name}!", "success")
    return redirect(url_for('parking.dashboard'))


@bp.route('/logout', methods=['POST'])
@instantiate_services
def logout():
    g.auth.logout()
    flash("You have been signed out.", "info")
    return redirect(url_for('parking.login'))


@bp.route('/dashboard')
@instantiate_services
@login_required
def dashboard():
    return render_template('dashboard.html')


def _booking_view():
    return booking_view.BookingView(ParkingService(g.api), g.session_holder, demo_fallback=current_app.config['DEMO_DATA'])


def _render_booking(view, status=200):
    today = date.today()
    month = _date_arg(request.args.get('month'), view.selected_date)
    calendar = MonthCalendar(today, view.selected_date, displayed=month)
    return render_template('booking.html', view=view, calendar=calendar, day_headers=DAY_HEADERS, lots=list(LotType),
                           format_date=util.format_date, normalize_date=util.normalize_date), status


@bp.route('/booking', methods=['GET'])
@instantiate_services
@login_required
def booking():
    view = _booking_view()
    if view.redirect_target:
        return redirect(url_for('parking.owner'))

    today = date.today()
    calendar = MonthCalendar(today)
    # Past days are disabled in the date picker; a past date in the URL falls back to today
    if not calendar.select(_date_arg(request.args.get('date'), today)):
        calendar.select(today)
    view.selected_date = calendar.selected
    view.refresh()

    spot_id = request.args.get('spot')
    if spot_id:
        space = view.find_space(spot_id)
        if space:
            view.select_spot(space)
    return _render_booking(view)


@bp.route('/booking/book', methods=['POST'])
@instantiate_services
@login_required
def book_space():
    view = _booking_view()
    day = _date_arg(request.form.get('date'), date.today())
    view.load_availability(day)
    space = view.find_space(request.form.get('spot_id'))
    if space is None:
        flash("Parking space not found.", "error")
        return redirect(url_for('parking.booking', date=util.format_date(day)))

    view.select_spot(space)
    if not view.show_booking_popup:
        flash(f"Spot #{space.spot_number} is no longer available.", "error")
        return redirect(url_for('parking.booking', date=util.format_date(day)))

    if not view.confirm_booking():
        # Keep the dialog open with the server's reason
        view.load_my_reservations()
        return _render_booking(view, 422)
    flash(view.message, "success")
    return redirect(url_for('parking.booking', date=util.format_date(day)))


@bp.route('/booking/cancel', methods=['POST'])
@instantiate_services
@login_required
def cancel_space():
    view = _booking_view()
    day = _date_arg(request.form.get('date'), date.today())
    view.selected_date = day
    view.refresh()
    space = view.find_space(request.form.get('spot_id'))
    if space is not None:
        view.select_spot(space)
    if not view.show_cancel_popup:
        flash("You have no reservation for that spot on this day.", "error")
        return redirect(url_for('parking.booking', date=util.format_date(day)))

    if view.confirm_cancel():
        flash(view.message, "success")
    else:
        flash(view.error, "error")
    return redirect(url_for('parking.booking', date=util.format_date(day)))


@bp.route('/booking/reservations/<int:reservation_id>/cancel', methods=['POST'])
@instantiate_services
@login_required
def cancel_listed_reservation(reservation_id):
    view = _booking_view()
    view.load_my_reservations()
    reservation = next((r for r in view.my_reservations if r.id == reservation_id), None)
    if reservation is None:
        flash("Invalid reservation", "error")
    elif view.cancel_reservation_from_list(reservation):
        flash(view.message, "success")
    else:
        flash(view.error, "error")
    return redirect(url_for('parking.booking', date=request.form.get('date') or None))


def _owner_view():
    return owner_view.OwnerCancellationView(OwnerService(g.api), g.session_holder)


@bp.route('/owner', methods=['GET'])
@instantiate_services
@login_required
def owner():
    view = _owner_view()
    if view.redirect_target:
        return redirect(url_for('parking.booking'))
    requested = request.args.get('date')
    if requested:
        view.change_date(_date_arg(requested, view.min_date))
    if request.args.get('confirm') and not view.error:
        view.request_cancellation()
    return render_template('owner.html', view=view, format_date=util.format_date)


@bp.route('/owner/confirm', methods=['POST'])
@instantiate_services
@login_required
def owner_confirm():
    view = _owner_view()
    if view.redirect_target:
        return redirect(url_for('parking.booking'))
    if not view.change_date(_date_arg(request.form.get('date'), view.min_date)):
        flash(view.error, "error")
        return redirect(url_for('parking.owner'))
    view.request_cancellation()
    if view.confirm():
        flash(view.success, "success")
    else:
        flash(view.error, "error")
    return redirect(url_for('parking.owner', date=util.format_date(view.selected_date)))


ADMIN_LIST_ARGS = ('page', 'size', 'search', 'sort', 'dir')


def _admin_console():
    return admin_view.AdminConsole(AdminService(g.api), g.toast, page_size=current_app.config['ADMIN_PAGE_SIZE'],
                                   demo_fallback=current_app.config['DEMO_DATA'],
                                   debounce_seconds=current_app.config['SEARCH_DEBOUNCE_SECONDS'])


def _apply_list_args(list_view, prefix, args):
    try:
        list_view.page_index = max(0, int(args.get(f'{prefix}_page', 0)))
        list_view.page_size = int(args.get(f'{prefix}_size') or list_view.page_size)
    except ValueError:
        flash("Invalid page number.", "error")
    list_view.search = args.get(f'{prefix}_search', '').strip()
    list_view.sort_field = args.get(f'{prefix}_sort') or None
    list_view.sort_direction = args.get(f'{prefix}_dir') or 'asc'


def _list_query(console) -> dict:
    """Query arguments describing the current state of both admin lists, empty values left out."""
    query = {}
    for prefix, list_view in (('users', console.users), ('reservations', console.reservations)):
        values = (list_view.page_index, list_view.page_size, list_view.search, list_view.sort_field, list_view.sort_direction)
        for arg, value in zip(ADMIN_LIST_ARGS, values):
            if value not in (None, ''):
                query[f'{prefix}_{arg}'] = value
    return query


def _admin_redirect():
    # Hidden form fields carry the list state of the page the command was issued from
    query = {f'{prefix}_{arg}': request.form[f'{prefix}_{arg}']
             for prefix in ('users', 'reservations') for arg in ADMIN_LIST_ARGS
             if request.form.get(f'{prefix}_{arg}')}
    return redirect(url_for('parking.admin') + (f"?{urlencode(query)}" if query else ""))


@bp.route('/admin', methods=['GET'])
@instantiate_services
@login_required
@role_required(Role.ADMIN)
def admin():
    console = _admin_console()
    _apply_list_args(console.users, 'users', request.args)
    _apply_list_args(console.reservations, 'reservations', request.args)
    console.load()
    console.dispose()
    query = _list_query(console)

    def page_url(prefix, page_index):
        return url_for('parking.admin', **dict(query, **{f'{prefix}_page': page_index}))

    return render_template('admin.html', console=console, roles=[role.value for role in Role], page_url=page_url,
                           debounce_ms=int(round(current_app.config['SEARCH_DEBOUNCE_SECONDS'] * 1000)))


def _admin_user_command(user_id, command):
    console = _admin_console()
    _apply_list_args(console.users, 'users', request.form)
    console.users.load()
    user = console.users.find(user_id)
    if user is None:
        flash("User not found.", "error")
    else:
        command(console, user)
    console.dispose()
    return _admin_redirect()


@bp.route('/admin/users/<int:user_id>/admin', methods=['POST'])
@instantiate_services
@login_required
@role_required(Role.ADMIN)
def admin_toggle_admin(user_id):
    return _admin_user_command(user_id, lambda console, user: console.toggle_admin(user))


@bp.route('/admin/users/<int:user_id>/owner', methods=['POST'])
@instantiate_services
@login_required
@role_required(Role.ADMIN)
def admin_toggle_owner(user_id):
    return _admin_user_command(user_id, lambda console, user: console.toggle_owner(user))


@bp.route('/admin/users/<int:user_id>/role', methods=['POST'])
@instantiate_services
@login_required
@role_required(Role.ADMIN)
def admin_change_role(user_id):
    return _admin_user_command(user_id, lambda console, user: console.change_role(user, request.form.get('role', '')))


@bp.route('/admin/users/<int:user_id>/revoke', methods=['POST'])
@instantiate_services
@login_required
@role_required(Role.ADMIN)
def admin_revoke_parking(user_id):
    return _admin_user_command(user_id, lambda console, user: console.revoke_parking(user))


@bp.route('/admin/users/<int:user_id>/delete', methods=['POST'])
@instantiate_services
@login_required
@role_required(Role.ADMIN)
def admin_delete_user(user_id):
    return _admin_user_command(user_id, lambda console, user: console.delete_user(user))


@bp.route('/admin/reservations/<int:reservation_id>/cancel', methods=['POST'])
@instantiate_services
@login_required
@role_required(Role.ADMIN)
def admin_cancel_reservation(reservation_id):
    console = _admin_console()
    _apply_list_args(console.reservations, 'reservations', request.form)
    console.reservations.load()
    reservation = console.reservations.find(reservation_id)
    if reservation is None:
        flash("Reservation not found.", "error")
    else:
        console.cancel_reservation(reservation)
    console.dispose()
    return _admin_redirect()


# An expired or revoked token: drop the stored session and ask the user to sign in again
def handle_api_error(error):
    if error.is_unauthorized:
        SessionStore(session).clear()
        flash("Your session has expired. Please sign in again.", "error")
        return redirect(url_for('parking.login'))
    logger.error(f"Unhandled API error {error.status} from {error.url}: {error.message}")
    flash(error_message(error, "An error occurred. Please try again."), "error")
    return redirect(url_for('parking.dashboard'))


def handle_transport_error(error):
    logger.error(f"Parking service unreachable: {error.message}")
    flash("The parking service is unreachable. Please try again later.", "error")
    return redirect(url_for('parking.dashboard'))


def error_handler(error):
    flash("An error occurred.", "error")
    return redirect(url_for('parking.home'))


app = create_app()
# Set to make Flask debug toolbar work
if not app.config['PRODUCTION']:
    app.debug = True

if __name__ == '__main__':
    # production
    if app.config['PRODUCTION']:
        app.run(debug=False)
    else:
        toolbar = DebugToolbarExtension(app)
        app.run(debug=True, port=5003)
