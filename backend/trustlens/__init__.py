from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
jwt = JWTManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    jwt.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from trustlens.auth import register_jwt_handlers
    from trustlens.errors import register_error_handlers
    register_jwt_handlers(jwt)
    register_error_handlers(flask_app)

    from trustlens.api.auth import auth
    from trustlens.api.vendor import vendor
    from trustlens.api.admin import admin
    from trustlens.api.users import users
    from trustlens.api.products import products
    from trustlens.api.reviews import reviews
    from trustlens.api.orders import orders
    from trustlens.api.alerts import alerts
    from trustlens.api.predictions import predictions
    from trustlens.api.community import community
    from trustlens.api.enhanced_reviews import enhanced_reviews
    from trustlens.api.lifecycle import lifecycle
    from trustlens.api.realtime import realtime
    flask_app.register_blueprint(auth, url_prefix='/api/auth')
    flask_app.register_blueprint(vendor, url_prefix='/api/vendor')
    flask_app.register_blueprint(admin, url_prefix='/api/admin')
    flask_app.register_blueprint(users, url_prefix='/api/users')
    flask_app.register_blueprint(products, url_prefix='/api/products')
    flask_app.register_blueprint(reviews, url_prefix='/api/reviews')
    flask_app.register_blueprint(orders, url_prefix='/api/orders')
    flask_app.register_blueprint(alerts, url_prefix='/api/alerts')
    flask_app.register_blueprint(predictions, url_prefix='/api/predictions')
    flask_app.register_blueprint(community, url_prefix='/api/community')
    flask_app.register_blueprint(enhanced_reviews, url_prefix='/api/enhanced-reviews')
    flask_app.register_blueprint(lifecycle, url_prefix='/api/product-lifecycle')
    flask_app.register_blueprint(realtime, url_prefix='/api/realtime')

    @flask_app.route('/api/health')
    def health():
        return jsonify({'status': 'ok', 'service': 'trustlens'})

    # Socket.IO handlers bind to the module-level socketio instance
    from trustlens.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from trustlens.seed import seed_demo_data
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            counts = seed_demo_data()
            print(f"Database has been reset and seeded: {counts}")

    @click.command('seed-admin')
    def seed_admin_command():
        """Creates the admin account if it does not exist."""
        from trustlens.seed import ensure_admin
        with flask_app.app_context():
            created = ensure_admin()
            print('Admin created' if created else 'Admin already exists')

    @click.command('recompute-scores')
    def recompute_scores_command():
        """Recomputes product review stats and vendor trust scores."""
        from trustlens.services.marketplace import recompute_all_scores
        with flask_app.app_context():
            result = recompute_all_scores()
            print(f"Recomputed scores: {result}")

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(seed_admin_command)
    flask_app.cli.add_command(recompute_scores_command)

    return flask_app
