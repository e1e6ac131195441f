from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Game core: timers, session store and orchestrator live in app.extensions
    from quizgame.services.games import init_game_services
    init_game_services(flask_app)

    from quizgame.services.games.errors import GameError

    @flask_app.errorhandler(GameError)
    def handle_game_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    from quizgame.main import main
    flask_app.register_blueprint(main)

    from quizgame.api.quizzes import quizzes
    from quizgame.api.sessions import sessions, players
    flask_app.register_blueprint(quizzes, url_prefix='/api/quizzes')
    flask_app.register_blueprint(sessions, url_prefix='/api/quizzes')
    flask_app.register_blueprint(players, url_prefix='/api/players')

    from quizgame.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Flask-Login user loader
    from quizgame.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Login required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Cancels running games, then drops and recreates the database."""
        from quizgame.services.games import get_game_services
        with flask_app.app_context():
            services = get_game_services(flask_app)
            # Stop pending timers before their sessions disappear
            services.timers.cancel_all()
            db.drop_all()
            db.create_all()
            services.orchestrator.clear()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
