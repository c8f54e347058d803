from flask import Flask
from flask_bcrypt import Bcrypt
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

bcrypt = Bcrypt()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    bcrypt.init_app(flask_app)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Game state lives in one registry per app; handlers reach it through
    # flask_app.extensions rather than a module global
    from matchroom.services.game.gateway import GameSettings, RoomGateway
    from matchroom.services.game.registry import RoomRegistry
    from matchroom.services.game.scheduler import InlineDeferrer, SocketIODeferrer, start_turn_sweeper
    from matchroom.socketio_events import SocketIOEmitter, register_socketio_handlers

    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/')
    background = not flask_app.config.get('TESTING') or flask_app.config.get('ENABLE_BACKGROUND_IN_TESTS')
    settings = GameSettings.from_config(flask_app.config)
    gateway = RoomGateway(
        RoomRegistry(default_turn_seconds=settings.turn_seconds_default),
        SocketIOEmitter(socketio, namespace),
        bcrypt,
        settings=settings,
        deferrer=SocketIODeferrer(socketio, flask_app.logger) if background else InlineDeferrer(),
        logger=flask_app.logger,
    )
    flask_app.extensions['room_gateway'] = gateway

    from matchroom.main import main
    flask_app.register_blueprint(main)

    from matchroom.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    register_socketio_handlers(namespace)
    start_turn_sweeper(flask_app, socketio, gateway)

    @click.command('check-deck')
    @click.argument('deck_file', type=click.File('r', encoding='utf-8'))
    def check_deck_command(deck_file):
        """Validate a deck file of "termA, termB" lines and preview a shuffle."""
        from matchroom.services.game.deck import build_deck
        from matchroom.services.game.inputs import clean_pairs

        pairs = clean_pairs(deck_file.read(), settings.max_pairs)
        if len(pairs) < settings.min_pairs:
            raise click.ClickException(
                f'Deck needs at least {settings.min_pairs} valid pairs, found {len(pairs)}.'
            )
        click.echo(f'{len(pairs)} pairs, {len(pairs) * 2} cards')
        for card in build_deck(pairs):
            click.echo(f'  {card.text}')

    flask_app.cli.add_command(check_deck_command)

    return flask_app
